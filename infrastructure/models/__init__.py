"""Infrastructure models package exports."""
from .base import Base, metadata
from .donation import DonationModel

__all__ = [
    "Base",
    "metadata",
    "DonationModel",
]
