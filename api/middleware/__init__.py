from .request_id import RequestIDMiddleware, get_request_id
from .logging import LoggingMiddleware
from .cors import PathScopedCORSMiddleware

__all__ = [
    "RequestIDMiddleware",
    "LoggingMiddleware",
    "PathScopedCORSMiddleware",
    "get_request_id",
]
