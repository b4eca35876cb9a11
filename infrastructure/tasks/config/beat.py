"""Celery beat schedule configuration.

Periodic compensation jobs for payments live here.
"""
from __future__ import annotations

from celery.schedules import crontab

CELERY_BEAT_SCHEDULE = {
    # pending donations whose webhook never arrived
    "payments-expire-stale-pending": {
        "task": "payments.expire_stale_pending",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": "low"},
    },
}
