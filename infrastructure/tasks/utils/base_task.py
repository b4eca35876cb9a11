"""Common base task for payment compensation jobs"""
from __future__ import annotations

from celery import Task
from core.logging_config import get_logger

logger = get_logger(__name__)


class BaseTask(Task):
    """Structured lifecycle logging for every payments task."""

    def _context(self, task_id, args, kwargs) -> dict:
        # reconcile_order receives the gateway order id as its only argument
        order_id = (kwargs or {}).get("order_id") or (args[0] if args else None)
        return {
            "task_id": task_id,
            "task_name": self.name,
            "order_id": order_id,
            "retries": self.request.retries if self.request else None,
        }

    def on_failure(self, exc, task_id, args, kwargs, einfo):  # type: ignore[override]
        logger.error(
            "celery_task_failure",
            error_type=getattr(exc, "error_type", type(exc).__name__),
            exc=str(exc),
            **self._context(task_id, args, kwargs),
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):  # type: ignore[override]
        """Transient gateway or database failure; Celery schedules another attempt."""
        logger.warning(
            "celery_task_retry",
            error_type=getattr(exc, "error_type", type(exc).__name__),
            **self._context(task_id, args, kwargs),
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):  # type: ignore[override]
        logger.info(
            "celery_task_success",
            result=retval,
            **self._context(task_id, args, kwargs),
        )
        super().on_success(retval, task_id, args, kwargs)
