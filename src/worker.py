"""Celery worker configuration and tasks."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from celery import Celery, Task

from src.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "string_import_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=1800,  # 30 minutes max per import
    task_soft_time_limit=1740,
    worker_prefetch_multiplier=1,  # Fetch one task at a time
    task_acks_late=True,  # Ack after task completes
    task_reject_on_worker_lost=True,
    task_default_queue="default",
    task_queues={
        "default": {"exchange": "default", "routing_key": "default"},
        "imports": {"exchange": "imports", "routing_key": "imports"},
        "notifications": {"exchange": "notifications", "routing_key": "notifications"},
    },
    task_routes={
        "src.worker.import_revision_task": {"queue": "imports"},
        "src.worker.recalculate_revision_task": {"queue": "default"},
        "src.worker.send_import_error_notification": {"queue": "notifications"},
    },
)


class BaseTask(Task):
    """Base task with retry configuration."""

    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    max_retries = 3


def _run(coro):
    """Run a coroutine on a fresh event loop; pooled connections do not outlive it."""
    from src.db.session import engine

    async def runner():
        try:
            return await coro
        finally:
            await engine.dispose()

    return asyncio.run(runner())


async def _import_revision(revision_id: str) -> Optional[dict]:
    from dataclasses import asdict

    from src.db.models import Revision
    from src.db.session import async_session_maker
    from src.services.importer import import_service

    async with async_session_maker() as db:
        revision = await db.get(Revision, revision_id)
        if revision is None:
            logger.error(f"Revision {revision_id} not found for import")
            return None
        report = await import_service.import_strings(db, revision)
        return asdict(report)


async def _recalculate_revision(revision_id: str) -> Optional[bool]:
    from src.db.models import Revision
    from src.db.session import async_session_maker
    from src.services.revision_service import revision_service

    async with async_session_maker() as db:
        revision = await db.get(Revision, revision_id)
        if revision is None:
            logger.error(f"Revision {revision_id} not found for recalculation")
            return None
        ready = await revision_service.recalculate(db, revision)
        await db.commit()
        return ready


@celery_app.task(name="src.worker.import_revision_task")
def import_revision_task(revision_id: str) -> Optional[dict]:
    """
    Import the strings of a revision.

    Not retried: a failed import leaves the revision not loading, and the
    caller decides whether to queue another attempt.
    """
    return _run(_import_revision(revision_id))


@celery_app.task(bind=True, base=BaseTask, name="src.worker.recalculate_revision_task")
def recalculate_revision_task(self, revision_id: str) -> Optional[bool]:
    """Recompute key and revision readiness."""
    return _run(_recalculate_revision(revision_id))


@celery_app.task(name="src.worker.send_import_error_notification", bind=True, max_retries=3)
def send_import_error_notification(self, payload: dict):
    """
    Deliver an import error notification to the configured webhook.

    Retries up to 3 times with exponential backoff.
    """
    url = settings.notification_webhook_url
    if not url:
        logger.warning(
            f"No notification webhook configured; dropping import errors for {payload.get('sha')}"
        )
        return

    body = {
        "event": payload.get("event", "revision.import_failed"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": payload,
    }

    try:
        response = httpx.post(
            url,
            json=body,
            timeout=30,
            headers={
                "Content-Type": "application/json",
                "User-Agent": "String-Import-Service/1.0",
                "X-Webhook-Event": body["event"],
            },
        )
        response.raise_for_status()
        logger.info(f"Import error notification sent for revision {payload.get('revision_id')}")

    except httpx.HTTPStatusError as e:
        logger.error(f"Notification HTTP error for {payload.get('sha')}: {e.response.status_code}")
        # Retry on 5xx errors
        if e.response.status_code >= 500:
            raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))
    except httpx.RequestError as e:
        logger.error(f"Notification request error for {payload.get('sha')}: {e}")
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))


def enqueue_import(revision_id: str) -> str:
    """Queue an import of the revision. Returns the Celery task id."""
    result = import_revision_task.apply_async(args=[revision_id], queue="imports")
    return result.id


def enqueue_recalculation(revision_id: str) -> str:
    result = recalculate_revision_task.apply_async(args=[revision_id], queue="default")
    return result.id


def get_import_queue():
    """FastAPI dependency returning the import enqueuer; overridden in tests."""
    return enqueue_import
