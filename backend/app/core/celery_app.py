from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "offmarket",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={
        "app.services.notifications.send_report_ready": {"queue": "notifications"},
        "app.services.enrichment_tasks.enrich_pending_companies": {"queue": "enrichment"},
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.notifications", "app.services.enrichment_tasks"),
    beat_schedule={
        # Enrich companies that were saved from a search but never enriched
        "enrich-pending-companies": {
            "task": "app.services.enrichment_tasks.enrich_pending_companies",
            "schedule": crontab(minute="*/15"),
        },
    },
)
