from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from ..core.celery_app import celery_app
from ..core.config import get_settings

logger = logging.getLogger(__name__)

SEND_REPORT_READY_TASK = "app.services.notifications.send_report_ready"


@celery_app.task(
    name=SEND_REPORT_READY_TASK,
    autoretry_for=(httpx.TransportError,),
    retry_backoff=True,
    max_retries=3,
)
def send_report_ready(payload: Dict[str, Any]) -> bool:
    """
    POST a "report ready" event to the email dispatcher.

    No dispatcher configured -> logged and skipped.
    """
    settings = get_settings()
    if not settings.REPORT_READY_WEBHOOK_URL:
        logger.info(
            "REPORT_READY_WEBHOOK_URL not set; skipping notification",
            extra={"report_id": payload.get("report_id"), "step": "notify"},
        )
        return False

    headers = {"Content-Type": "application/json"}
    if settings.REPORT_READY_WEBHOOK_TOKEN:
        headers["Authorization"] = f"Bearer {settings.REPORT_READY_WEBHOOK_TOKEN}"

    resp = httpx.post(
        settings.REPORT_READY_WEBHOOK_URL,
        json=payload,
        headers=headers,
        timeout=15,
    )
    if resp.status_code >= 400:
        logger.warning(
            "Report-ready dispatcher returned %s",
            resp.status_code,
            extra={"report_id": payload.get("report_id"), "step": "notify"},
        )
        return False
    return True


def notify_report_ready(
    *,
    report_id: str,
    user_id: str,
    company_name: str,
    tier: str,
) -> None:
    """Queue the notification; a broker outage never fails report generation."""
    payload = {
        "report_id": report_id,
        "user_id": user_id,
        "company_name": company_name,
        "tier": tier,
    }
    try:
        celery_app.send_task(SEND_REPORT_READY_TASK, args=[payload])
    except Exception:
        logger.exception(
            "Failed to enqueue report-ready notification",
            extra={"report_id": report_id, "step": "notify"},
        )
