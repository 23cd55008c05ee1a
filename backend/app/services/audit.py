# backend/app/services/audit.py
from __future__ import annotations

from typing import Any
from uuid import UUID
import logging
from datetime import datetime

from ..core.db import SessionLocal
from ..models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def record_audit_event(
    *,
    action: str,
    entity: str,
    entity_id: str | UUID | None = None,
    metadata: dict[str, Any] | None = None,
    user_id: UUID | None = None,
) -> None:
    """
    Best-effort, fire-and-forget audit writer.
    Uses its own session; failure must NEVER break the calling operation.
    """
    db = SessionLocal()
    try:
        evt = AuditLog(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            event_metadata=metadata or {},
            created_at=datetime.utcnow(),
        )
        db.add(evt)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "Failed to write audit event %s",
            action,
            extra={"step": "audit"},
        )
    finally:
        db.close()
