from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..core.db import SessionLocal
from ..models.company import Company
from .connectors import build_connector_registry
from .credentials import load_vendor_credentials
from .enrichment import enrich_company

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(name="app.services.enrichment_tasks.enrich_pending_companies")
def enrich_pending_companies(limit: Optional[int] = None) -> int:
    """
    Periodic task: enrich companies that were saved but never enriched.

    - Oldest first, at most ``limit`` (PENDING_ENRICHMENT_BATCH_SIZE) per run.
    - Credentials are decrypted once per batch.
    - One company failing does not stop the batch.
    """
    limit = limit or settings.PENDING_ENRICHMENT_BATCH_SIZE
    db: Session = SessionLocal()
    try:
        pending = (
            db.query(Company.id)
            .filter(Company.is_enriched.is_(False))
            .order_by(Company.created_at.asc())
            .limit(limit)
            .all()
        )
        company_ids = [row.id for row in pending]

        if not company_ids:
            logger.info(
                "No pending companies to enrich",
                extra={"step": "pending_enrichment"},
            )
            return 0

        registry = build_connector_registry(load_vendor_credentials(db))
        enriched = 0
        for company_id in company_ids:
            try:
                enrich_company(db, company_id, registry=registry)
                enriched += 1
            except Exception:
                db.rollback()
                logger.exception(
                    "Background enrichment failed",
                    extra={"step": "pending_enrichment", "company_id": str(company_id)},
                )

        logger.info(
            "Enriched %d/%d pending companies",
            enriched,
            len(company_ids),
            extra={"step": "pending_enrichment"},
        )
        return enriched
    finally:
        db.close()
