from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.company import Company
from ..models.report import Report, ReportTier
from ..schemas.report import validate_report_content
from .audit import record_audit_event
from .enrichment import enrich_company
from .exceptions import AccessDeniedError, CompanyNotFoundError, ReportNotFoundError
from .notifications import notify_report_ready
from .report_renderer import render_report_html
from .report_templates import get_template, load_report_settings
from .report_writer import ReportContext, ReportWriter

logger = logging.getLogger(__name__)


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _check_access(company: Company, user_id: uuid.UUID) -> None:
    owner = company.search.user_id if company.search is not None else None
    if owner is None or owner != user_id:
        raise AccessDeniedError()


def generate_report(
    db: Session,
    company_id: Any,
    user_id: Any,
    tier: ReportTier,
    writer: Optional[ReportWriter] = None,
) -> Report:
    """
    Build, validate, render and store one report.

    Ownership is checked before any enrichment or LLM spend. The stored row is
    insert-only; regenerating creates a new report.
    """
    tier = ReportTier(tier)
    cid = _as_uuid(company_id)
    company = db.query(Company).filter(Company.id == cid).first() if cid else None
    if company is None:
        raise CompanyNotFoundError()

    uid = _as_uuid(user_id)
    if uid is None:
        raise AccessDeniedError()
    _check_access(company, uid)

    settings = get_settings()
    if settings.REPORT_AUTO_ENRICH and not company.is_enriched:
        try:
            enrich_company(db, company.id)
        except Exception:
            # Reports still generate from whatever data exists.
            db.rollback()
            logger.exception(
                "Auto-enrichment failed before report generation",
                extra={"company_id": str(company.id), "tier": tier.value},
            )
        db.refresh(company)

    template = get_template(load_report_settings(db), tier)
    ctx = ReportContext.from_company(company)
    content = (writer or ReportWriter()).generate(ctx, tier, template)

    validated = validate_report_content(content)
    content_json = validated.model_dump(mode="json", exclude_none=True)
    html = render_report_html(content_json, ctx)

    report = Report(
        company_id=company.id,
        user_id=uid,
        tier=tier,
        content_json=content_json,
        content_html=html,
        generated_at=datetime.utcnow(),
    )
    try:
        db.add(report)
        db.commit()
        db.refresh(report)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to store report",
            extra={"company_id": str(company.id), "tier": tier.value},
        )
        raise

    logger.info(
        "Report generated",
        extra={
            "company_id": str(company.id),
            "report_id": str(report.id),
            "user_id": str(uid),
            "tier": tier.value,
        },
    )
    record_audit_event(
        action="REPORT_GENERATED",
        entity="REPORT",
        entity_id=report.id,
        user_id=uid,
        metadata={"company_id": str(company.id), "tier": tier.value},
    )
    notify_report_ready(
        report_id=str(report.id),
        user_id=str(uid),
        company_name=company.name,
        tier=tier.value,
    )
    return report


def get_report(db: Session, report_id: Any) -> Report:
    rid = _as_uuid(report_id)
    report = db.query(Report).filter(Report.id == rid).first() if rid else None
    if report is None:
        raise ReportNotFoundError()
    return report
