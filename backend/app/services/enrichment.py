from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.company import Company
from .audit import record_audit_event
from .connectors import ConnectorRegistry, build_connector_registry
from .connectors.base import ENRICHMENT_FIELDS, CompanyProfile, clean_fields
from .connectors.clay import parse_webhook_payload
from .credentials import load_vendor_credentials
from .exceptions import CompanyNotFoundError
from .source_priority import load_source_snapshot, resolve_active_providers

logger = logging.getLogger(__name__)

# How much we trust each vendor for each field.
FIELD_WEIGHTS: Dict[tuple[str, str], float] = {
    ("hunter", "owner_email"): 0.8,
    ("hunter", "owner_name"): 0.8,
    ("hunter", "owner_phone"): 0.7,
    ("apollo", "employee_count"): 0.7,
    ("apollo", "revenue"): 0.6,
    ("apollo", "owner_name"): 0.65,
    ("zoominfo", "owner_phone"): 0.75,
    ("zoominfo", "owner_name"): 0.75,
    ("zoominfo", "employee_count"): 0.7,
    ("zoominfo", "revenue"): 0.7,
    ("clay", "owner_name"): 0.6,
    ("clay", "owner_email"): 0.6,
    ("clay", "owner_phone"): 0.6,
    ("clay", "employee_count"): 0.6,
    ("clay", "revenue"): 0.6,
}
DEFAULT_FIELD_WEIGHT = 0.5
# Confidence of a record no vendor could add anything to.
LOW_CONFIDENCE = 0.1


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


@dataclass
class EnrichmentResult:
    """
    Merged vendor data for one company.

    Every populated key in ``values`` has a ``sources`` entry naming the vendor
    that supplied it; a field is written by the first vendor (in priority
    order) that returns it and never overwritten afterwards.

    ``pending_sources`` is the provenance record for vendors that accepted
    the request but answer later (Clay). They stay out of ``sources`` and
    the confidence mean until their data is merged.
    """

    values: Dict[str, Any] = field(default_factory=dict)
    sources: Dict[str, str] = field(default_factory=dict)
    pending_sources: List[str] = field(default_factory=list)
    providers_used: List[str] = field(default_factory=list)
    vendor_payloads: Dict[str, Any] = field(default_factory=dict)
    enriched_at: Optional[str] = None

    def merge(self, vendor: str, partial: Dict[str, Any]) -> List[str]:
        """First-wins merge; returns the fields this vendor actually wrote."""
        written: List[str] = []
        for key in ENRICHMENT_FIELDS:
            value = partial.get(key)
            if not _is_populated(value) or _is_populated(self.values.get(key)):
                continue
            self.values[key] = value
            self.sources[key] = vendor
            written.append(key)
        return written

    @property
    def confidence(self) -> float:
        weights = [
            FIELD_WEIGHTS.get((vendor, key), DEFAULT_FIELD_WEIGHT)
            for key, vendor in self.sources.items()
            if _is_populated(self.values.get(key))
        ]
        if not weights:
            return LOW_CONFIDENCE
        return round(min(1.0, max(0.0, sum(weights) / len(weights))), 4)

    @property
    def contributing_vendors(self) -> List[str]:
        ordered: List[str] = []
        for vendor in self.sources.values():
            if vendor not in ordered:
                ordered.append(vendor)
        return ordered

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = dict(self.values)
        record.update(
            {
                "sources": dict(self.sources),
                "confidence": self.confidence,
                "pending_sources": list(self.pending_sources),
                "providers_used": list(self.providers_used),
                "vendor_payloads": dict(self.vendor_payloads),
                "enriched_at": self.enriched_at,
            }
        )
        return record

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> "EnrichmentResult":
        record = record or {}
        values = {k: record[k] for k in ENRICHMENT_FIELDS if _is_populated(record.get(k))}
        raw_sources = record.get("sources") or {}
        # Keep provenance only for values that are actually present.
        sources = {k: v for k, v in raw_sources.items() if k in values and isinstance(v, str)}
        return cls(
            values=values,
            sources=sources,
            pending_sources=list(record.get("pending_sources") or []),
            providers_used=list(record.get("providers_used") or []),
            vendor_payloads=dict(record.get("vendor_payloads") or {}),
            enriched_at=record.get("enriched_at"),
        )


class EnrichmentAggregator:
    """
    Query vendors in priority order and fold their partial answers together.

    Vendors are called sequentially: later vendors only matter for fields the
    earlier ones left empty, and one request never fans out past the list.
    """

    def __init__(self, registry: ConnectorRegistry) -> None:
        self.registry = registry

    async def aenrich(
        self,
        company: CompanyProfile,
        providers: Sequence[str],
    ) -> EnrichmentResult:
        result = EnrichmentResult(providers_used=[p.strip().lower() for p in providers])

        for name, connector in self.registry.resolve(result.providers_used):
            try:
                partial = await connector.fetch(company)
            except Exception as e:
                # Adapters shouldn't raise, but one bad vendor must not stop the rest.
                logger.exception(
                    "Vendor %s raised during enrichment: %s",
                    name,
                    e,
                    extra={"vendor": name, "company_id": company.id},
                )
                continue

            written = result.merge(name, partial or {})
            if getattr(partial, "pending", False) and name not in result.pending_sources:
                result.pending_sources.append(name)

            logger.info(
                "Vendor %s contributed %d field(s)",
                name,
                len(written),
                extra={"vendor": name, "company_id": company.id, "step": "enrich"},
            )

        result.enriched_at = datetime.utcnow().isoformat() + "Z"
        return result

    def enrich(self, company: CompanyProfile, providers: Sequence[str]) -> EnrichmentResult:
        # Called from sync request handlers / Celery workers
        return asyncio.run(self.aenrich(company, providers))


def _load_company(db: Session, company_id: Any) -> Company:
    try:
        cid = company_id if isinstance(company_id, uuid.UUID) else uuid.UUID(str(company_id))
    except (TypeError, ValueError):
        raise CompanyNotFoundError()
    company = db.query(Company).filter(Company.id == cid).first()
    if company is None:
        raise CompanyNotFoundError()
    return company


def enrich_company(
    db: Session,
    company_id: Any,
    providers: Optional[Sequence[str]] = None,
    registry: Optional[ConnectorRegistry] = None,
) -> EnrichmentResult:
    """
    Enrich one company and persist the merged record.

    ``providers`` (non-empty) overrides the configured priority order. All
    company columns are written in a single commit after every vendor has
    answered, so readers never see a half-merged record.
    """
    company = _load_company(db, company_id)

    cleaned = [p.strip().lower() for p in (providers or []) if p and p.strip()]
    if not cleaned:
        cleaned = resolve_active_providers(load_source_snapshot(db))

    if registry is None:
        registry = build_connector_registry(load_vendor_credentials(db))

    logger.info(
        "Enriching company with providers %s",
        cleaned,
        extra={"company_id": str(company.id), "step": "enrich"},
    )
    result = EnrichmentAggregator(registry).enrich(CompanyProfile.from_model(company), cleaned)

    now = datetime.utcnow()
    try:
        company.enrichment_data = result.to_record()
        company.is_enriched = True
        company.enriched_at = now
        if "clay" in result.pending_sources:
            company.clay_enrichment_status = "pending"
        company.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to persist enrichment",
            extra={"company_id": str(company.id), "step": "enrich"},
        )
        raise

    record_audit_event(
        action="ENRICHMENT_COMPLETED",
        entity="ENRICHMENT",
        entity_id=company.id,
        metadata={
            "providers": cleaned,
            "fields_enriched": sorted(result.values),
            "confidence": result.confidence,
            "pending_sources": result.pending_sources,
        },
    )
    return result


def apply_late_enrichment(
    db: Session,
    company_id: Any,
    vendor: str,
    payload: Dict[str, Any],
) -> EnrichmentResult:
    """
    Fold a vendor's late callback (Clay) into the stored record.

    Same first-wins rule as the synchronous path; fields already supplied by
    a higher-priority vendor are kept. Reports generated earlier are left as
    they are.
    """
    company = _load_company(db, company_id)
    vendor = vendor.strip().lower()

    result = EnrichmentResult.from_record(company.enrichment_data)
    partial = parse_webhook_payload(payload) if vendor == "clay" else clean_fields(payload)
    written = result.merge(vendor, partial)

    if vendor in result.pending_sources:
        result.pending_sources.remove(vendor)
    result.vendor_payloads[vendor] = {k: v for k, v in payload.items() if k != "company_id"}

    now = datetime.utcnow()
    try:
        company.enrichment_data = result.to_record()
        if result.values:
            company.is_enriched = True
            company.enriched_at = company.enriched_at or now
        if vendor == "clay":
            company.clay_enrichment_status = "completed"
        company.updated_at = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to persist late enrichment",
            extra={"company_id": str(company.id), "vendor": vendor},
        )
        raise

    logger.info(
        "Late enrichment from %s wrote %d field(s)",
        vendor,
        len(written),
        extra={"company_id": str(company.id), "vendor": vendor, "step": "late_enrich"},
    )
    record_audit_event(
        action=f"{vendor.upper()}_ENRICHMENT_RECEIVED",
        entity="ENRICHMENT",
        entity_id=company.id,
        metadata={"fields_received": len(partial), "fields_written": written},
    )
    return result
