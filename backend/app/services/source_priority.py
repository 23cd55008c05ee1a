from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.enrichment_source import EnrichmentSource, SourcePriority

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    SourcePriority.FIRST: 1,
    SourcePriority.SECOND: 2,
    SourcePriority.THIRD: 3,
}


class UnknownSourceError(LookupError):
    pass


@dataclass(frozen=True)
class SourceConfig:
    """Detached snapshot of one enrichment_sources row."""

    source_name: str
    priority: SourcePriority
    is_enabled: bool
    display_name: Optional[str] = None

    @classmethod
    def from_model(cls, row: EnrichmentSource) -> "SourceConfig":
        return cls(
            source_name=row.source_name,
            priority=SourcePriority(row.priority),
            is_enabled=bool(row.is_enabled),
            display_name=row.display_name,
        )


def resolve_active_providers(
    sources: Iterable[SourceConfig],
    default: Optional[Sequence[str]] = None,
) -> List[str]:
    """
    Ordered vendor names to consult: FIRST, then SECOND, then THIRD.

    Disabled and DO_NOT_USE rows are excluded. If two rows claim the same
    priority (or a name repeats) only the first one seen is kept. An empty
    result falls back to the configured default order so enrichment is never
    silently skipped.
    """
    if default is None:
        default = get_settings().default_enrichment_providers

    ranked: dict[int, str] = {}
    seen: set[str] = set()
    for src in sources:
        if not src.is_enabled:
            continue
        rank = PRIORITY_RANK.get(SourcePriority(src.priority))
        if rank is None:
            continue
        name = src.source_name.strip().lower()
        if name in seen or rank in ranked:
            logger.warning(
                "Dropping duplicate enrichment source %s at %s",
                name,
                SourcePriority(src.priority).value,
                extra={"vendor": name, "step": "priority"},
            )
            continue
        ranked[rank] = name
        seen.add(name)

    providers = [ranked[r] for r in sorted(ranked)]
    if not providers:
        logger.info(
            "No active enrichment sources; using defaults %s",
            list(default),
            extra={"step": "priority"},
        )
        return list(default)
    return providers


def load_source_snapshot(db: Session) -> List[SourceConfig]:
    """Read enrichment_sources; a database failure yields an empty snapshot."""
    try:
        rows = db.query(EnrichmentSource).all()
    except SQLAlchemyError:
        logger.exception("Failed to read enrichment_sources", extra={"step": "priority"})
        db.rollback()
        return []
    return [SourceConfig.from_model(r) for r in rows]


def list_sources(db: Session) -> List[EnrichmentSource]:
    rows = db.query(EnrichmentSource).all()
    return sorted(
        rows,
        key=lambda r: (PRIORITY_RANK.get(SourcePriority(r.priority), 99), r.source_name),
    )


def assign_source_priority(
    db: Session,
    source_name: str,
    priority: SourcePriority,
) -> EnrichmentSource:
    """
    Give ``source_name`` a priority. Whoever held that slot before is moved to
    DO_NOT_USE so each of FIRST/SECOND/THIRD has at most one holder.
    """
    priority = SourcePriority(priority)
    name = source_name.strip().lower()
    row = db.query(EnrichmentSource).filter(EnrichmentSource.source_name == name).first()
    if row is None:
        raise UnknownSourceError(f"Unknown enrichment source: {source_name}")

    now = datetime.utcnow()
    if priority != SourcePriority.DO_NOT_USE:
        holders = (
            db.query(EnrichmentSource)
            .filter(
                EnrichmentSource.priority == priority,
                EnrichmentSource.source_name != name,
            )
            .all()
        )
        for holder in holders:
            holder.priority = SourcePriority.DO_NOT_USE
            holder.is_enabled = False
            holder.updated_at = now

    row.priority = priority
    row.is_enabled = priority != SourcePriority.DO_NOT_USE
    row.updated_at = now
    db.commit()
    db.refresh(row)

    logger.info(
        "Enrichment source %s set to %s",
        name,
        priority.value,
        extra={"vendor": name, "step": "priority"},
    )
    return row
