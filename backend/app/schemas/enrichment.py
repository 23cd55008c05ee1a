# backend/app/schemas/enrichment.py
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from ..models.enrichment_source import SourcePriority

MAX_PROVIDERS = 10


class EnrichmentRequest(BaseModel):
    companyId: UUID
    providers: list[str] | None = None

    @field_validator("providers")
    @classmethod
    def _normalise_providers(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        cleaned = [p.strip().lower() for p in v if isinstance(p, str) and p.strip()]
        if len(cleaned) > MAX_PROVIDERS:
            raise ValueError(f"at most {MAX_PROVIDERS} providers may be requested")
        return cleaned


class EnrichmentOut(BaseModel):
    success: bool = True
    companyId: UUID
    enrichmentData: dict[str, Any]
    message: str


class EnrichmentSourceOut(BaseModel):
    source_name: str
    display_name: str
    priority: SourcePriority
    is_enabled: bool
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class EnrichmentSourceUpdate(BaseModel):
    source_name: str
    priority: SourcePriority

    @field_validator("source_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("source_name must not be empty")
        return v


class ApiKeyUpdate(BaseModel):
    service: str
    api_key: str
    username: str | None = None
    client_id: str | None = None

    @field_validator("service", "api_key")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class ApiKeyOut(BaseModel):
    service: str
    masked_key: str
    username: str | None = None
    client_id: str | None = None
    status: str
    updated_at: datetime | None = None


class ReportSettingsPayload(BaseModel):
    settings: dict[str, Any]
