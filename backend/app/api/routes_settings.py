import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.api_credential import ApiCredential
from ..schemas.enrichment import (
    ApiKeyOut,
    ApiKeyUpdate,
    EnrichmentSourceOut,
    EnrichmentSourceUpdate,
    ReportSettingsPayload,
)
from ..services.credentials import (
    CredentialStoreError,
    decrypt_secret,
    mask_secret,
    save_vendor_credential,
)
from ..services.exceptions import SettingsValidationError
from ..services.report_templates import (
    effective_settings,
    load_report_settings,
    save_report_settings,
)
from ..services.source_priority import (
    UnknownSourceError,
    SourceConfig,
    assign_source_priority,
    list_sources,
    resolve_active_providers,
)
from .routes_enrichment import verify_api_key

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


def _sources_payload(db: Session) -> dict:
    rows = list_sources(db)
    return {
        "success": True,
        "sources": [EnrichmentSourceOut.model_validate(r) for r in rows],
        "active_providers": resolve_active_providers(
            [SourceConfig.from_model(r) for r in rows]
        ),
    }


@router.get("/settings/enrichment-sources")
def get_enrichment_sources(
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return _sources_payload(db)


@router.put("/settings/enrichment-sources")
def update_enrichment_source(
    payload: EnrichmentSourceUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    try:
        assign_source_priority(db, payload.source_name, payload.priority)
    except UnknownSourceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _sources_payload(db)


def _key_out(row: ApiCredential) -> ApiKeyOut:
    try:
        masked = mask_secret(decrypt_secret(row.encrypted_key))
    except CredentialStoreError:
        masked = "********"
    return ApiKeyOut(
        service=row.service,
        masked_key=masked,
        username=row.username,
        client_id=row.client_id,
        status=row.status,
        updated_at=row.updated_at,
    )


@router.get("/settings/api-keys")
def list_api_keys(
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    """Stored vendor keys; secrets are only ever returned masked."""
    rows = db.query(ApiCredential).order_by(ApiCredential.service.asc()).all()
    return {"success": True, "keys": [_key_out(r) for r in rows]}


@router.put("/settings/api-keys")
def upsert_api_key(
    payload: ApiKeyUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    try:
        row = save_vendor_credential(
            db,
            payload.service,
            payload.api_key,
            username=payload.username,
            client_id=payload.client_id,
        )
    except CredentialStoreError as e:
        logger.error("Cannot store API key: %s", e, extra={"vendor": payload.service})
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("API key saved", extra={"vendor": row.service})
    return {"success": True, "key": _key_out(row)}


@router.get("/admin/report-settings")
def get_report_settings(
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return {"success": True, "settings": effective_settings(load_report_settings(db))}


@router.post("/admin/report-settings")
def post_report_settings(
    payload: ReportSettingsPayload,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    try:
        saved = save_report_settings(db, payload.settings)
    except SettingsValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "message": "Report settings saved successfully",
        "settings": saved,
    }
