import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.db import get_db
from ..schemas.enrichment import EnrichmentOut, EnrichmentRequest
from ..services.enrichment import apply_late_enrichment, enrich_company
from ..services.exceptions import CompanyNotFoundError

router = APIRouter(tags=["enrichment"])

settings = get_settings()
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
logger = logging.getLogger(__name__)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Simple header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    expected = settings.API_AUTH_KEY

    # In dev with no configured key, skip auth for convenience
    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        # In non-dev environments, missing config is treated as misconfiguration
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/enrich", response_model=EnrichmentOut)
def enrich(
    payload: EnrichmentRequest,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    logger.info(
        "Enrichment requested",
        extra={"company_id": str(payload.companyId), "step": "enrich"},
    )
    try:
        result = enrich_company(db, payload.companyId, providers=payload.providers)
    except CompanyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(
            "Enrichment failed",
            extra={"company_id": str(payload.companyId), "step": "enrich"},
        )
        raise HTTPException(status_code=500, detail="Failed to enrich company")

    if result.pending_sources:
        message = (
            "Company enriched successfully; awaiting "
            + ", ".join(result.pending_sources)
        )
    else:
        message = "Company enriched successfully"

    return EnrichmentOut(
        companyId=payload.companyId,
        enrichmentData=result.to_record(),
        message=message,
    )


@router.post("/webhooks/clay")
def clay_webhook(
    payload: dict[str, Any] = Body(...),
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    """
    Clay posts enriched rows back here once its table has run.

    Authenticated with ``Authorization: Bearer <CLAY_WEBHOOK_SECRET>`` when a
    secret is configured (Clay cannot send our X-API-Key header).
    """
    secret = settings.CLAY_WEBHOOK_SECRET
    if secret and authorization != f"Bearer {secret}":
        logger.warning("Unauthorized Clay webhook attempt", extra={"vendor": "clay"})
        raise HTTPException(status_code=401, detail="Unauthorized")

    company_id = payload.get("company_id")
    if not company_id:
        raise HTTPException(status_code=400, detail="company_id is required")

    try:
        result = apply_late_enrichment(db, company_id, "clay", payload)
    except CompanyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(
            "Failed to process Clay webhook",
            extra={"company_id": str(company_id), "vendor": "clay"},
        )
        raise HTTPException(status_code=500, detail="Failed to process Clay webhook")

    return {
        "success": True,
        "message": "Clay enrichment data received and stored",
        "company_id": str(company_id),
        "confidence": result.confidence,
    }
