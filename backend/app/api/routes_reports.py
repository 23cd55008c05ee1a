import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..schemas.report import ReportGenerateOut, ReportOut, ReportRequest
from ..services.exceptions import (
    AccessDeniedError,
    CompanyNotFoundError,
    ReportNotFoundError,
    ReportSchemaError,
)
from ..services.reports import generate_report, get_report
from .routes_enrichment import verify_api_key

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


@router.post("/reports/generate", response_model=ReportGenerateOut)
def create_report(
    payload: ReportRequest,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    extra = {
        "company_id": str(payload.companyId),
        "user_id": str(payload.userId),
        "tier": payload.tier.value,
    }
    logger.info("Report requested", extra=extra)

    try:
        report = generate_report(db, payload.companyId, payload.userId, payload.tier)
    except CompanyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ReportSchemaError:
        logger.exception("Generated report failed validation", extra=extra)
        raise HTTPException(status_code=500, detail="Generated report failed validation")
    except Exception:
        logger.exception("Report generation failed", extra=extra)
        raise HTTPException(status_code=500, detail="Failed to generate report")

    return ReportGenerateOut(
        reportId=report.id,
        companyName=report.company.name,
        tier=report.tier,
        message=f"{report.tier.value} report generated successfully",
    )


@router.get("/reports/{report_id}", response_model=ReportOut)
def read_report(
    report_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    try:
        return get_report(db, report_id)
    except ReportNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/reports/{report_id}/html", response_class=HTMLResponse)
def read_report_html(
    report_id: str,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    try:
        report = get_report(db, report_id)
    except ReportNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return HTMLResponse(content=report.content_html)
