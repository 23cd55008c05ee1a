from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.db import get_db
from ..models.company import Company
from ..models.report import Report
from .routes_enrichment import verify_api_key

router = APIRouter(tags=["archive"])


@router.get("/archive")
def list_reports(
    user_id: UUID | None = None,
    company_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    """
    Protected listing endpoint for generated reports, newest first.

    - Optional filters by requesting user and by company.
    - Supports basic pagination via limit/offset.
    """
    # Hard cap to avoid unbounded scans
    safe_limit = max(1, min(limit, 100))

    q = db.query(Report, Company.name).join(Company, Report.company_id == Company.id)
    if user_id is not None:
        q = q.filter(Report.user_id == user_id)
    if company_id is not None:
        q = q.filter(Report.company_id == company_id)

    rows = (
        q.order_by(Report.generated_at.desc())
        .offset(max(0, offset))
        .limit(safe_limit)
        .all()
    )

    return [
        {
            "id": str(r.id),
            "company_id": str(r.company_id),
            "company_name": company_name,
            "user_id": str(r.user_id),
            "tier": r.tier.value,
            "generated_at": r.generated_at,
        }
        for r, company_name in rows
    ]
