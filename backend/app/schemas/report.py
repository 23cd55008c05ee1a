# backend/app/schemas/report.py
from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from ..models.report import ReportTier
from ..services.exceptions import ReportSchemaError

# Minimum characters per section after whitespace stripping.
SECTION_MIN_LENGTHS: dict[str, int] = {
    "executive_summary": 50,
    "company_overview": 100,
    "key_personnel": 50,
    "growth_opportunities": 50,
    "recommendations": 50,
    "market_analysis": 100,
    "financial_insights": 100,
    "risk_assessment": 100,
}


class BaseReportContent(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    executive_summary: str = Field(min_length=SECTION_MIN_LENGTHS["executive_summary"])
    company_overview: str = Field(min_length=SECTION_MIN_LENGTHS["company_overview"])
    key_personnel: str = Field(min_length=SECTION_MIN_LENGTHS["key_personnel"])
    growth_opportunities: str = Field(min_length=SECTION_MIN_LENGTHS["growth_opportunities"])
    recommendations: str = Field(min_length=SECTION_MIN_LENGTHS["recommendations"])
    data_sources: list[str] = Field(min_length=1)
    generated_at: datetime

    @field_validator("data_sources")
    @classmethod
    def _dedupe_sources(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for item in v:
            item = item.strip()
            if item and item not in out:
                out.append(item)
        if not out:
            raise ValueError("data_sources must contain at least one source")
        return out


class EnhancedReportContent(BaseReportContent):
    tier: Literal["ENHANCED"] = "ENHANCED"


class BIReportContent(BaseReportContent):
    tier: Literal["BI"] = "BI"

    market_analysis: str = Field(min_length=SECTION_MIN_LENGTHS["market_analysis"])
    financial_insights: str = Field(min_length=SECTION_MIN_LENGTHS["financial_insights"])
    risk_assessment: str = Field(min_length=SECTION_MIN_LENGTHS["risk_assessment"])
    competitive_landscape: str | None = None
    industry_trends: str | None = None


ReportContent = Annotated[
    Union[EnhancedReportContent, BIReportContent],
    Field(discriminator="tier"),
]

_report_content_adapter: TypeAdapter = TypeAdapter(ReportContent)


def validate_report_content(candidate: dict[str, Any]) -> BaseReportContent:
    """Validate generator output; any violation is a ReportSchemaError."""
    try:
        return _report_content_adapter.validate_python(candidate)
    except ValidationError as e:
        raise ReportSchemaError(f"Report content failed validation: {e}") from e


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class ReportRequest(BaseModel):
    companyId: UUID
    userId: UUID
    tier: ReportTier


class ReportGenerateOut(BaseModel):
    success: bool = True
    reportId: UUID
    companyName: str
    tier: ReportTier
    message: str


class ReportOut(BaseModel):
    id: UUID
    company_id: UUID
    user_id: UUID
    tier: ReportTier
    content_json: dict
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportSummaryOut(BaseModel):
    id: UUID
    company_id: UUID
    company_name: str | None = None
    tier: ReportTier
    generated_at: datetime
