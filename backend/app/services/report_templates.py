from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.report import ReportTier
from ..models.report_settings import ReportSettings
from .exceptions import SettingsValidationError

logger = logging.getLogger(__name__)

ENHANCED_SECTIONS: Tuple[str, ...] = (
    "executive_summary",
    "company_overview",
    "key_personnel",
    "growth_opportunities",
    "recommendations",
)

# BI is a strict superset of ENHANCED, in reading order.
BI_SECTIONS: Tuple[str, ...] = (
    "executive_summary",
    "company_overview",
    "market_analysis",
    "financial_insights",
    "key_personnel",
    "growth_opportunities",
    "risk_assessment",
    "recommendations",
)

SECTION_TITLES: Dict[str, str] = {
    "executive_summary": "Executive Summary",
    "company_overview": "Company Overview",
    "market_analysis": "Market Analysis",
    "financial_insights": "Financial Insights",
    "key_personnel": "Key Personnel",
    "growth_opportunities": "Growth Opportunities",
    "risk_assessment": "Risk Assessment",
    "recommendations": "Recommendations",
    "competitive_landscape": "Competitive Landscape",
    "industry_trends": "Industry Trends",
}

# Older settings rows used different keys for some sections.
LEGACY_SECTION_ALIASES: Dict[str, str] = {"company_owner_info": "key_personnel"}
# Older ENHANCED rows carried separate employee/revenue prompts; they now
# extend the company overview instruction.
ENHANCED_OVERVIEW_SUPPLEMENTS: Tuple[str, ...] = ("employees", "revenue")


def sections_for_tier(tier: ReportTier) -> Tuple[str, ...]:
    return BI_SECTIONS if ReportTier(tier) == ReportTier.BI else ENHANCED_SECTIONS


@dataclass(frozen=True)
class PromptTemplate:
    tier: ReportTier
    system_prompt: str
    sections: Dict[str, str] = field(default_factory=dict)

    def instruction(self, section: str) -> str:
        return self.sections.get(section, "")

    def to_dict(self) -> Dict[str, str]:
        return {"system_prompt": self.system_prompt, **self.sections}


DEFAULT_TEMPLATES: Dict[ReportTier, PromptTemplate] = {
    ReportTier.ENHANCED: PromptTemplate(
        tier=ReportTier.ENHANCED,
        system_prompt=(
            "You are a business analyst creating an enhanced company overview report. "
            "Provide clear, concise insights about the company's potential and key "
            "opportunities. Keep the analysis practical and focused on immediate opportunities."
        ),
        sections={
            "executive_summary": (
                "Generate a comprehensive 2-3 paragraph executive summary that highlights the "
                "company's key strengths, market position, and primary opportunities for "
                "partnership or engagement."
            ),
            "company_overview": (
                "Provide a detailed analysis of the company's operations, market presence, and "
                "competitive positioning based on available data, including company size and "
                "revenue estimates where known."
            ),
            "key_personnel": (
                "Analyze company ownership, leadership structure, and key decision makers based "
                "on enriched data. Include owner contact information, background, and "
                "decision-making authority for partnership discussions."
            ),
            "growth_opportunities": (
                "Identify specific growth opportunities, partnership potential, and areas for "
                "business development collaboration."
            ),
            "recommendations": (
                "Provide actionable recommendations for engagement, partnership approaches, and "
                "next steps for business development."
            ),
        },
    ),
    ReportTier.BI: PromptTemplate(
        tier=ReportTier.BI,
        system_prompt=(
            "You are a business intelligence analyst creating a comprehensive B2B company "
            "report. Generate detailed insights with market analysis, financial projections, "
            "and strategic recommendations. Focus on data-driven insights and actionable "
            "intelligence."
        ),
        sections={
            "executive_summary": (
                "Create an executive summary that provides strategic insights into the company's "
                "market position, financial health, and growth trajectory with specific "
                "recommendations for stakeholders."
            ),
            "company_overview": (
                "Deliver a comprehensive analysis of the company's business model, operations, "
                "competitive landscape, and market positioning with supporting data and metrics."
            ),
            "market_analysis": (
                "Perform comprehensive market analysis including industry trends, competitive "
                "positioning, market size, growth projections, and sector-specific opportunities "
                "and challenges."
            ),
            "financial_insights": (
                "Analyze financial performance, revenue trends, profitability indicators, and "
                "provide financial projections based on available data and industry benchmarks."
            ),
            "key_personnel": (
                "Conduct detailed analysis of leadership team, key personnel, organizational "
                "structure, and assess management capabilities and track record."
            ),
            "growth_opportunities": (
                "Identify and evaluate strategic growth opportunities including market expansion, "
                "product development, partnerships, and investment potential with supporting "
                "analysis."
            ),
            "risk_assessment": (
                "Evaluate potential risks including market risks, competitive threats, "
                "operational challenges, financial risks, and regulatory considerations with "
                "mitigation strategies."
            ),
            "recommendations": (
                "Provide strategic recommendations with specific action items, investment "
                "considerations, partnership strategies, and detailed implementation roadmap."
            ),
        },
    ),
}


def _prompt_text(value: Any) -> Optional[str]:
    """Plain string, or a legacy ``{"prompt": ..., "api": ...}`` object."""
    if isinstance(value, dict):
        value = value.get("prompt")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def get_template(settings_data: Optional[Dict[str, Any]], tier: ReportTier) -> PromptTemplate:
    """
    Effective template for ``tier``: stored values where present, defaults
    field by field otherwise. Blank strings count as unset.
    """
    tier = ReportTier(tier)
    default = DEFAULT_TEMPLATES[tier]
    block = (settings_data or {}).get(tier.value.lower())
    if not isinstance(block, dict):
        block = {}

    for legacy, current in LEGACY_SECTION_ALIASES.items():
        if _prompt_text(block.get(current)) is None and _prompt_text(block.get(legacy)):
            block = {**block, current: block[legacy]}

    sections: Dict[str, str] = {}
    for name in sections_for_tier(tier):
        sections[name] = _prompt_text(block.get(name)) or default.instruction(name)

    if tier == ReportTier.ENHANCED:
        extras = [t for t in (_prompt_text(block.get(k)) for k in ENHANCED_OVERVIEW_SUPPLEMENTS) if t]
        if extras:
            sections["company_overview"] = " ".join([sections["company_overview"], *extras])

    return PromptTemplate(
        tier=tier,
        system_prompt=_prompt_text(block.get("system_prompt")) or default.system_prompt,
        sections=sections,
    )


def effective_settings(settings_data: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, str]]:
    """Both tiers with defaults filled in, as returned to the admin UI."""
    return {
        t.value.lower(): get_template(settings_data, t).to_dict()
        for t in (ReportTier.ENHANCED, ReportTier.BI)
    }


def load_report_settings(db: Session) -> Optional[Dict[str, Any]]:
    """Latest settings row's JSON, or None (no row / unreadable table)."""
    try:
        row = (
            db.query(ReportSettings)
            .order_by(ReportSettings.created_at.desc(), ReportSettings.id.desc())
            .first()
        )
    except SQLAlchemyError:
        logger.exception("Failed to read report_settings", extra={"step": "templates"})
        db.rollback()
        return None
    if row is None or not isinstance(row.settings_data, dict):
        return None
    return row.settings_data


def validate_report_settings(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict) or not data:
        raise SettingsValidationError("Settings data is required")

    for tier_key, block in data.items():
        if tier_key not in ("enhanced", "bi"):
            raise SettingsValidationError(f"Unknown report type: {tier_key}")
        if not isinstance(block, dict):
            raise SettingsValidationError(f"Invalid {tier_key} report settings")
        for key, value in block.items():
            if _prompt_text(value) is None:
                raise SettingsValidationError(
                    f"Missing or invalid {key} in {tier_key} settings"
                )
    return data


def save_report_settings(db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and upsert the latest settings row (no versioning)."""
    data = validate_report_settings(data)
    row = (
        db.query(ReportSettings)
        .order_by(ReportSettings.created_at.desc(), ReportSettings.id.desc())
        .first()
    )
    now = datetime.utcnow()
    if row is None:
        row = ReportSettings(settings_data=data, created_at=now, updated_at=now)
        db.add(row)
    else:
        row.settings_data = data
        row.updated_at = now
    db.commit()

    logger.info("Report settings saved", extra={"step": "templates"})
    return row.settings_data
