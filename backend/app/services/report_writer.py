# backend/app/services/report_writer.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import enum
import json
import logging
import re
import textwrap

from ..core.config import get_settings
from ..models.report import ReportTier
from ..schemas.report import SECTION_MIN_LENGTHS
from .enrichment import LOW_CONFIDENCE, EnrichmentResult
from .llm import get_llm_client, limit_llm_concurrency
from .report_templates import SECTION_TITLES, PromptTemplate, sections_for_tier

settings = get_settings()
logger = logging.getLogger(__name__)

TIER_PARAMS: Dict[ReportTier, Dict[str, Any]] = {
    ReportTier.ENHANCED: {"max_tokens": 1200, "temperature": 0.3},
    ReportTier.BI: {"max_tokens": 2000, "temperature": 0.3},
}

# Sections BI reports may carry when the model volunteers them.
OPTIONAL_BI_SECTIONS = ("competitive_landscape", "industry_trends")

BASE_DATA_SOURCES = ["Company website", "Public business records"]
VENDOR_LABELS = {
    "hunter": "Hunter.io",
    "apollo": "Apollo.io",
    "zoominfo": "ZoomInfo",
    "clay": "Clay",
}

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_BOLD = r"(?:\*\*|__)?"
_HEADER_RE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?" + _BOLD + r"[ \t]*(?:\d+[.)][ \t]*)?" + _BOLD + r"[ \t]*"
    r"(?P<title>" + "|".join(re.escape(t) for t in SECTION_TITLES.values()) + r")"
    r"[ \t]*" + _BOLD + r"[ \t]*(?::[ \t]*" + _BOLD + r"[ \t]*(?P<rest>.*?))?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_TITLE_TO_KEY = {t.lower(): k for k, t in SECTION_TITLES.items()}


class GenerationState(str, enum.Enum):
    CONTEXT_BUILT = "CONTEXT_BUILT"
    LLM_CALLED = "LLM_CALLED"
    SECTIONS_PARSED = "SECTIONS_PARSED"
    LLM_FAILED = "LLM_FAILED"
    FALLBACK_APPLIED = "FALLBACK_APPLIED"


@dataclass
class ReportContext:
    """Everything the writer knows about a company, detached from the session."""

    company_id: str
    company_name: str
    website: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    industry: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    enrichment: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_company(cls, company: Any) -> "ReportContext":
        search = getattr(company, "search", None)
        return cls(
            company_id=str(company.id),
            company_name=company.name,
            website=company.website,
            phone=company.phone,
            address=company.address,
            rating=company.rating,
            review_count=company.review_count,
            industry=getattr(search, "industry", None),
            city=getattr(search, "city", None),
            state=getattr(search, "state", None),
            enrichment=dict(company.enrichment_data or {}),
        )


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _format_location(ctx: ReportContext) -> str:
    city = (ctx.city or "").strip()
    state = (ctx.state or "").strip()
    if city and state:
        return f"{city}, {state}"
    if city or state:
        return city or state
    return _text(ctx.address, "Location not specified")


def _format_revenue(value: Any) -> str:
    try:
        amount = int(float(value))
    except (TypeError, ValueError):
        return "Not disclosed"
    return f"${amount:,}" if amount > 0 else "Not disclosed"


def _format_confidence(enrichment: Dict[str, Any]) -> str:
    confidence = enrichment.get("confidence")
    if not isinstance(confidence, (int, float)) or confidence <= LOW_CONFIDENCE:
        return "Low"
    return f"{round(confidence * 100)}%"


def build_variables(ctx: ReportContext) -> Dict[str, str]:
    """Template variables with human-readable defaults for missing data."""
    e = ctx.enrichment
    return {
        "company_name": _text(ctx.company_name, "This company"),
        "industry": _text(ctx.industry, "General business"),
        "location": _format_location(ctx),
        "website": _text(ctx.website, "Not available"),
        "phone": _text(ctx.phone, "Not available"),
        "rating": f"{ctx.rating:.1f}/5.0" if ctx.rating else "Not rated",
        "review_count": _text(ctx.review_count, "Not available"),
        "owner_name": _text(e.get("owner_name"), "Contact not identified"),
        "owner_email": _text(e.get("owner_email"), "Not available"),
        "owner_phone": _text(e.get("owner_phone"), "Not available"),
        "employee_count": _text(e.get("employee_count"), "Not disclosed"),
        "revenue": _format_revenue(e.get("revenue")),
        "confidence_score": _format_confidence(e),
        "current_date": datetime.utcnow().strftime("%B %d, %Y"),
        "analyst_name": settings.REPORT_ANALYST_NAME,
    }


def substitute(text: str, variables: Dict[str, str]) -> str:
    """Replace ``{{ name }}`` placeholders; unknown names are left as written."""
    return _PLACEHOLDER_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), text)


def build_data_sources(enrichment: Dict[str, Any]) -> List[str]:
    """Base sources plus every vendor that supplied at least one populated field."""
    out = list(BASE_DATA_SOURCES)
    for vendor in EnrichmentResult.from_record(enrichment).contributing_vendors:
        label = VENDOR_LABELS.get(vendor, vendor.title())
        if label not in out:
            out.append(label)
    return out


def _coerce_section_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return "\n".join(v.strip() for v in value if v.strip())
    return None


def _parse_json_sections(content: str) -> Dict[str, str]:
    text = content.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text, flags=re.IGNORECASE)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return {}
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}

    out: Dict[str, str] = {}
    for raw_key, value in data.items():
        key = str(raw_key).strip().lower().replace(" ", "_")
        key = _TITLE_TO_KEY.get(str(raw_key).strip().lower(), key)
        if key in SECTION_TITLES:
            section = _coerce_section_text(value)
            if section:
                out[key] = section
    return out


def _parse_header_sections(content: str) -> Dict[str, str]:
    matches = list(_HEADER_RE.finditer(content))
    out: Dict[str, str] = {}
    for i, m in enumerate(matches):
        key = _TITLE_TO_KEY[m.group("title").lower()]
        if key in out:
            continue
        body_end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
        body = content[m.end() : body_end]
        inline = (m.group("rest") or "").strip()
        section = "\n".join(p for p in [inline, body.strip()] if p)
        section = re.sub(r"\n-{3,}\s*$", "", section).strip()
        if section:
            out[key] = section
    return out


def extract_sections(content: str) -> Dict[str, str]:
    """
    Best-effort parse of the model output.

    A JSON object keyed by section is taken first; otherwise the text is
    scanned for recognised section headers (markdown #, bold, numbering and
    trailing colons tolerated). Missing sections are simply absent.
    """
    if not content or not content.strip():
        return {}
    return _parse_json_sections(content) or _parse_header_sections(content)


def fallback_section(section: str, v: Dict[str, str]) -> str:
    """Deterministic prose built from the context; always clears the minimum length."""
    name = v["company_name"]
    templates = {
        "executive_summary": (
            f"{name} is a {v['industry']} business based in {v['location']}. "
            "This report summarises the publicly available business data and third-party "
            "enrichment gathered for the company and outlines its potential as an "
            "acquisition or partnership target."
        ),
        "company_overview": (
            f"{name} operates in the {v['industry']} sector from {v['location']}. "
            f"Workforce size: {v['employee_count']}. Estimated annual revenue: {v['revenue']}. "
            f"Website: {v['website']}. Phone: {v['phone']}. "
            f"Customer rating: {v['rating']} ({v['review_count']} reviews)."
        ),
        "key_personnel": (
            f"Primary contact: {v['owner_name']}. Email: {v['owner_email']}. "
            f"Phone: {v['owner_phone']}. Ownership and decision-making authority should be "
            "confirmed directly before any acquisition discussion."
        ),
        "growth_opportunities": (
            f"Growth opportunities for {name} include widening its customer base in "
            f"{v['location']}, strengthening its online presence and reviews, and adding "
            f"adjacent services within the {v['industry']} sector."
        ),
        "recommendations": (
            f"Schedule an introductory call with the primary contact ({v['owner_name']}) to "
            "confirm ownership, discuss succession plans and validate the figures in this "
            "report before preparing an offer."
        ),
        "market_analysis": (
            f"{name} competes in the {v['industry']} market in {v['location']}. Local demand, "
            f"competitor density and customer sentiment (currently {v['rating']} from "
            f"{v['review_count']} reviews) are the main indicators available; a dedicated "
            "market study is recommended before valuation."
        ),
        "financial_insights": (
            f"Financial analysis for {name} is based on the available estimates: annual "
            f"revenue {v['revenue']} and a workforce of {v['employee_count']}. These figures "
            f"come from third-party data providers (data confidence: {v['confidence_score']}) "
            "and should be verified against tax returns and bank statements during due diligence."
        ),
        "risk_assessment": (
            f"Key risks for {name} include owner dependence, customer concentration and local "
            f"competition within the {v['industry']} sector in {v['location']}. Data confidence "
            f"is {v['confidence_score']}; standard due diligence on financials, licences and "
            "leases is recommended before any offer."
        ),
    }
    return templates[section]


class ReportWriter:
    """
    Turns a company context plus a prompt template into report content.

    One LLM call per report. Whatever the model returns (or fails to return)
    every section of the tier ends up filled: parsed text where it is long
    enough, templated fallback prose otherwise.
    """

    def __init__(self, llm_client: Any | None = None):
        self.llm_client = llm_client

    def _log_state(self, state: GenerationState, ctx: ReportContext, tier: ReportTier, **meta: Any) -> None:
        logger.info(
            "Report generation %s %s",
            state.value,
            meta or "",
            extra={"company_id": ctx.company_id, "tier": tier.value, "step": state.value},
        )

    def build_prompts(
        self,
        template: PromptTemplate,
        tier: ReportTier,
        variables: Dict[str, str],
    ) -> tuple[str, str]:
        numbered = "\n".join(
            f"{i}. {SECTION_TITLES[name]}: {template.instruction(name)}"
            for i, name in enumerate(sections_for_tier(tier), start=1)
        )
        user_prompt = textwrap.dedent(
            """
            Generate a {tier_label} business report for the following company.

            Company Information:
            - Name: {{{{ company_name }}}}
            - Industry: {{{{ industry }}}}
            - Location: {{{{ location }}}}
            - Website: {{{{ website }}}}
            - Phone: {{{{ phone }}}}
            - Rating: {{{{ rating }}}}
            - Reviews: {{{{ review_count }}}}

            Enrichment Data:
            - Owner: {{{{ owner_name }}}}
            - Owner Email: {{{{ owner_email }}}}
            - Owner Phone: {{{{ owner_phone }}}}
            - Employee Count: {{{{ employee_count }}}}
            - Annual Revenue: {{{{ revenue }}}}
            - Data Confidence: {{{{ confidence_score }}}}

            Write the following sections, in this order. Start each one with a
            markdown heading of the form "## <Section Title>" and write plain prose
            under it:
            {numbered}

            Make the report professional, data-driven and actionable. Only use the
            data above; say "Not disclosed" rather than inventing figures.
            Prepared by {{{{ analyst_name }}}} on {{{{ current_date }}}}.
            """
        ).format(tier_label=tier.value.lower(), numbered=numbered)

        return (
            substitute(template.system_prompt, variables),
            substitute(user_prompt, variables),
        )

    def _call_llm(self, system_prompt: str, user_prompt: str, tier: ReportTier) -> str:
        client = self.llm_client or get_llm_client()
        params = TIER_PARAMS[tier]
        with limit_llm_concurrency():
            resp = client.chat.completions.create(
                model=settings.LLM_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=params["temperature"],
                max_tokens=params["max_tokens"],
            )
        return resp.choices[0].message.content or ""

    def generate(
        self,
        ctx: ReportContext,
        tier: ReportTier,
        template: PromptTemplate,
    ) -> Dict[str, Any]:
        tier = ReportTier(tier)
        variables = build_variables(ctx)
        self._log_state(GenerationState.CONTEXT_BUILT, ctx, tier)

        parsed: Dict[str, str] = {}
        try:
            system_prompt, user_prompt = self.build_prompts(template, tier, variables)
            raw = self._call_llm(system_prompt, user_prompt, tier)
            self._log_state(GenerationState.LLM_CALLED, ctx, tier, chars=len(raw))
            parsed = extract_sections(raw)
            self._log_state(GenerationState.SECTIONS_PARSED, ctx, tier, sections=sorted(parsed))
        except Exception as e:
            logger.exception(
                "LLM call failed; using fallback content: %s",
                e,
                extra={"company_id": ctx.company_id, "tier": tier.value, "step": GenerationState.LLM_FAILED.value},
            )

        content: Dict[str, Any] = {"tier": tier.value}
        fallback_used: List[str] = []
        for name in sections_for_tier(tier):
            text = (parsed.get(name) or "").strip()
            if len(text) < SECTION_MIN_LENGTHS[name]:
                text = fallback_section(name, variables)
                fallback_used.append(name)
            content[name] = text

        if tier == ReportTier.BI:
            for name in OPTIONAL_BI_SECTIONS:
                if parsed.get(name):
                    content[name] = parsed[name]

        if fallback_used:
            self._log_state(GenerationState.FALLBACK_APPLIED, ctx, tier, sections=fallback_used)

        content["data_sources"] = build_data_sources(ctx.enrichment)
        content["generated_at"] = datetime.utcnow().isoformat() + "Z"
        return content
