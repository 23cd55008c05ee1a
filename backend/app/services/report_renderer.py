from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List
import logging

from jinja2 import Environment, select_autoescape

from ..models.report import ReportTier
from .report_templates import SECTION_TITLES, sections_for_tier
from .report_writer import OPTIONAL_BI_SECTIONS, ReportContext, build_variables

logger = logging.getLogger(__name__)

TIER_STYLES = {
    ReportTier.ENHANCED: {"label": "Enhanced Analysis", "color": "#059669", "dark": "#047857"},
    ReportTier.BI: {"label": "Business Intelligence", "color": "#dc2626", "dark": "#991b1b"},
}

REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ style.label }} Report - {{ company_name }}</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               line-height: 1.6; max-width: 900px; margin: 0 auto; padding: 20px;
               color: #333; background: #f8fafc; }
        .container { background: white; border-radius: 12px; box-shadow: 0 4px 20px rgba(0,0,0,0.1); overflow: hidden; }
        .header { background: linear-gradient(135deg, {{ style.color }} 0%, {{ style.dark }} 100%);
                  color: white; padding: 40px 30px; text-align: center; }
        .tier-badge { display: inline-block; background: rgba(255,255,255,0.2); color: white;
                      padding: 6px 16px; border-radius: 20px; font-size: 14px; font-weight: 600;
                      text-transform: uppercase; margin-bottom: 15px; }
        .company-title { font-size: 32px; font-weight: 700; margin: 0; }
        .content { padding: 40px 30px; }
        .company-info { background: #f8fafc; padding: 25px; border-radius: 8px; margin-bottom: 30px;
                        border-left: 4px solid {{ style.color }}; }
        .info-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 15px; margin-top: 15px; }
        .info-item { font-size: 14px; }
        .info-label { font-weight: 600; margin-right: 8px; }
        .section { margin-bottom: 35px; }
        .section h2 { color: #1f2937; border-left: 4px solid {{ style.color }}; padding-left: 20px;
                      margin-bottom: 20px; font-size: 24px; font-weight: 600; }
        .section-content { font-size: 16px; line-height: 1.7; color: #374151; }
        .footer { margin-top: 40px; padding-top: 25px; border-top: 2px solid #e5e7eb; font-size: 14px; color: #6b7280; }
        .data-sources { display: flex; flex-wrap: wrap; gap: 8px; margin-top: 10px; }
        .source-tag { background: #eff6ff; color: #1d4ed8; padding: 4px 10px; border-radius: 16px; font-size: 12px; }
        @media (max-width: 768px) {
            body { padding: 10px; }
            .header, .content { padding: 30px 20px; }
            .company-title { font-size: 24px; }
        }
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <div class="tier-badge">{{ style.label }}</div>
            <h1 class="company-title">{{ company_name }}</h1>
            <p style="margin: 0; opacity: 0.9;">Generated on {{ generated_on }}</p>
        </div>
        <div class="content">
            <div class="company-info">
                <h3 style="margin-top: 0; color: #1f2937;">Company Information</h3>
                <div class="info-grid">
                    {% for label, value in info %}
                    <div class="info-item"><span class="info-label">{{ label }}:</span><span>{{ value }}</span></div>
                    {% endfor %}
                </div>
            </div>
            {% for section in sections %}
            <div class="section" id="{{ section.key }}">
                <h2>{{ section.title }}</h2>
                <div class="section-content">
                    {% for paragraph in section.paragraphs %}<p>{{ paragraph }}</p>{% endfor %}
                </div>
            </div>
            {% endfor %}
            <div class="footer">
                <p><strong>Data Sources:</strong></p>
                <div class="data-sources">
                    {% for source in data_sources %}<span class="source-tag">{{ source }}</span>{% endfor %}
                </div>
                <p style="margin-top: 20px;">
                    This report was generated by Exit School's AI-powered business intelligence platform.
                    All analysis is based on publicly available data and should be verified for accuracy.
                </p>
            </div>
        </div>
    </div>
</body>
</html>
"""

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))
_template = _env.from_string(REPORT_TEMPLATE)


def _paragraphs(value: Any) -> List[str]:
    if not isinstance(value, str):
        return []
    return [line.strip() for line in value.split("\n") if line.strip()]


def _generated_on(value: Any) -> str:
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return str(value or "")
    return dt.strftime("%B %d, %Y")


def render_report_html(content: Dict[str, Any], company: ReportContext) -> str:
    """
    Self-contained HTML document for a report.

    All text is autoescaped. BI-only and optional sections appear only when
    the content carries them; a malformed section renders empty.
    """
    try:
        tier = ReportTier(content.get("tier"))
    except ValueError:
        tier = ReportTier.ENHANCED

    keys = list(sections_for_tier(tier))
    if tier == ReportTier.BI:
        keys.extend(k for k in OPTIONAL_BI_SECTIONS if content.get(k))

    sections = [
        {"key": k, "title": SECTION_TITLES[k], "paragraphs": _paragraphs(content.get(k))}
        for k in keys
        if k in content
    ]

    v = build_variables(company)
    info = [
        ("Industry", v["industry"]),
        ("Location", v["location"]),
        ("Website", v["website"]),
        ("Phone", v["phone"]),
        ("Rating", v["rating"]),
        ("Employees", v["employee_count"]),
    ]

    data_sources = content.get("data_sources")
    if not isinstance(data_sources, list):
        data_sources = []

    return _template.render(
        style=TIER_STYLES[tier],
        company_name=company.company_name,
        generated_on=_generated_on(content.get("generated_at")),
        info=info,
        sections=sections,
        data_sources=[str(s) for s in data_sources],
    )
