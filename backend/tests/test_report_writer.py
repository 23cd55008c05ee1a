"""
Tests for report_writer.py

The LLM client is a MagicMock shaped like the OpenAI SDK response; no test
talks to a real model.
"""
import json
from unittest.mock import MagicMock

import pytest

from app.models.report import ReportTier
from app.schemas.report import SECTION_MIN_LENGTHS, validate_report_content
from app.services.report_templates import (
    BI_SECTIONS,
    DEFAULT_TEMPLATES,
    ENHANCED_SECTIONS,
    get_template,
)
from app.services.report_writer import (
    ReportContext,
    ReportWriter,
    build_data_sources,
    build_variables,
    extract_sections,
    fallback_section,
    substitute,
)
from tests.fixtures.enrichment_fixtures import LONG, MARKDOWN_REPORT


def llm_returning(text):
    client = MagicMock()
    message = MagicMock()
    message.content = text
    client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])
    return client


def llm_failing(exc=None):
    client = MagicMock()
    client.chat.completions.create.side_effect = exc or TimeoutError("upstream timed out")
    return client


def make_ctx(**overrides):
    data = dict(
        company_id="c-1",
        company_name="Acme Plumbing",
        website="https://acmeplumbing.com",
        phone="(512) 555-0100",
        address="100 Main St, Austin, TX",
        rating=4.6,
        review_count=87,
        industry="Plumbing",
        city="Austin",
        state="TX",
        enrichment={},
    )
    data.update(overrides)
    return ReportContext(**data)


ENRICHED = {
    "owner_name": "Jane Doe",
    "owner_email": "jane@acmeplumbing.com",
    "employee_count": 42,
    "revenue": 1234567,
    "sources": {
        "owner_name": "hunter",
        "owner_email": "hunter",
        "employee_count": "apollo",
        "revenue": "apollo",
    },
    "pending_sources": ["clay"],
    "confidence": 0.85,
}


class TestBuildVariables:
    """Formatting and defaults of the template variables."""

    def test_formats_enriched_context(self):
        v = build_variables(make_ctx(enrichment=ENRICHED))
        assert v["location"] == "Austin, TX"
        assert v["rating"] == "4.6/5.0"
        assert v["owner_name"] == "Jane Doe"
        assert v["revenue"] == "$1,234,567"
        assert v["confidence_score"] == "85%"
        assert v["analyst_name"]

    def test_defaults_for_missing_data(self):
        ctx = make_ctx(
            industry=None, city=None, state=None, address=None, website=None, rating=None
        )
        v = build_variables(ctx)
        assert v["industry"] == "General business"
        assert v["location"] == "Location not specified"
        assert v["website"] == "Not available"
        assert v["rating"] == "Not rated"
        assert v["owner_name"] == "Contact not identified"
        assert v["revenue"] == "Not disclosed"
        assert v["employee_count"] == "Not disclosed"
        assert v["confidence_score"] == "Low"

    def test_address_used_when_city_unknown(self):
        v = build_variables(make_ctx(city=None, state=None, address="1 Pike St, Seattle"))
        assert v["location"] == "1 Pike St, Seattle"


class TestSubstitute:
    def test_replaces_known_placeholders(self):
        assert substitute("Report on {{company_name}} in {{ location }}", {
            "company_name": "Acme", "location": "Austin, TX"
        }) == "Report on Acme in Austin, TX"

    def test_unknown_placeholders_left_alone(self):
        assert substitute("Hi {{ nobody }}", {"company_name": "Acme"}) == "Hi {{ nobody }}"


class TestBuildDataSources:
    def test_base_sources_only_without_enrichment(self):
        assert build_data_sources({}) == ["Company website", "Public business records"]

    def test_contributing_vendors_are_labelled(self):
        sources = build_data_sources(ENRICHED)
        assert sources == ["Company website", "Public business records", "Hunter.io", "Apollo.io"]

    def test_pending_vendor_not_listed(self):
        assert "Clay" not in build_data_sources(ENRICHED)


class TestExtractSections:
    """Best-effort parsing of model output."""

    def test_markdown_with_mixed_header_styles(self):
        sections = extract_sections(MARKDOWN_REPORT)
        assert set(sections) == set(ENHANCED_SECTIONS)
        assert sections["key_personnel"].startswith("Jane Doe owns the business")
        assert sections["recommendations"].startswith("Contact Jane Doe")
        assert "## " not in sections["executive_summary"]

    def test_json_object(self):
        raw = json.dumps({"executive_summary": LONG, "Risk Assessment": LONG, "unrelated": "x"})
        sections = extract_sections("```json\n" + raw + "\n```")
        assert sections == {"executive_summary": LONG, "risk_assessment": LONG}

    def test_inline_text_after_colon(self):
        sections = extract_sections("Executive Summary: A short line.\nMore detail here.")
        assert sections["executive_summary"] == "A short line.\nMore detail here."

    def test_empty_and_unstructured_output(self):
        assert extract_sections("") == {}
        assert extract_sections("I cannot help with that.") == {}

    def test_first_occurrence_wins(self):
        text = "## Recommendations\nFirst version.\n## Recommendations\nSecond version."
        assert extract_sections(text)["recommendations"] == "First version."


class TestFallbackSection:
    @pytest.mark.parametrize("section", BI_SECTIONS)
    def test_fallback_meets_minimum_even_with_sparse_data(self, section):
        v = build_variables(
            make_ctx(company_name="X", industry=None, city=None, state=None, address=None)
        )
        assert len(fallback_section(section, v).strip()) >= SECTION_MIN_LENGTHS[section]


class TestReportWriter:
    """Tests for ReportWriter.generate."""

    def test_llm_failure_falls_back_to_context(self):
        ctx = make_ctx(company_name="Pike Diner", industry="Restaurants", city="Seattle", state="WA")
        client = llm_failing()
        content = ReportWriter(llm_client=client).generate(
            ctx, ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )

        assert content["tier"] == "ENHANCED"
        assert "Restaurants" in content["executive_summary"]
        assert "Seattle, WA" in content["executive_summary"]
        validate_report_content(content)

    def test_bi_without_enrichment_still_validates(self):
        content = ReportWriter(llm_client=llm_returning("")).generate(
            make_ctx(), ReportTier.BI, DEFAULT_TEMPLATES[ReportTier.BI]
        )
        for section in BI_SECTIONS:
            assert content[section]
        assert "Contact not identified" in content["key_personnel"]
        assert content["data_sources"] == ["Company website", "Public business records"]
        validate_report_content(content)

    def test_bi_sections_superset_of_enhanced(self):
        writer = ReportWriter(llm_client=llm_returning(MARKDOWN_REPORT))
        enhanced = writer.generate(make_ctx(), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED])
        bi = writer.generate(make_ctx(), ReportTier.BI, DEFAULT_TEMPLATES[ReportTier.BI])
        assert set(enhanced) <= set(bi)

    def test_parsed_sections_used_when_long_enough(self):
        writer = ReportWriter(llm_client=llm_returning(MARKDOWN_REPORT))
        content = writer.generate(make_ctx(), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED])
        assert content["key_personnel"].startswith("Jane Doe owns the business")

    def test_short_section_replaced_by_fallback(self):
        raw = MARKDOWN_REPORT.replace(
            "Jane Doe owns the business and handles all commercial relationships and supplier negotiations.",
            "Jane.",
        )
        content = ReportWriter(llm_client=llm_returning(raw)).generate(
            make_ctx(enrichment=ENRICHED), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )
        assert content["key_personnel"].startswith("Primary contact: Jane Doe")

    def test_optional_bi_sections_only_when_returned(self):
        raw = MARKDOWN_REPORT + "\n## Industry Trends\nDemand for licensed plumbers keeps growing.\n"
        bi = ReportWriter(llm_client=llm_returning(raw)).generate(
            make_ctx(), ReportTier.BI, DEFAULT_TEMPLATES[ReportTier.BI]
        )
        assert bi["industry_trends"].startswith("Demand for licensed plumbers")
        assert "competitive_landscape" not in bi

        enhanced = ReportWriter(llm_client=llm_returning(raw)).generate(
            make_ctx(), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )
        assert "industry_trends" not in enhanced

    def test_data_sources_list_contributing_vendors(self):
        content = ReportWriter(llm_client=llm_returning("")).generate(
            make_ctx(enrichment=ENRICHED), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )
        assert content["data_sources"][:2] == ["Company website", "Public business records"]
        assert {"Hunter.io", "Apollo.io"} <= set(content["data_sources"])

    def test_generated_at_is_utc_iso(self):
        content = ReportWriter(llm_client=llm_returning("")).generate(
            make_ctx(), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )
        assert content["generated_at"].endswith("Z")

    @pytest.mark.parametrize(
        "tier, max_tokens",
        [(ReportTier.ENHANCED, 1200), (ReportTier.BI, 2000)],
    )
    def test_single_call_with_tier_parameters(self, tier, max_tokens):
        client = llm_returning(MARKDOWN_REPORT)
        ReportWriter(llm_client=client).generate(make_ctx(), tier, DEFAULT_TEMPLATES[tier])

        assert client.chat.completions.create.call_count == 1
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == max_tokens
        assert kwargs["temperature"] == 0.3

    def test_prompts_are_substituted(self):
        client = llm_returning(MARKDOWN_REPORT)
        template = get_template(
            {"enhanced": {"system_prompt": "You analyse {{ industry }} firms for {{ analyst_name }}."}},
            ReportTier.ENHANCED,
        )
        ReportWriter(llm_client=client).generate(make_ctx(enrichment=ENRICHED), ReportTier.ENHANCED, template)

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        system, user = messages[0]["content"], messages[1]["content"]
        assert system.startswith("You analyse Plumbing firms for ")
        assert "{{" not in user
        assert "Owner: Jane Doe" in user
        assert "Key Personnel" in user
        assert "Market Analysis" not in user

    def test_without_any_llm_key_falls_back(self):
        content = ReportWriter().generate(
            make_ctx(), ReportTier.ENHANCED, DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        )
        validate_report_content(content)
