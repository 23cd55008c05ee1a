"""
Tests for the report content schema (schemas/report.py).
"""
import pytest

from app.schemas.report import (
    BIReportContent,
    EnhancedReportContent,
    validate_report_content,
)
from app.services.exceptions import ReportSchemaError
from tests.fixtures.enrichment_fixtures import LONG, valid_content


class TestValidateReportContent:
    def test_valid_enhanced(self):
        model = validate_report_content(valid_content("ENHANCED"))
        assert isinstance(model, EnhancedReportContent)

    def test_valid_bi(self):
        model = validate_report_content(valid_content("BI"))
        assert isinstance(model, BIReportContent)

    def test_bi_optional_sections_kept(self):
        model = validate_report_content(valid_content("BI", industry_trends="Steady demand."))
        assert model.industry_trends == "Steady demand."
        dumped = model.model_dump(mode="json", exclude_none=True)
        assert "competitive_landscape" not in dumped

    def test_short_section_rejected(self):
        with pytest.raises(ReportSchemaError, match="executive_summary"):
            validate_report_content(valid_content(executive_summary="Too short."))

    def test_overview_needs_100_chars(self):
        with pytest.raises(ReportSchemaError):
            validate_report_content(valid_content(company_overview="x" * 99))
        validate_report_content(valid_content(company_overview="x" * 100))

    def test_whitespace_does_not_count(self):
        padded = "   " + "y" * 45 + "      "
        with pytest.raises(ReportSchemaError):
            validate_report_content(valid_content(key_personnel=padded))

    def test_bi_missing_section_rejected(self):
        content = valid_content("BI")
        del content["risk_assessment"]
        with pytest.raises(ReportSchemaError, match="risk_assessment"):
            validate_report_content(content)

    def test_enhanced_ignores_bi_fields(self):
        model = validate_report_content(valid_content(market_analysis=LONG))
        assert "market_analysis" not in model.model_dump()

    def test_unknown_tier_rejected(self):
        with pytest.raises(ReportSchemaError):
            validate_report_content(valid_content(tier="PREMIUM"))

    def test_data_sources_deduplicated(self):
        model = validate_report_content(
            valid_content(data_sources=["Hunter.io", " Hunter.io ", "Apollo.io"])
        )
        assert model.data_sources == ["Hunter.io", "Apollo.io"]

    @pytest.mark.parametrize("sources", [[], ["  "]])
    def test_data_sources_required(self, sources):
        with pytest.raises(ReportSchemaError):
            validate_report_content(valid_content(data_sources=sources))

    def test_generated_at_must_be_timestamp(self):
        with pytest.raises(ReportSchemaError):
            validate_report_content(valid_content(generated_at="yesterday"))
