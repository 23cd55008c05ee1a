"""
Tests for report_templates.py
"""
import pytest

from app.models.report import ReportTier
from app.models.report_settings import ReportSettings
from app.services.exceptions import SettingsValidationError
from app.services.report_templates import (
    BI_SECTIONS,
    DEFAULT_TEMPLATES,
    ENHANCED_SECTIONS,
    effective_settings,
    get_template,
    load_report_settings,
    save_report_settings,
    sections_for_tier,
    validate_report_settings,
)


class TestSections:
    def test_bi_is_superset_of_enhanced(self):
        assert set(ENHANCED_SECTIONS) < set(BI_SECTIONS)
        assert len(BI_SECTIONS) == 8

    def test_sections_for_tier_accepts_strings(self):
        assert sections_for_tier("BI") == BI_SECTIONS
        assert sections_for_tier(ReportTier.ENHANCED) == ENHANCED_SECTIONS


class TestGetTemplate:
    """Tests for the field-by-field default fallback."""

    def test_no_settings_gives_defaults(self):
        for tier in (ReportTier.ENHANCED, ReportTier.BI):
            assert get_template(None, tier) == DEFAULT_TEMPLATES[tier]

    def test_stored_values_override_defaults(self):
        data = {"enhanced": {"system_prompt": "Be brief.", "executive_summary": "Two lines only."}}
        template = get_template(data, ReportTier.ENHANCED)
        assert template.system_prompt == "Be brief."
        assert template.instruction("executive_summary") == "Two lines only."
        default = DEFAULT_TEMPLATES[ReportTier.ENHANCED]
        assert template.instruction("recommendations") == default.instruction("recommendations")

    def test_blank_values_fall_back(self):
        data = {"bi": {"system_prompt": "   ", "risk_assessment": ""}}
        template = get_template(data, ReportTier.BI)
        default = DEFAULT_TEMPLATES[ReportTier.BI]
        assert template.system_prompt == default.system_prompt
        assert template.instruction("risk_assessment") == default.instruction("risk_assessment")

    def test_other_tier_block_is_ignored(self):
        data = {"bi": {"system_prompt": "BI only"}}
        assert get_template(data, ReportTier.ENHANCED).system_prompt != "BI only"

    def test_legacy_prompt_objects_and_keys(self):
        data = {
            "enhanced": {
                "company_owner_info": {"prompt": "Who owns it?", "api": "openai"},
                "employees": "Mention headcount.",
            }
        }
        template = get_template(data, ReportTier.ENHANCED)
        assert template.instruction("key_personnel") == "Who owns it?"
        assert template.instruction("company_overview").endswith("Mention headcount.")

    def test_every_tier_section_has_instruction(self):
        template = get_template({"bi": {}}, ReportTier.BI)
        assert all(template.instruction(s) for s in BI_SECTIONS)

    def test_effective_settings_has_both_tiers(self):
        out = effective_settings(None)
        assert set(out) == {"enhanced", "bi"}
        assert "system_prompt" in out["bi"] and "risk_assessment" in out["bi"]


class TestValidateReportSettings:
    @pytest.mark.parametrize(
        "data",
        [
            None,
            {},
            {"premium": {"system_prompt": "x"}},
            {"enhanced": "not a dict"},
            {"enhanced": {"system_prompt": "  "}},
        ],
    )
    def test_rejects_invalid_payloads(self, data):
        with pytest.raises(SettingsValidationError):
            validate_report_settings(data)

    def test_accepts_partial_tier_block(self):
        data = {"bi": {"market_analysis": "Focus on local competitors."}}
        assert validate_report_settings(data) is data


class TestPersistence:
    """Tests for load/save against the report_settings table."""

    def test_load_without_rows_is_none(self, db):
        assert load_report_settings(db) is None

    def test_save_then_load(self, db):
        data = {"enhanced": {"system_prompt": "Custom."}}
        save_report_settings(db, data)
        assert load_report_settings(db) == data
        assert get_template(load_report_settings(db), ReportTier.ENHANCED).system_prompt == "Custom."

    def test_save_updates_single_row(self, db):
        save_report_settings(db, {"enhanced": {"system_prompt": "First."}})
        save_report_settings(db, {"bi": {"system_prompt": "Second."}})
        assert db.query(ReportSettings).count() == 1
        assert load_report_settings(db) == {"bi": {"system_prompt": "Second."}}

    def test_invalid_save_writes_nothing(self, db):
        with pytest.raises(SettingsValidationError):
            save_report_settings(db, {"enhanced": {"system_prompt": ""}})
        assert db.query(ReportSettings).count() == 0
