"""Tests for wreckit.workflow.quality module."""

import pytest

from wreckit.workflow.quality import (
    PlanQualityOptions,
    ResearchQualityOptions,
    check_plan_quality,
    check_research_quality,
    count_citations,
    count_phases,
    find_missing_sections,
    section_body,
)

from conftest import PLAN_DOC, RESEARCH_DOC


class TestCitations:
    @pytest.mark.parametrize("text, expected", [
        ("see src/app.py:42", 1),
        ("range lib/util.ts:10-20 and README.md:1", 2),
        ("no refs here: 42", 0),
        ("path/to/file.ext:123, other/file.go:7", 2),
    ])
    def test_count(self, text, expected):
        assert count_citations(text) == expected


class TestSections:
    def test_header_means_any_title(self):
        assert find_missing_sections("## Summary\n", ["Header", "Summary"]) == ["Header"]
        assert find_missing_sections("# Anything\n## Summary\n", ["Header", "Summary"]) == []

    def test_heading_match_ignores_case_and_level(self):
        assert find_missing_sections("# t\n### KEY files\n", ["Key Files"]) == []

    def test_headings_inside_code_fences_do_not_count(self):
        doc = "# t\n```\n## Summary\n```\n"
        assert find_missing_sections(doc, ["Summary"]) == ["Summary"]

    def test_body_stops_at_next_sibling(self):
        doc = "# t\n## Summary\nshort text\n### detail\nmore\n## Next\nother\n"
        assert section_body(doc, "Summary") == "short text\n### detail\nmore"
        assert section_body(doc, "Missing") == ""


class TestResearchQuality:
    def test_well_formed_document_passes(self):
        result = check_research_quality(RESEARCH_DOC)
        assert result.valid, result.errors
        assert result.citations >= 5
        assert result.missing_sections == []

    def test_bare_document_fails_every_check(self):
        result = check_research_quality("# Research\n")
        assert not result.valid
        assert "Research Question" in result.missing_sections
        assert len(result.errors) == 4
        assert result.errors[1].startswith("Insufficient citations: found 0")

    def test_thresholds_come_from_options(self):
        options = ResearchQualityOptions(
            min_citations=0, min_summary_length=0, min_analysis_length=0, required_sections=["Header"]
        )
        assert check_research_quality("# Research\n", options).valid


class TestPlanQuality:
    def test_well_formed_plan_passes(self):
        result = check_plan_quality(PLAN_DOC)
        assert result.valid, result.errors
        assert result.phases == 2

    def test_phases_section_without_phases(self):
        doc = PLAN_DOC.replace("### Phase 1: Middleware", "Step one").replace("### Phase 2: Route", "Step two")
        result = check_plan_quality(doc)
        assert not result.valid
        assert result.errors == ["Insufficient implementation phases: found 0, required at least 1"]

    def test_count_phases_ignores_other_sections(self):
        doc = "# p\n## Overview\n### not a phase\n## Phases\n### One\n#### detail\n### Two\n## Testing Strategy\n"
        assert count_phases(doc) == 2

    def test_missing_sections(self):
        result = check_plan_quality("# Plan\n", PlanQualityOptions(min_phases=0))
        assert result.missing_sections == [
            "Overview", "Current State", "Desired End State", "What We're NOT Doing",
            "Implementation Approach", "Phases", "Testing Strategy",
        ]
