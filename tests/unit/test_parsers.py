"""Tests for core/parsers.py."""

from __future__ import annotations

from auditx.core.parsers import parse_executive_summary, parse_gap_report, parse_recommendations
from auditx.models.audit import ControlStatus


class TestParseGapReport:
    def test_parses_all_valid_lines(self, sample_gap_report: str):
        findings = parse_gap_report(sample_gap_report)
        assert len(findings) == 3

    def test_sorted_by_gap_descending(self):
        text = (
            "[A-1.1] Gap: 0.2 | Score: 80% | a\n"
            "[A-1.2] Gap: 0.9 | Score: 80% | b\n"
            "[A-1.3] Gap: 0.5 | Score: 80% | c\n"
        )
        assert [f.gap for f in parse_gap_report(text)] == [0.9, 0.5, 0.2]

    def test_ties_keep_line_order(self):
        text = (
            "[A-1.1] Gap: 0.5 | Score: 80% | first\n"
            "[B-1.1] Gap: 0.5 | Score: 80% | second\n"
            "[A-1.2] Gap: 0.5 | Score: 80% | third\n"
        )
        assert [f.description for f in parse_gap_report(text)] == ["first", "second", "third"]

    def test_fields(self):
        [f] = parse_gap_report("[B-2.3] Gap: 0.90 | Score: 35% | No production deployment evidence  ")
        assert f.control_id == "B-2.3"
        assert f.control_name == "Control B-2.3"
        assert f.gap == 0.9
        assert f.score == 35
        assert f.description == "No production deployment evidence"
        assert f.status_code == ControlStatus.FAIL

    def test_malformed_line_dropped(self):
        findings = parse_gap_report("garbage\n[A-1.1] Gap: 0.3 | Score: 80% | desc")
        assert len(findings) == 1
        assert findings[0].control_id == "A-1.1"

    def test_status_boundaries(self):
        text = "\n".join(
            f"[A-1.{i}] Gap: 0.{i} | Score: {score}% | s" for i, score in enumerate([90, 89, 70, 69], 1)
        )
        by_score = {f.score: f.status_code for f in parse_gap_report(text)}
        assert by_score[90] == ControlStatus.PASS
        assert by_score[89] == ControlStatus.PARTIAL
        assert by_score[70] == ControlStatus.PARTIAL
        assert by_score[69] == ControlStatus.FAIL

    def test_unparsable_gap_dropped(self):
        text = "[A-1.1] Gap: 1.2.3 | Score: 80% | bad\n[A-1.2] Gap: 0.4 | Score: 80% | good"
        findings = parse_gap_report(text)
        assert [f.control_id for f in findings] == ["A-1.2"]

    def test_score_above_100_dropped(self):
        assert parse_gap_report("[A-1.1] Gap: 0.1 | Score: 150% | x") == []

    def test_oversize_score_digits_dropped(self):
        text = f"[A-1.1] Gap: 0.1 | Score: {'9' * 5001}% | x\n[A-1.2] Gap: 0.2 | Score: 80% | ok"
        assert [f.control_id for f in parse_gap_report(text)] == ["A-1.2"]

    def test_non_finite_gap_dropped(self):
        text = f"[A-1.1] Gap: {'9' * 400} | Score: 80% | x"
        assert parse_gap_report(text) == []

    def test_unknown_module_prefix_ignored(self):
        assert parse_gap_report("[C-1.1] Gap: 0.1 | Score: 50% | x") == []

    def test_gap_above_one_allowed(self):
        [f] = parse_gap_report("[A-1.1] Gap: 3.5 | Score: 10% | x")
        assert f.gap == 3.5

    def test_crlf_line_endings(self):
        text = "[A-1.1] Gap: 0.1 | Score: 95% | a\r\n[A-1.2] Gap: 0.2 | Score: 95% | b\r\n"
        findings = parse_gap_report(text)
        assert [f.control_id for f in findings] == ["A-1.2", "A-1.1"]
        assert findings[0].description == "b"

    def test_empty_and_none(self):
        assert parse_gap_report("") == []
        assert parse_gap_report(None) == []


class TestParseRecommendations:
    def test_groups_and_items(self):
        groups = parse_recommendations("[A-1.1]:\n- fix X\n- fix Y\n[B-2.1]:\ntext")
        assert len(groups) == 2
        assert groups[0].control_id == "A-1.1"
        assert groups[0].items == ("fix X", "fix Y")
        assert groups[1].control_id == "B-2.1"
        assert groups[1].items == ()

    def test_header_order_preserved(self, sample_recommendations: str):
        groups = parse_recommendations(sample_recommendations)
        assert [g.control_id for g in groups] == ["B-2.3", "A-2.1", "A-1.1"]

    def test_indented_bullets(self, sample_recommendations: str):
        groups = parse_recommendations(sample_recommendations)
        assert groups[1].items == ("Document network topology",)

    def test_trailing_header_kept(self):
        groups = parse_recommendations("[A-1.1]:\n- a\n[B-1.1]:")
        assert [g.control_id for g in groups] == ["A-1.1", "B-1.1"]
        assert groups[1].items == ()

    def test_preamble_ignored(self):
        assert parse_recommendations("- stray bullet\nno headers here") == []

    def test_empty_and_none(self):
        assert parse_recommendations("") == []
        assert parse_recommendations(None) == []


class TestParseExecutiveSummary:
    def test_strengths(self, sample_executive_summary: str):
        summary = parse_executive_summary(sample_executive_summary)
        assert summary.strengths == (
            "Clear cloud strategy",
            "Governance tooling",
            "Skilling plan in place",
        )

    def test_gaps_stop_at_next_header(self, sample_executive_summary: str):
        summary = parse_executive_summary(sample_executive_summary)
        assert summary.gaps == ("No production evidence", "Missing PoC documentation")

    def test_only_strengths_section(self):
        summary = parse_executive_summary("### Top 3 Strengths\n1. **Alpha**\n2. Beta\n")
        assert summary.strengths == ("Alpha", "Beta")
        assert summary.gaps == ()

    def test_only_gaps_section(self):
        summary = parse_executive_summary("### Top 3 Critical Gaps\n1. **Missing evidence**")
        assert summary.strengths == ()
        assert summary.gaps == ("Missing evidence",)

    def test_non_numbered_lines_ignored(self):
        summary = parse_executive_summary("### Top 3 Strengths\n- bullet\nProse line\n1. Real item")
        assert summary.strengths == ("Real item",)

    def test_empty_and_none(self):
        assert parse_executive_summary("").strengths == ()
        assert parse_executive_summary(None).gaps == ()
