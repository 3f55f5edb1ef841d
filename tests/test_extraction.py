"""
Tests for the tolerant response extractor.

Each field is decoded independently, so each one gets its own tests for the
happy path and for the documented default.
"""

from forge_swarm.extraction import (
    extract_bugs,
    extract_completion,
    extract_confusion_points,
    extract_feedback,
    extract_json_object,
    extract_list_items,
    extract_pacing,
    extract_playthrough,
    extract_recommendation,
    extract_score,
    extract_severity,
    parse_test_result,
    parse_validation_scores,
)
from forge_swarm.models import Pacing, Severity, Verdict


class TestScalarFields:
    """Test single-value fields and their defaults."""

    def test_completion(self):
        assert extract_completion("COMPLETION: yes")
        assert not extract_completion("COMPLETION: NO")
        assert not extract_completion("nothing here")

    def test_score_with_and_without_suffix(self):
        assert extract_score("DIFFICULTY: 7/10", "DIFFICULTY") == 7
        assert extract_score("engagement: 3", "ENGAGEMENT") == 3

    def test_score_is_clamped(self):
        assert extract_score("DIFFICULTY: 15/10", "DIFFICULTY") == 10
        assert extract_score("DIFFICULTY: 0/10", "DIFFICULTY") == 1

    def test_score_default(self):
        assert extract_score("DIFFICULTY: hard", "DIFFICULTY") == 5
        assert extract_score("", "ENGAGEMENT") == 5

    def test_pacing(self):
        assert extract_pacing("PACING: TOO_SLOW") == Pacing.TOO_SLOW
        assert extract_pacing("PACING: glacial") == Pacing.UNKNOWN

    def test_recommendation(self):
        assert extract_recommendation("RECOMMENDATION: pass") == Verdict.PASS
        assert extract_recommendation("RECOMMENDATION: Pass_With_Changes") == Verdict.PASS_WITH_CHANGES
        assert extract_recommendation("RECOMMENDATION: fail") == Verdict.FAIL
        assert extract_recommendation("no verdict") == Verdict.PASS_WITH_CHANGES

    def test_playthrough_stops_at_blank_line(self):
        text = "PLAYTHROUGH: walked in, talked.\n\nCOMPLETION: YES"
        assert extract_playthrough(text) == "walked in, talked."
        assert extract_playthrough("no narrative") == ""

    def test_feedback(self):
        text = "OVERALL FEEDBACK:\nGood stuff.\nRECOMMENDATION: pass"
        assert extract_feedback(text) == "Good stuff."
        assert extract_feedback("") == ""


class TestListFields:
    """Test bug and confusion-point sections."""

    def test_dash_lines_are_entries(self):
        assert extract_list_items("\n- one\nnot an entry\n  - two\n") == ["one", "two"]

    def test_none_yields_empty_list(self):
        assert extract_list_items("\nNone\n") == []
        assert extract_list_items(None) == []

    def test_lowercase_none_inside_entry_is_kept(self):
        items = extract_list_items("\n- none of the NPCs respond, severity: major\n")
        assert items == ["none of the NPCs respond, severity: major"]

    def test_severity_defaults_to_minor(self):
        assert extract_severity("door is stuck, severity: CRITICAL") == Severity.CRITICAL
        assert extract_severity("door is stuck") == Severity.MINOR

    def test_bugs_carry_reporter(self, good_report):
        bugs = extract_bugs(good_report, "Alex", "completionist")
        assert [b.severity for b in bugs] == [Severity.MAJOR, Severity.MINOR]
        assert all(b.reporter == "Alex" and b.archetype == "completionist" for b in bugs)

    def test_bugs_section_with_none(self):
        text = "BUGS FOUND:\nNone\n\nCONFUSION POINTS:\n- where to go"
        assert extract_bugs(text, "x", "casual") == []
        assert extract_confusion_points(text) == ["where to go"]

    def test_missing_sections(self):
        assert extract_bugs("garbage", "x", "casual") == []
        assert extract_confusion_points("garbage") == []


class TestParseTestResult:
    """Test the full decoder."""

    def test_full_report(self, good_report, make_tester):
        tester = make_tester("t1", archetype="explorer")
        result = parse_test_result(good_report, tester)

        assert result.success
        assert result.tester_id == "t1"
        assert result.completed
        assert result.difficulty == 6
        assert result.engagement == 8
        assert result.pacing == Pacing.JUST_RIGHT
        assert len(result.bugs) == 2
        assert result.confusion_points == ["Unclear which ore counts"]
        assert result.feedback == "Solid quest with a couple of rough edges."
        assert result.recommendation == Verdict.PASS_WITH_CHANGES
        assert result.raw_response == good_report

    def test_unstructured_text_uses_defaults(self, make_tester):
        result = parse_test_result("I liked it a lot!", make_tester("t1"))

        assert not result.completed
        assert result.difficulty == 5
        assert result.engagement == 5
        assert result.pacing == Pacing.UNKNOWN
        assert result.bugs == []
        assert result.recommendation == Verdict.PASS_WITH_CHANGES


class TestValidationScores:
    """Test the SCORES line and JSON helpers."""

    def test_scores_line(self):
        score = parse_validation_scores("SCORES: 8/10, 7/10, 9/10\nLooks fine.", "Mira")
        assert (score.consistency, score.authenticity, score.quality) == (8, 7, 9)
        assert score.validator == "Mira"

    def test_scores_missing(self):
        assert parse_validation_scores("I rate it eight.", "Mira") is None

    def test_json_object(self):
        assert extract_json_object('Here: {"title": "X"} done') == {"title": "X"}
        assert extract_json_object("no json") is None
        assert extract_json_object("{not json}") is None
