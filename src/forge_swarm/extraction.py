"""
Tolerant extraction of structured fields from free-text LLM responses.

Every field is decoded independently by its own function. A missing or
malformed field yields that field's default instead of failing the parse:

    field            default              notes
    playthrough      ""                   text up to a blank line or COMPLETION:
    completed        False                COMPLETION: YES|NO
    difficulty       5                    DIFFICULTY: n[/10], clamped to [1, 10]
    engagement       5                    ENGAGEMENT: n[/10], clamped to [1, 10]
    pacing           unknown              PACING: too_fast|just_right|too_slow
    bugs             []                   "- " lines under BUGS FOUND:
    confusion        []                   "- " lines under CONFUSION POINTS:
    feedback         ""                   text under OVERALL FEEDBACK:
    recommendation   pass_with_changes    RECOMMENDATION: pass|pass_with_changes|fail

All header matching is case-insensitive. A list section whose text contains
the word "None" (capitalized, as the output format asks) yields an empty list.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .models import (
    Pacing,
    RawBug,
    Severity,
    TestResult,
    Tester,
    ValidatorScore,
    Verdict,
)

DEFAULT_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10

_PLAYTHROUGH_RE = re.compile(r"PLAYTHROUGH:\s*([\s\S]*?)(?=\n\n|COMPLETION:|$)", re.IGNORECASE)
_COMPLETION_RE = re.compile(r"COMPLETION:\s*(YES|NO)", re.IGNORECASE)
_PACING_RE = re.compile(r"PACING:\s*(too_fast|just_right|too_slow)", re.IGNORECASE)
_FEEDBACK_RE = re.compile(r"OVERALL FEEDBACK:\s*([\s\S]*?)(?=\n\n|RECOMMENDATION:|$)", re.IGNORECASE)
_RECOMMENDATION_RE = re.compile(
    r"RECOMMENDATION:\s*(pass_with_changes|pass|fail)", re.IGNORECASE
)
_SEVERITY_RE = re.compile(r"severity:\s*(critical|major|minor)", re.IGNORECASE)
_NONE_RE = re.compile(r"\bNone\b")
_SCORES_RE = re.compile(r"SCORES:\s*(\d+)/10,\s*(\d+)/10,\s*(\d+)/10", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

BUGS_HEADER = "BUGS FOUND:"
CONFUSION_HEADER = "CONFUSION POINTS:"
BUGS_TERMINATORS = ("CONFUSION POINTS:", "OVERALL FEEDBACK:")
CONFUSION_TERMINATORS = ("OVERALL FEEDBACK:", "RECOMMENDATION:")


def _clamp(value: int, low: int = MIN_SCORE, high: int = MAX_SCORE) -> int:
    return max(low, min(high, value))


def extract_playthrough(text: str) -> str:
    match = _PLAYTHROUGH_RE.search(text)
    return match.group(1).strip() if match else ""


def extract_completion(text: str) -> bool:
    match = _COMPLETION_RE.search(text)
    return bool(match) and match.group(1).upper() == "YES"


def extract_score(text: str, label: str, default: int = DEFAULT_SCORE) -> int:
    """Extract ``LABEL: n`` or ``LABEL: n/10``, clamped to [1, 10]."""
    match = re.search(rf"{re.escape(label)}:\s*(\d+)(?:/10)?", text, re.IGNORECASE)
    if not match:
        return default
    return _clamp(int(match.group(1)))


def extract_pacing(text: str) -> Pacing:
    match = _PACING_RE.search(text)
    return Pacing(match.group(1).lower()) if match else Pacing.UNKNOWN


def extract_section(text: str, header: str, terminators: tuple[str, ...]) -> str | None:
    """Return the text between ``header`` and the first blank line or terminator.

    Returns None when the header is absent.
    """
    stops = "|".join(re.escape(t) for t in terminators)
    lookahead = rf"(?=\n\n|{stops}|$)" if stops else r"(?=\n\n|$)"
    match = re.search(rf"{re.escape(header)}\s*([\s\S]*?){lookahead}", text, re.IGNORECASE)
    return match.group(1) if match else None


def extract_list_items(section: str | None) -> list[str]:
    """Each line beginning with ``-`` is one entry; "None" means empty."""
    if section is None or _NONE_RE.search(section):
        return []
    return [
        line.strip()[1:].strip()
        for line in section.splitlines()
        if line.strip().startswith("-")
    ]


def extract_severity(description: str) -> Severity:
    match = _SEVERITY_RE.search(description)
    return Severity(match.group(1).lower()) if match else Severity.MINOR


def extract_bugs(text: str, reporter: str, archetype: str) -> list[RawBug]:
    items = extract_list_items(extract_section(text, BUGS_HEADER, BUGS_TERMINATORS))
    return [
        RawBug(
            description=item,
            severity=extract_severity(item),
            reporter=reporter,
            archetype=archetype,
        )
        for item in items
    ]


def extract_confusion_points(text: str) -> list[str]:
    return extract_list_items(extract_section(text, CONFUSION_HEADER, CONFUSION_TERMINATORS))


def extract_feedback(text: str) -> str:
    match = _FEEDBACK_RE.search(text)
    return match.group(1).strip() if match else ""


def extract_recommendation(text: str) -> Verdict:
    match = _RECOMMENDATION_RE.search(text)
    return Verdict(match.group(1).lower()) if match else Verdict.PASS_WITH_CHANGES


def parse_test_result(response_text: str, tester: Tester) -> TestResult:
    """Decode a tester's free-text report into a TestResult."""
    return TestResult(
        tester_id=tester.id,
        tester_name=tester.name,
        archetype=tester.archetype,
        knowledge_level=tester.knowledge_level,
        success=True,
        playthrough=extract_playthrough(response_text),
        completed=extract_completion(response_text),
        difficulty=extract_score(response_text, "DIFFICULTY"),
        engagement=extract_score(response_text, "ENGAGEMENT"),
        pacing=extract_pacing(response_text),
        bugs=extract_bugs(response_text, tester.name, tester.archetype),
        confusion_points=extract_confusion_points(response_text),
        feedback=extract_feedback(response_text),
        recommendation=extract_recommendation(response_text),
        raw_response=response_text,
    )


def parse_validation_scores(response_text: str, validator: str) -> ValidatorScore | None:
    """Parse ``SCORES: a/10, b/10, c/10``; None when the pattern is absent."""
    match = _SCORES_RE.search(response_text)
    if not match:
        return None
    consistency, authenticity, quality = (_clamp(int(g), 0) for g in match.groups())
    return ValidatorScore(
        validator=validator,
        consistency=consistency,
        authenticity=authenticity,
        quality=quality,
        feedback=response_text,
    )


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the outermost JSON object embedded in ``text``, or None."""
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


__all__ = [
    "extract_playthrough",
    "extract_completion",
    "extract_score",
    "extract_pacing",
    "extract_section",
    "extract_list_items",
    "extract_severity",
    "extract_bugs",
    "extract_confusion_points",
    "extract_feedback",
    "extract_recommendation",
    "parse_test_result",
    "parse_validation_scores",
    "extract_json_object",
]
