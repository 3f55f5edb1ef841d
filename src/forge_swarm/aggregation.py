"""
Aggregation of playtest results into swarm-wide metrics and judgments.

Every function here is pure: metrics, consensus, grade and recommendations are
recomputed from the TestResult collection and never edited afterwards. Input
order is not assumed to match tester registration order.

Formulas
--------
Completion rate:   completed / total * 100
Averages:          overall averages use nonzero scores only; per-level and
                   per-archetype breakdowns average every score in the group
Deduplication:     bugs merge when their lowercase first 50 characters match;
                   the merged severity is the highest seen
Consensus:         pass if pass_rate >= 0.7, else fail if fail_rate >= 0.5,
                   else pass_with_changes
Grade:             see ``calculate_quality_grade``
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, Sequence

from .models import (
    AggregatedMetrics,
    Agreement,
    BugReport,
    Consensus,
    Pacing,
    Priority,
    QualityGrade,
    RawBug,
    Recommendation,
    ScoreBreakdown,
    Severity,
    SwarmPlaytestResult,
    TestResult,
    Verdict,
)

DEDUP_PREFIX_LENGTH = 50
PASS_THRESHOLD = 0.7
FAIL_THRESHOLD = 0.5
IDEAL_DIFFICULTY = 5.5
TOP_ITEMS = 5

GRADE_THRESHOLDS = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)


def _dedup_key(text: str) -> str:
    return text.lower()[:DEDUP_PREFIX_LENGTH]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _breakdown(groups: dict[str, list[int]]) -> dict[str, ScoreBreakdown]:
    return {
        key: ScoreBreakdown(average=_mean(scores), count=len(scores))
        for key, scores in groups.items()
    }


# ============================================================================
# Bugs
# ============================================================================

def deduplicate_bugs(bugs: Iterable[RawBug]) -> list[BugReport]:
    """Merge bugs sharing a lowercase 50-character prefix.

    The first report of a group supplies the description, reporter and
    archetype. Severity is only ever upgraded. The result is sorted by report
    count, then severity, both descending.
    """
    merged: dict[str, BugReport] = {}
    for bug in bugs:
        key = _dedup_key(bug.description)
        existing = merged.get(key)
        if existing is None:
            merged[key] = BugReport(
                description=bug.description,
                severity=bug.severity,
                reporter=bug.reporter,
                archetype=bug.archetype,
                report_count=1,
                reporters=[bug.reporter],
            )
            continue

        existing.report_count += 1
        if bug.reporter not in existing.reporters:
            existing.reporters.append(bug.reporter)
        if bug.severity.rank > existing.severity.rank:
            existing.severity = bug.severity

    # sorted() is stable, so equal keys keep first-seen order
    return sorted(
        merged.values(),
        key=lambda b: (b.report_count, b.severity.rank),
        reverse=True,
    )


# ============================================================================
# Metrics
# ============================================================================

def aggregate_test_results(results: Sequence[TestResult]) -> AggregatedMetrics:
    """Derive swarm-wide metrics from a set of test results."""
    metrics = AggregatedMetrics(total_tests=len(results))
    if not results:
        return metrics

    metrics.completion_rate = sum(1 for r in results if r.completed) / len(results) * 100

    metrics.average_difficulty = _mean([r.difficulty for r in results if r.difficulty > 0])
    metrics.average_engagement = _mean([r.engagement for r in results if r.engagement > 0])

    by_level: dict[str, list[int]] = {}
    by_archetype: dict[str, list[int]] = {}
    for r in results:
        by_level.setdefault(r.knowledge_level.value, []).append(r.difficulty)
        by_archetype.setdefault(r.archetype, []).append(r.engagement)
    metrics.difficulty_by_level = _breakdown(by_level)
    metrics.engagement_by_archetype = _breakdown(by_archetype)

    all_bugs: list[RawBug] = []
    for r in results:
        metrics.pacing[r.pacing] += 1
        metrics.recommendations[r.recommendation] += 1
        metrics.confusion_points.extend(r.confusion_points)
        for bug in r.bugs:
            all_bugs.append(bug)
            if bug.severity == Severity.CRITICAL:
                metrics.critical_bugs += 1
            elif bug.severity == Severity.MAJOR:
                metrics.major_bugs += 1
            else:
                metrics.minor_bugs += 1

    metrics.bug_reports = deduplicate_bugs(all_bugs)
    metrics.unique_bugs = len(metrics.bug_reports)
    return metrics


# ============================================================================
# Consensus
# ============================================================================

def generate_consensus_summary(results: Sequence[TestResult], recommendation: Verdict) -> str:
    total = len(results)
    if total == 0:
        return "No playtest results were available."

    completed = sum(1 for r in results if r.completed)
    avg_difficulty = sum(r.difficulty for r in results) / total
    avg_engagement = sum(r.engagement for r in results) / total
    total_bugs = sum(len(r.bugs) for r in results)
    verdict_text = recommendation.value.upper().replace("_", " ")

    return (
        f"{total} AI playtesters evaluated this content. "
        f"{completed} of {total} completed it successfully. "
        f"Average difficulty was {avg_difficulty:.1f}/10, "
        f"engagement was {avg_engagement:.1f}/10. "
        f"{total_bugs} potential issues were reported. "
        f"Overall recommendation: {verdict_text}."
    )


def build_consensus(results: Sequence[TestResult]) -> Consensus:
    total = len(results)
    if total == 0:
        return Consensus(
            recommendation=Verdict.PASS_WITH_CHANGES,
            confidence=0.0,
            agreement=Agreement.MODERATE,
            summary=generate_consensus_summary(results, Verdict.PASS_WITH_CHANGES),
        )

    pass_rate = sum(1 for r in results if r.recommendation == Verdict.PASS) / total
    fail_rate = sum(1 for r in results if r.recommendation == Verdict.FAIL) / total

    if pass_rate >= PASS_THRESHOLD:
        recommendation = Verdict.PASS
    elif fail_rate >= FAIL_THRESHOLD:
        recommendation = Verdict.FAIL
    else:
        recommendation = Verdict.PASS_WITH_CHANGES

    strong = pass_rate >= PASS_THRESHOLD or fail_rate >= FAIL_THRESHOLD
    return Consensus(
        recommendation=recommendation,
        confidence=max(pass_rate, fail_rate),
        agreement=Agreement.STRONG if strong else Agreement.MODERATE,
        summary=generate_consensus_summary(results, recommendation),
    )


# ============================================================================
# Grading
# ============================================================================

def letter_for_score(score: float) -> str:
    for threshold, letter in GRADE_THRESHOLDS:
        if score >= threshold:
            return letter
    return "F"


def calculate_quality_grade(metrics: AggregatedMetrics) -> QualityGrade:
    """
    Grade aggregated metrics on a 0-100 scale.

    Any critical bug short-circuits to F with ``max(0, 50 - 10 * critical)``.
    Otherwise, from 100 subtract 10 per major and 2 per minor bug,
    ``(70 - completion) / 2`` below 70% completion, ``(5 - engagement) * 5``
    below engagement 5, and ``(delta - 2) * 3`` when the difficulty is more
    than 2 away from 5.5. The score is clamped, rounded half up and mapped to
    a letter at 90/80/70/60.
    """
    if metrics.critical_bugs > 0:
        return QualityGrade(grade="F", score=max(0, 50 - 10 * metrics.critical_bugs))

    score = 100.0
    score -= 10 * metrics.major_bugs
    score -= 2 * metrics.minor_bugs

    if metrics.completion_rate < 70:
        score -= (70 - metrics.completion_rate) / 2

    if metrics.average_engagement < 5:
        score -= (5 - metrics.average_engagement) * 5

    difficulty_delta = abs(metrics.average_difficulty - IDEAL_DIFFICULTY)
    if difficulty_delta > 2:
        score -= (difficulty_delta - 2) * 3

    score = max(0.0, min(100.0, score))
    return QualityGrade(grade=letter_for_score(score), score=math.floor(score + 0.5))


# ============================================================================
# Recommendations
# ============================================================================

def generate_recommendations(metrics: AggregatedMetrics) -> list[Recommendation]:
    """Ordered, actionable follow-ups; never empty."""
    recs: list[Recommendation] = []

    if metrics.critical_bugs > 0:
        recs.append(Recommendation(
            priority=Priority.CRITICAL,
            category="bugs",
            message=f"{metrics.critical_bugs} critical bug(s) must be fixed before release",
            action="Fix all critical bugs immediately - these prevent content from working",
        ))

    if metrics.major_bugs > 0:
        recs.append(Recommendation(
            priority=Priority.HIGH,
            category="bugs",
            message=f"{metrics.major_bugs} major bug(s) should be fixed",
            action="Address major bugs - these significantly impact player experience",
        ))

    if metrics.completion_rate < 50:
        recs.append(Recommendation(
            priority=Priority.CRITICAL,
            category="completion",
            message=f"Only {metrics.completion_rate:.0f}% of testers could complete content",
            action="Review quest logic, ensure all objectives are achievable, add clearer instructions",
        ))
    elif metrics.completion_rate < 80:
        recs.append(Recommendation(
            priority=Priority.HIGH,
            category="completion",
            message=f"{metrics.completion_rate:.0f}% completion rate (should be 80%+)",
            action="Improve clarity of objectives and ensure all paths are completable",
        ))

    # 0.0 means no tester reported a score
    if 0 < metrics.average_difficulty < 3:
        recs.append(Recommendation(
            priority=Priority.MEDIUM,
            category="difficulty",
            message=f"Content is very easy ({metrics.average_difficulty:.1f}/10)",
            action="Consider adding more challenge, complexity, or making it early-game content",
        ))
    elif metrics.average_difficulty > 8:
        recs.append(Recommendation(
            priority=Priority.HIGH,
            category="difficulty",
            message=f"Content is very difficult ({metrics.average_difficulty:.1f}/10)",
            action="Reduce difficulty, add hints/guidance, or mark as late-game content",
        ))

    if 0 < metrics.average_engagement < 4:
        recs.append(Recommendation(
            priority=Priority.CRITICAL,
            category="engagement",
            message=f"Very low engagement score ({metrics.average_engagement:.1f}/10)",
            action="Major redesign needed - improve story, rewards, mechanics, or presentation",
        ))
    elif 0 < metrics.average_engagement < 6:
        recs.append(Recommendation(
            priority=Priority.HIGH,
            category="engagement",
            message=f"Low engagement score ({metrics.average_engagement:.1f}/10)",
            action="Enhance story elements, improve rewards, or add more interesting mechanics",
        ))

    rated = sum(
        metrics.pacing[p] for p in (Pacing.TOO_FAST, Pacing.JUST_RIGHT, Pacing.TOO_SLOW)
    )
    if rated > 0:
        if metrics.pacing[Pacing.TOO_SLOW] > rated * 0.5:
            recs.append(Recommendation(
                priority=Priority.MEDIUM,
                category="pacing",
                message="Content feels too slow for most testers",
                action="Reduce travel time, streamline objectives, or add more action/variety",
            ))
        elif metrics.pacing[Pacing.TOO_FAST] > rated * 0.5:
            recs.append(Recommendation(
                priority=Priority.LOW,
                category="pacing",
                message="Content feels too fast for some testers",
                action="Consider adding more story beats or moments to breathe",
            ))

    if not recs:
        recs.append(Recommendation(
            priority=Priority.INFO,
            category="quality",
            message="Content meets quality standards",
            action="Address minor feedback and proceed to production",
        ))

    return recs


# ============================================================================
# Report
# ============================================================================

def top_confusion_points(points: Sequence[str], limit: int = TOP_ITEMS) -> list[dict[str, Any]]:
    """Group confusion points by lowercase 50-character prefix, most frequent first."""
    groups: dict[str, dict[str, Any]] = {}
    for point in points:
        key = _dedup_key(point)
        if key in groups:
            groups[key]["report_count"] += 1
        else:
            groups[key] = {"confusion": point, "report_count": 1}

    ranked = sorted(groups.values(), key=lambda g: g["report_count"], reverse=True)
    return ranked[:limit]


def build_test_report(
    result: SwarmPlaytestResult,
    content_type: str,
    duration: float,
) -> dict[str, Any]:
    """Human-facing summary of one swarm run.

    Args:
        result: The swarm result to summarize
        content_type: Kind of content that was tested (quest, dialogue, ...)
        duration: Wall-clock run time in seconds
    """
    metrics = result.aggregated_metrics
    consensus = result.consensus
    grade = calculate_quality_grade(metrics)

    return {
        "summary": {
            "grade": grade.grade,
            "grade_score": grade.score,
            "recommendation": consensus.recommendation.value,
            "confidence": consensus.confidence,
            "ready_for_production": grade.grade in ("A", "B") and metrics.critical_bugs == 0,
        },
        "quality_metrics": {
            "completion_rate": f"{metrics.completion_rate:.1f}%",
            "difficulty": {
                "overall": f"{metrics.average_difficulty:.1f}/10",
                "by_level": {k: v.model_dump() for k, v in metrics.difficulty_by_level.items()},
            },
            "engagement": {
                "overall": f"{metrics.average_engagement:.1f}/10",
                "by_archetype": {
                    k: v.model_dump() for k, v in metrics.engagement_by_archetype.items()
                },
            },
            "pacing": {p.value: count for p, count in metrics.pacing.items()},
        },
        "issues": {
            "critical": metrics.critical_bugs,
            "major": metrics.major_bugs,
            "minor": metrics.minor_bugs,
            "total": metrics.unique_bugs,
            "top_issues": [
                {
                    "description": bug.description,
                    "severity": bug.severity.value,
                    "reported_by": list(bug.reporters),
                    "report_count": bug.report_count,
                }
                for bug in metrics.bug_reports[:TOP_ITEMS]
            ],
        },
        "player_feedback": {
            "common_confusions": top_confusion_points(metrics.confusion_points),
            "tester_agreement": consensus.agreement.value,
            "consensus_summary": consensus.summary,
        },
        "recommendations": [r.model_dump(mode="json") for r in result.recommendations],
        "testing_details": {
            "duration": f"{duration:.1f}s",
            "tester_count": result.test_count,
            "content_type": content_type,
            "timestamp": datetime.now().isoformat(),
        },
    }


__all__ = [
    "deduplicate_bugs",
    "aggregate_test_results",
    "generate_consensus_summary",
    "build_consensus",
    "letter_for_score",
    "calculate_quality_grade",
    "generate_recommendations",
    "top_confusion_points",
    "build_test_report",
]
