"""
Scoring Engine — Turns an issue list into weighted per-category and overall scores.

Per issue:
    impact = impact_score × severity_weight × category_weight

Per category:
    score = max(0, 100 − min(100, Σimpact × 2))        (no issues → 100)

Overall:
    weighted average of category scores over categories that have issues or a
    baseline weight ≥ 1.0. The normalized score divides the same weighted sum
    by the weight of every category.

Scoring is a pure function of the issue list and the constant weight tables.
"""

from __future__ import annotations

import logging

from pagelens.models.issue_models import (
    CATEGORY_WEIGHTS,
    SEVERITY_WEIGHTS,
    Category,
    Issue,
    Severity,
)
from pagelens.models.score_models import CategoryScore, ScoringResult, SeverityImpact

logger = logging.getLogger("pagelens.scorer")

PENALTY_MULTIPLIER = 2
BASELINE_WEIGHT = 1.0
MAX_SUMMARY_CATEGORIES = 10

GRADE_THRESHOLDS: list[tuple[float, str]] = [
    (95, "A+"),
    (90, "A"),
    (85, "A-"),
    (80, "B+"),
    (75, "B"),
    (70, "B-"),
    (65, "C+"),
    (60, "C"),
    (55, "C-"),
    (50, "D"),
]


def weighted_impact(issue: Issue) -> float:
    severity_weight = SEVERITY_WEIGHTS.get(issue.severity, SEVERITY_WEIGHTS[Severity.LOW])
    category_weight = CATEGORY_WEIGHTS.get(issue.category, BASELINE_WEIGHT)
    return issue.impact_score * severity_weight * category_weight


def score_category(issues: list[Issue], category: Category) -> CategoryScore:
    """Score one category from the issues that belong to it."""
    weight = CATEGORY_WEIGHTS.get(category, BASELINE_WEIGHT)
    own = [i for i in issues if i.category == category]
    if not own:
        return CategoryScore(category=category, score=100.0, issue_count=0, total_impact=0.0, weight=weight)

    breakdown: dict[Severity, SeverityImpact] = {}
    total = 0.0
    for issue in own:
        impact = weighted_impact(issue)
        total += impact
        entry = breakdown.setdefault(issue.severity, SeverityImpact())
        entry.count += 1
        entry.impact += impact

    penalty = min(100.0, total * PENALTY_MULTIPLIER)
    return CategoryScore(
        category=category,
        score=round(max(0.0, 100.0 - penalty), 1),
        issue_count=len(own),
        total_impact=round(total, 1),
        weight=weight,
        severity_breakdown={
            severity: SeverityImpact(count=entry.count, impact=round(entry.impact, 1))
            for severity, entry in breakdown.items()
        },
    )


def calculate_score(issues: list[Issue]) -> ScoringResult:
    """
    Score the full, unfiltered issue list.

    Args:
        issues: every issue produced by the scan, before threshold filtering

    Returns:
        ScoringResult with category scores sorted worst first.
    """
    category_scores = [score_category(issues, category) for category in Category]

    weighted_sum = 0.0
    total_weight = 0.0
    for cs in category_scores:
        if cs.issue_count > 0 or cs.weight >= BASELINE_WEIGHT:
            weighted_sum += cs.score * cs.weight
            total_weight += cs.weight

    overall = round(weighted_sum / total_weight, 1) if total_weight > 0 else 100.0
    max_weight = sum(CATEGORY_WEIGHTS.get(c, BASELINE_WEIGHT) for c in Category)
    normalized = round(weighted_sum / max_weight, 1)

    histogram = {severity: 0 for severity in Severity}
    for issue in issues:
        histogram[issue.severity] += 1

    logger.debug(f"Scored {len(issues)} issues: overall={overall} normalized={normalized}")
    return ScoringResult(
        overall_score=overall,
        normalized_score=normalized,
        max_possible_score=100.0,
        category_scores=sorted(category_scores, key=lambda cs: cs.score),
        total_issues=len(issues),
        issues_by_severity=histogram,
    )


def letter_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def legacy_scores(issues: list[Issue]) -> dict[str, int]:
    """Older unweighted view: per category, 100 minus the raw impact sum (floored at 0)."""
    sums: dict[str, int] = {}
    for issue in issues:
        sums[issue.category.value] = sums.get(issue.category.value, 0) + issue.impact_score
    return {category: max(0, round(100 - min(total, 100))) for category, total in sums.items()}


def generate_scoring_summary(result: ScoringResult) -> str:
    """Plain-text report of the overall grade, severity histogram and weakest categories."""
    lines = [
        f"Overall Score: {result.overall_score}/100 (Grade: {letter_grade(result.overall_score)})",
        f"Total Issues: {result.total_issues}",
        "",
        "Severity Breakdown:",
    ]
    for severity in Severity:
        count = result.issues_by_severity.get(severity, 0)
        if count > 0:
            lines.append(f"  {severity.value.upper()}: {count}")
    lines.append("")

    lines.append("Category Scores:")
    problematic = [cs for cs in result.category_scores if cs.issue_count > 0 or cs.score < 100]
    for cs in problematic[:MAX_SUMMARY_CATEGORIES]:
        lines.append(
            f"  {cs.category.value}: {cs.score}/100 ({letter_grade(cs.score)}) - {cs.issue_count} issues"
        )
    return "\n".join(lines)
