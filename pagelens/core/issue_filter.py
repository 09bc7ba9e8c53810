"""
Issue Filter — Threshold, sort and cap the final issue list.

Runs after scoring; scores always see the unfiltered list.
"""

from __future__ import annotations

from pagelens.models.issue_models import Issue


def filter_issues(
    issues: list[Issue],
    min_impact_score: int = 0,
    min_confidence: float = 0.0,
    max_issues: int | None = None,
) -> list[Issue]:
    """Keep issues at or above both thresholds, highest impact first, at most ``max_issues``."""
    kept = [
        issue
        for issue in issues
        if issue.impact_score >= min_impact_score and issue.confidence >= min_confidence
    ]
    # sorted() is stable: equal impacts keep emission order
    kept = sorted(kept, key=lambda issue: issue.impact_score, reverse=True)
    if max_issues is not None:
        kept = kept[:max_issues]
    return kept
