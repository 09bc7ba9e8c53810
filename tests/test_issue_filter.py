"""
Tests for the Issue Filter — thresholds, ordering, cap.
"""

from pagelens.core.issue_filter import filter_issues


def test_default_thresholds(make_issue):
    issues = [make_issue(id=f"I-{n}", impact=n, confidence=0.6 if n % 5 == 0 else 0.9) for n in range(30)]
    kept = filter_issues(issues, min_impact_score=8, min_confidence=0.7, max_issues=15)
    assert len(kept) <= 15
    assert all(i.impact_score >= 8 and i.confidence >= 0.7 for i in kept)
    impacts = [i.impact_score for i in kept]
    assert impacts == sorted(impacts, reverse=True)
    assert impacts[0] == 29


def test_equal_impacts_keep_emission_order(make_issue):
    issues = [make_issue(id="first", impact=10), make_issue(id="second", impact=10), make_issue(id="top", impact=20)]
    assert [i.id for i in filter_issues(issues)] == ["top", "first", "second"]


def test_filter_does_not_mutate_input(make_issue):
    issues = [make_issue(id="a", impact=1), make_issue(id="b", impact=50)]
    filter_issues(issues, min_impact_score=10)
    assert [i.id for i in issues] == ["a", "b"]


def test_no_cap(make_issue):
    issues = [make_issue(id=str(n), impact=50) for n in range(40)]
    assert len(filter_issues(issues)) == 40
