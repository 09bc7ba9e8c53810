"""
Tests for the Scoring Engine — weights, category formula, overall average, grades.
"""

from pagelens.core.scorer import (
    calculate_score,
    generate_scoring_summary,
    legacy_scores,
    letter_grade,
    weighted_impact,
)
from pagelens.models.issue_models import Category, Severity


def _category(result, category):
    return next(cs for cs in result.category_scores if cs.category == category)


def test_no_issues_scores_100():
    result = calculate_score([])
    assert result.overall_score == 100.0
    assert result.total_issues == 0
    assert all(cs.score == 100.0 for cs in result.category_scores)
    assert letter_grade(result.overall_score) == "A+"


def test_weighted_impact_formula(make_issue):
    issue = make_issue(severity=Severity.HIGH, category=Category.AIREAD, impact=10)
    # 10 × high(5) × AIREAD(1.5)
    assert weighted_impact(issue) == 75.0


def test_category_score_formula(make_issue):
    issue = make_issue(severity=Severity.LOW, category=Category.TECH, impact=10)
    result = calculate_score([issue])
    tech = _category(result, Category.TECH)
    # 10 × low(1) × TECH(1.0) = 10 → 100 − 10 × 2
    assert tech.score == 80.0
    assert tech.issue_count == 1
    assert tech.severity_breakdown[Severity.LOW].count == 1


def test_category_score_floors_at_zero(make_issue):
    issues = [make_issue(severity=Severity.CRITICAL, category=Category.KG, impact=50)]
    assert _category(calculate_score(issues), Category.KG).score == 0.0


def test_info_issues_never_reduce_scores(make_issue):
    issues = [make_issue(severity=Severity.INFO, category=Category.AIREAD, impact=100) for _ in range(5)]
    result = calculate_score(issues)
    assert _category(result, Category.AIREAD).score == 100.0
    assert result.overall_score == 100.0


def test_scoring_is_deterministic(make_issue):
    issues = [
        make_issue(id="A", severity=Severity.HIGH, category=Category.AIREAD, impact=20),
        make_issue(id="B", severity=Severity.MEDIUM, category=Category.CRAWL, impact=15),
        make_issue(id="C", severity=Severity.LOW, category=Category.MISC, impact=2),
    ]
    first = calculate_score(issues)
    second = calculate_score(issues)
    assert first.model_dump() == second.model_dump()


def test_low_weight_category_counts_only_with_issues(make_issue):
    # MISC weight 0.5 is below baseline: it joins the average only when it has issues
    clean = calculate_score([])
    with_misc = calculate_score([make_issue(severity=Severity.CRITICAL, category=Category.MISC, impact=100)])
    assert clean.overall_score == 100.0
    assert with_misc.overall_score < 100.0


def test_normalized_score_is_stricter(make_issue):
    issues = [make_issue(severity=Severity.HIGH, category=Category.AIREAD, impact=10)]
    result = calculate_score(issues)
    assert result.normalized_score <= result.overall_score


def test_category_scores_sorted_worst_first(make_issue):
    result = calculate_score([make_issue(severity=Severity.HIGH, category=Category.CHUNK, impact=5)])
    scores = [cs.score for cs in result.category_scores]
    assert scores == sorted(scores)
    assert result.category_scores[0].category == Category.CHUNK


def test_grade_boundaries():
    assert letter_grade(100) == "A+"
    assert letter_grade(95) == "A+"
    assert letter_grade(94) == "A"
    assert letter_grade(94.9) == "A"
    assert letter_grade(85) == "A-"
    assert letter_grade(60) == "C"
    assert letter_grade(50) == "D"
    assert letter_grade(49) == "F"
    assert letter_grade(44) == "F"
    assert letter_grade(0) == "F"


def test_legacy_scores(make_issue):
    issues = [
        make_issue(category=Category.AIREAD, impact=30),
        make_issue(category=Category.AIREAD, impact=25),
        make_issue(category=Category.KG, impact=60),
        make_issue(category=Category.KG, impact=60),
    ]
    assert legacy_scores(issues) == {"AIREAD": 45, "KG": 0}


def test_scoring_summary_lists_problem_categories(make_issue):
    result = calculate_score([make_issue(severity=Severity.HIGH, category=Category.CRAWL, impact=10)])
    summary = generate_scoring_summary(result)
    assert summary.startswith(f"Overall Score: {result.overall_score}/100")
    assert "HIGH: 1" in summary
    assert "CRAWL:" in summary
    assert "KG:" not in summary
