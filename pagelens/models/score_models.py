"""
Scoring Data Models — Per-category and overall weighted scores.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pagelens.models.issue_models import Category, Severity


class SeverityImpact(BaseModel):
    """Issue count and weighted impact for one severity inside one category."""

    count: int = 0
    impact: float = 0.0


class CategoryScore(BaseModel):
    category: Category
    score: float = Field(..., ge=0.0, le=100.0)
    issue_count: int = 0
    total_impact: float = Field(default=0.0, description="Sum of weighted issue impacts")
    weight: float
    severity_breakdown: dict[Severity, SeverityImpact] = Field(default_factory=dict)


class ScoringResult(BaseModel):
    """Aggregate view over every category. Always recomputed from the full issue list."""

    overall_score: float = Field(..., ge=0.0, le=100.0)
    normalized_score: float = Field(..., ge=0.0, le=100.0)
    max_possible_score: float = 100.0
    category_scores: list[CategoryScore] = Field(
        default_factory=list, description="Sorted ascending by score"
    )
    total_issues: int = 0
    issues_by_severity: dict[Severity, int] = Field(default_factory=dict)
    formula: str = Field(
        default="impact = impact_score × severity_weight × category_weight; "
        "category = max(0, 100 − min(100, Σimpact × 2))",
        description="Human-readable formula used",
    )
