"""
Issue Data Models — The unit of finding, plus the fixed weight tables.

Issues are frozen once emitted. Only the filtering/scoring stage derives new
values from them, and it never mutates the source issue.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Category(str, Enum):
    AIREAD = "AIREAD"  # structure / AI readability
    EXTRACT = "EXTRACT"
    CHUNK = "CHUNK"
    CRAWL = "CRAWL"
    LLMLOCAL = "LLMLOCAL"
    LLMAPI = "LLMAPI"
    HALL = "HALL"
    GAPS = "GAPS"
    DRIFT = "DRIFT"
    A11Y = "A11Y"
    TECH = "TECH"
    KG = "KG"
    LLMCONF = "LLMCONF"
    CI = "CI"
    DX = "DX"
    MISC = "MISC"


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.INFO: 0.0,
    Severity.LOW: 1.0,
    Severity.MEDIUM: 2.5,
    Severity.HIGH: 5.0,
    Severity.CRITICAL: 10.0,
}

# 1.0 is the baseline; categories at or above it always count toward the overall score.
CATEGORY_WEIGHTS: dict[Category, float] = {
    Category.AIREAD: 1.5,
    Category.EXTRACT: 1.4,
    Category.CHUNK: 1.3,
    Category.CRAWL: 1.2,
    Category.A11Y: 1.2,
    Category.KG: 1.1,
    Category.TECH: 1.0,
    Category.LLMLOCAL: 1.0,
    Category.LLMAPI: 1.0,
    Category.LLMCONF: 0.9,
    Category.HALL: 0.9,
    Category.GAPS: 0.8,
    Category.DRIFT: 0.8,
    Category.CI: 0.7,
    Category.DX: 0.6,
    Category.MISC: 0.5,
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class IssueLocation(BaseModel):
    """Where an issue was observed. All fields optional."""

    model_config = ConfigDict(frozen=True)

    url: str | None = None
    selector: str | None = None
    text_snippet: str | None = None
    line: int | None = None


class Issue(BaseModel):
    """A single finding emitted by a rule or an enrichment task."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable, category-prefixed identifier, e.g. 'KG-001'")
    title: str
    severity: Severity
    category: Category
    description: str = ""
    remediation: str = ""
    impact_score: int = Field(
        default=0, ge=0, le=100, description="Author-assigned base weight (0-100)"
    )
    location: IssueLocation | None = None
    evidence: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    timestamp: str = Field(default_factory=utc_now_iso)
