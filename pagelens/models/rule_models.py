"""
Rule Engine Data Models — Rule metadata, per-invocation context, and results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

from pydantic import BaseModel, ConfigDict, Field

from pagelens.models.issue_models import Category, Issue, Severity

if TYPE_CHECKING:
    from bs4 import BeautifulSoup

    from pagelens.core.document import Document
    from pagelens.models.scan_models import ScanOptions


DEFAULT_RULE_PRIORITY = 50


class ResponseMeta(BaseModel):
    """Transport metadata of the page fetch."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    final_url: str = ""
    content_type: str = ""
    redirect_count: int = 0
    elapsed_ms: float = 0.0

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class RuleMeta(BaseModel):
    """Static declaration data attached to a rule."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique rule identifier, e.g. 'AIREAD-001'")
    title: str
    category: Category
    default_severity: Severity
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(
        default=DEFAULT_RULE_PRIORITY,
        description="Higher runs first; only affects ordering, never the result set",
    )
    description: str = ""


@dataclass(frozen=True)
class RuleContext:
    """Read-only bundle passed to every rule invocation."""

    url: str
    document: Document
    options: ScanOptions
    response: ResponseMeta | None = None

    @property
    def html(self) -> str:
        return self.document.html

    @property
    def soup(self) -> BeautifulSoup:
        return self.document.soup


RuleOutput = Union[Issue, list[Issue], None]
RuleFn = Callable[[RuleContext], RuleOutput]


@dataclass(frozen=True)
class RegisteredRule:
    meta: RuleMeta
    fn: RuleFn


class RuleFailure(BaseModel):
    """A rule that raised instead of returning findings."""

    rule_id: str
    error_type: str
    message: str


class RuleResult(BaseModel):
    """Result of running every enabled rule against one context."""

    issues: list[Issue] = Field(default_factory=list)
    rules_executed: list[str] = Field(default_factory=list)
    rules_skipped: list[str] = Field(default_factory=list)
    failures: list[RuleFailure] = Field(default_factory=list)
    scan_duration_ms: float = 0.0
