"""
Rule Helpers — Issue construction and small DOM queries shared by the rule catalog.
"""

from __future__ import annotations

from bs4 import Tag

from pagelens.core.document import element_text
from pagelens.models.issue_models import Issue, IssueLocation, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta


def make_issue(
    meta: RuleMeta,
    context: RuleContext,
    description: str,
    remediation: str,
    impact: int,
    evidence: list[str] | None = None,
    severity: Severity | None = None,
    confidence: float = 1.0,
    selector: str | None = None,
    snippet: str | None = None,
) -> Issue:
    """Build an Issue carrying the rule's id, title, category and tags."""
    return Issue(
        id=meta.id,
        title=meta.title,
        severity=severity or meta.default_severity,
        category=meta.category,
        description=description,
        remediation=remediation,
        impact_score=impact,
        location=IssueLocation(url=context.url, selector=selector, text_snippet=snippet),
        evidence=evidence or [],
        tags=list(meta.tags),
        confidence=confidence,
    )


def attr(tag: Tag | None, name: str) -> str:
    """String value of an attribute; multi-valued attributes are space-joined."""
    if tag is None:
        return ""
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def text_of(tag: Tag | None) -> str:
    return element_text(tag)


def link_rel(tag: Tag) -> list[str]:
    return [r.lower() for r in attr(tag, "rel").split()]


def find_link(context: RuleContext, rel: str) -> Tag | None:
    for link in context.soup.find_all("link"):
        if rel in link_rel(link):
            return link
    return None
