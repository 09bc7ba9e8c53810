"""
Heading Rules — H1 presence and heading-level hierarchy.

An H1 is the strongest single signal of what a page is about; skipped levels
break the outline that chunkers and summarisers rely on.
"""

from __future__ import annotations

from pagelens.core.document import HEADING_TAGS, heading_level
from pagelens.core.rules.common import make_issue, text_of
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

MISSING_H1 = RuleMeta(
    id="AIREAD-001",
    title="Missing H1",
    category=Category.AIREAD,
    default_severity=Severity.CRITICAL,
    tags=["seo", "accessibility"],
    priority=10,
    description="Page has no non-empty <h1> heading.",
)

MULTIPLE_H1 = RuleMeta(
    id="AIREAD-002",
    title="Multiple H1 Headings (Info Only)",
    category=Category.MISC,
    default_severity=Severity.INFO,
    tags=["seo", "best-practice", "legacy"],
    priority=2,
    description="More than five H1 headings on one page.",
)

HEADING_HIERARCHY = RuleMeta(
    id="AIREAD-015",
    title="Broken heading hierarchy",
    category=Category.AIREAD,
    default_severity=Severity.MEDIUM,
    tags=["headings", "hierarchy", "structure"],
    priority=12,
    description="Heading levels jump by more than one (h1 -> h3).",
)

MAX_H1_COUNT = 5


def _non_empty_h1s(context: RuleContext) -> list[str]:
    return [t for t in (text_of(h) for h in context.soup.find_all("h1")) if t]


def check_missing_h1(context: RuleContext) -> Issue | None:
    if _non_empty_h1s(context):
        return None
    return make_issue(
        MISSING_H1,
        context,
        description="The HTML document does not contain any H1 headings.",
        remediation="Add at least one H1 heading to the HTML document to improve accessibility and SEO.",
        impact=40,
        evidence=["No <h1> tags found in the document."],
    )


def check_multiple_h1(context: RuleContext) -> Issue | None:
    h1s = _non_empty_h1s(context)
    if len(h1s) <= MAX_H1_COUNT:
        return None
    return make_issue(
        MULTIPLE_H1,
        context,
        description=(
            f"The page has {len(h1s)} H1 headings. HTML5 allows multiple H1s inside "
            "semantic sections and AI systems handle them fine; flagged for awareness only."
        ),
        remediation=(
            "Optional: if the page does not use sectioning elements (article, section, nav), "
            "consider a single H1 for the main topic."
        ),
        impact=2,
        evidence=[f"count: {len(h1s)}"],
        confidence=0.5,
        selector="h1",
        snippet=h1s[0][:200],
    )


def check_heading_hierarchy(context: RuleContext) -> Issue | None:
    levels = [heading_level(h) for h in context.soup.find_all(HEADING_TAGS)]
    levels = [lvl for lvl in levels if lvl]
    if not levels:
        return None

    skipped = any(cur - prev > 1 for prev, cur in zip(levels, levels[1:]))
    if not skipped:
        return None

    return make_issue(
        HEADING_HIERARCHY,
        context,
        description=(
            "The page has skipped heading levels (e.g., h1 to h3 without h2). A proper heading "
            "hierarchy helps AI agents understand content structure."
        ),
        remediation="Ensure heading levels follow sequential order: h1, h2, h3. Don't skip levels.",
        impact=15,
        evidence=[f"Heading levels found: {', '.join(str(lvl) for lvl in levels)}"],
    )


def register(registry: RuleRegistry) -> None:
    registry.register(MISSING_H1, check_missing_h1)
    registry.register(MULTIPLE_H1, check_multiple_h1)
    registry.register(HEADING_HIERARCHY, check_heading_hierarchy)
