"""
Meta Tag Rules — Title, description, OpenGraph and language declarations.
"""

from __future__ import annotations

from pagelens.core.rules.common import attr, make_issue
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

META_DESCRIPTION_MIN = 50
META_DESCRIPTION_MAX = 160
TITLE_MIN = 3

OG_TAGS = ("og:title", "og:description", "og:image")

MISSING_DESCRIPTION = RuleMeta(
    id="AIREAD-010",
    title="Missing meta description",
    category=Category.AIREAD,
    default_severity=Severity.MEDIUM,
    tags=["meta", "description", "seo"],
    priority=8,
)

SHORT_DESCRIPTION = RuleMeta(
    id="AIREAD-011",
    title="Meta description too short",
    category=Category.AIREAD,
    default_severity=Severity.LOW,
    tags=["meta", "description"],
    priority=8,
)

LONG_DESCRIPTION = RuleMeta(
    id="AIREAD-012",
    title="Meta description too long",
    category=Category.AIREAD,
    default_severity=Severity.LOW,
    tags=["meta", "description"],
    priority=8,
)

MISSING_OG = RuleMeta(
    id="AIREAD-013",
    title="Missing OpenGraph meta tags",
    category=Category.AIREAD,
    default_severity=Severity.MEDIUM,
    tags=["meta", "opengraph", "social"],
    priority=8,
)

MISSING_LANGUAGE = RuleMeta(
    id="AIREAD-034",
    title="Missing language declaration",
    category=Category.AIREAD,
    default_severity=Severity.MEDIUM,
    tags=["language", "i18n", "accessibility"],
    priority=9,
)

MISSING_TITLE = RuleMeta(
    id="AIREAD-035",
    title="Missing or inadequate page title",
    category=Category.AIREAD,
    default_severity=Severity.HIGH,
    tags=["title", "metadata", "context"],
    priority=9,
)


def check_missing_description(context: RuleContext) -> Issue | None:
    description = context.document.meta_content(name="description")
    if description and len(description) >= META_DESCRIPTION_MIN:
        return None
    return make_issue(
        MISSING_DESCRIPTION,
        context,
        description=(
            "The page lacks a proper meta description. Descriptions help AI agents "
            "understand page content and purpose."
        ),
        remediation="Add a meta description tag with 150-160 characters that summarizes the page content.",
        impact=20,
        evidence=[f"Description length: {len(description or '')} chars"],
    )


def check_short_description(context: RuleContext) -> Issue | None:
    description = context.document.meta_content(name="description")
    if not description or len(description) >= META_DESCRIPTION_MIN:
        return None
    return make_issue(
        SHORT_DESCRIPTION,
        context,
        description=(
            f"Meta description is only {len(description)} characters. "
            "Descriptions should be 150-160 characters for optimal context."
        ),
        remediation="Expand the meta description to 150-160 characters to provide better context.",
        impact=10,
        evidence=[f"Description length: {len(description)} chars"],
    )


def check_long_description(context: RuleContext) -> Issue | None:
    description = context.document.meta_content(name="description")
    if not description or len(description) <= META_DESCRIPTION_MAX:
        return None
    return make_issue(
        LONG_DESCRIPTION,
        context,
        description=(
            f"Meta description is {len(description)} characters. "
            "Descriptions over 160 characters may be truncated."
        ),
        remediation="Shorten the meta description to 150-160 characters while keeping key information.",
        impact=8,
        evidence=[f"Description length: {len(description)} chars"],
    )


def check_missing_og(context: RuleContext) -> Issue | None:
    soup = context.soup
    missing = [p for p in OG_TAGS if soup.find("meta", attrs={"property": p}) is None]
    if not missing:
        return None
    return make_issue(
        MISSING_OG,
        context,
        description=(
            f"The page is missing {len(missing)} OpenGraph meta tag(s): {', '.join(missing)}. "
            "These help AI agents understand and share your content."
        ),
        remediation="Add the missing OpenGraph meta tags (og:title, og:description, og:image).",
        impact=15,
        evidence=[f"Missing: {', '.join(missing)}"],
    )


def check_missing_language(context: RuleContext) -> Issue | None:
    if attr(context.soup.find("html"), "lang").strip():
        return None
    return make_issue(
        MISSING_LANGUAGE,
        context,
        description=(
            "The HTML element lacks a lang attribute. Language declaration helps AI agents "
            "apply appropriate language processing."
        ),
        remediation='Add a lang attribute to the <html> element (e.g., lang="en" for English).',
        impact=15,
        evidence=["No lang attribute on <html>"],
    )


def check_missing_title(context: RuleContext) -> Issue | None:
    title = context.document.title()
    if len(title) >= TITLE_MIN:
        return None
    return make_issue(
        MISSING_TITLE,
        context,
        description=(
            "The page lacks a proper <title> element. Page titles provide essential context for AI agents."
        ),
        remediation="Add a descriptive <title> element that clearly describes the page. Aim for 50-60 characters.",
        impact=25,
        evidence=[f'Title: "{title or "none"}"'],
    )


def register(registry: RuleRegistry) -> None:
    registry.register(MISSING_DESCRIPTION, check_missing_description)
    registry.register(SHORT_DESCRIPTION, check_short_description)
    registry.register(LONG_DESCRIPTION, check_long_description)
    registry.register(MISSING_OG, check_missing_og)
    registry.register(MISSING_LANGUAGE, check_missing_language)
    registry.register(MISSING_TITLE, check_missing_title)
