"""
Content Rules — Amount of content, presence of an introduction, paragraph length.
"""

from __future__ import annotations

from bs4 import Tag

from pagelens.core.rules.common import make_issue, text_of
from pagelens.core.rule_engine import RuleRegistry
from pagelens.core.text import estimate_token_count
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

THIN_CONTENT_WORDS = 300
INTRO_MIN_CHARS = 50
LONG_PARAGRAPH_WORDS = 150

THIN_CONTENT = RuleMeta(
    id="AIREAD-018",
    title="Thin content detected",
    category=Category.AIREAD,
    default_severity=Severity.HIGH,
    tags=["quality", "content", "value"],
    priority=10,
)

MISSING_SUMMARY = RuleMeta(
    id="AIREAD-080",
    title="Missing summary or intro section",
    category=Category.AIREAD,
    default_severity=Severity.MEDIUM,
    tags=["summary", "structure", "clarity"],
    priority=8,
)

LONG_PARAGRAPHS = RuleMeta(
    id="AIREAD-101",
    title="Paragraphs too long",
    category=Category.AIREAD,
    default_severity=Severity.LOW,
    tags=["paragraphs", "readability", "structure"],
    priority=7,
)


def content_area(context: RuleContext) -> Tag:
    """First main / article / role=main region; the body otherwise."""
    region = context.soup.select_one('main, article, [role="main"]')
    if region is not None:
        return region
    return context.soup.find("body") or context.soup


def check_thin_content(context: RuleContext) -> Issue | None:
    words = estimate_token_count(text_of(content_area(context)))
    if words >= THIN_CONTENT_WORDS:
        return None
    return make_issue(
        THIN_CONTENT,
        context,
        description=(
            f"Page contains only {words} words of content. "
            "Thin content provides little value to AI agents and users."
        ),
        remediation="Add substantial, valuable content to the page. Aim for at least 300 words of meaningful content.",
        impact=25,
        evidence=[f"Word count: {words}"],
        confidence=0.9,
    )


def check_missing_summary(context: RuleContext) -> Issue | None:
    has_summary = bool(
        context.soup.select('[class*="summary" i], [class*="intro" i], [id*="summary" i], [id*="intro" i]')
    )
    first_paragraph = content_area(context).find("p")
    first_text = text_of(first_paragraph)
    if has_summary or len(first_text) >= INTRO_MIN_CHARS:
        return None
    return make_issue(
        MISSING_SUMMARY,
        context,
        description=(
            "No clear summary or introduction section found. AI agents benefit from explicit page summaries."
        ),
        remediation="Add a clear introduction or summary section at the start of your content.",
        impact=15,
        evidence=["No summary section detected", f"First paragraph length: {len(first_text)}"],
        confidence=0.7,
    )


def check_long_paragraphs(context: RuleContext) -> Issue | None:
    long_paragraphs = [
        p for p in content_area(context).find_all("p") if estimate_token_count(text_of(p)) > LONG_PARAGRAPH_WORDS
    ]
    if not long_paragraphs:
        return None
    return make_issue(
        LONG_PARAGRAPHS,
        context,
        description=(
            f"Found {len(long_paragraphs)} paragraph(s) longer than 150 words. Break them up for better readability."
        ),
        remediation="Split long paragraphs into smaller chunks (50-150 words is ideal).",
        impact=8,
        evidence=[f"Long paragraphs: {len(long_paragraphs)}"],
        confidence=0.9,
        snippet=text_of(long_paragraphs[0])[:200],
    )


def register(registry: RuleRegistry) -> None:
    registry.register(THIN_CONTENT, check_thin_content)
    registry.register(MISSING_SUMMARY, check_missing_summary)
    registry.register(LONG_PARAGRAPHS, check_long_paragraphs)
