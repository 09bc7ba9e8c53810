"""
Image Rules — Alt text presence and quality, decorative markup, intrinsic dimensions.
"""

from __future__ import annotations

import re

from pagelens.core.rules.common import attr, make_issue
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

GENERIC_ALT_WORDS = ("image", "picture", "photo", "img", "icon", "logo", "graphic")
DECORATIVE_CLASS_HINTS = ("decoration", "bg-", "icon-")
DECORATIVE_SRC_HINTS = ("decoration", "/bg/", "spacer")


def _meta(rule_id: str, title: str, severity: Severity, tags: list[str]) -> RuleMeta:
    return RuleMeta(
        id=rule_id, title=title, category=Category.AIREAD, default_severity=severity, tags=tags, priority=13
    )


MISSING_ALT = _meta("AIREAD-037", "Images missing alt text", Severity.HIGH, ["accessibility", "images", "alt-text"])
POOR_ALT = _meta("AIREAD-038", "Poor quality alt text", Severity.MEDIUM, ["images", "alt-text", "accessibility"])
DECORATIVE = _meta("AIREAD-039", "Decorative images not marked", Severity.LOW, ["images", "accessibility", "decorative"])
NO_DIMENSIONS = _meta("AIREAD-040", "Missing image dimensions", Severity.LOW, ["images", "performance", "optimization"])


def _filename_stem(src: str) -> str:
    name = src.rsplit("/", 1)[-1].lower()
    return re.sub(r"\.[^/.]+$", "", name)


def _has_style_dimension(img, dimension: str) -> bool:
    return re.search(rf"(^|;)\s*{dimension}\s*:", attr(img, "style").lower()) is not None


def check_missing_alt(context: RuleContext) -> Issue | None:
    missing = [attr(img, "src") or "unknown" for img in context.soup.find_all("img") if not img.has_attr("alt")]
    if not missing:
        return None
    return make_issue(
        MISSING_ALT,
        context,
        description=(
            f"Found {len(missing)} image(s) without alt attributes. Alt text is crucial for AI "
            "agents to understand image content and context."
        ),
        remediation=(
            'Add descriptive alt text to all content images. For decorative images, use alt="".'
        ),
        impact=25,
        evidence=[
            f"Images without alt: {len(missing)}",
            f"Examples: {', '.join(src[:50] for src in missing[:2])}",
        ],
        selector="img:not([alt])",
    )


def check_alt_quality(context: RuleContext) -> Issue | None:
    poor: list[str] = []
    for img in context.soup.find_all("img"):
        alt = attr(img, "alt").strip()
        if not alt:
            continue
        src = attr(img, "src") or "unknown"
        lowered = alt.lower()
        if any(
            lowered == word or lowered.startswith(word + " ") or lowered.endswith(" " + word)
            for word in GENERIC_ALT_WORDS
        ):
            poor.append(f'"{alt[:30]}" on {src[:30]}')
        elif lowered == _filename_stem(src):
            poor.append(f'"{alt}" (filename as alt)')
    if not poor:
        return None
    return make_issue(
        POOR_ALT,
        context,
        description=(
            f'Found {len(poor)} image(s) with generic alt text like "image", "photo", or just the filename. '
            "AI agents need descriptive alt text to understand image content."
        ),
        remediation="Write alt text that explains what the image shows and its context.",
        impact=20,
        evidence=poor[:3],
        confidence=0.85,
    )


def check_decorative_images(context: RuleContext) -> Issue | None:
    flagged: list[str] = []
    for img in context.soup.find_all("img"):
        classes = attr(img, "class")
        src = attr(img, "src")
        decorative = any(h in classes for h in DECORATIVE_CLASS_HINTS) or any(h in src for h in DECORATIVE_SRC_HINTS)
        if decorative and attr(img, "alt").strip():
            flagged.append(src[:40])
    if not flagged:
        return None
    return make_issue(
        DECORATIVE,
        context,
        description=(
            f"Found {len(flagged)} image(s) that appear decorative but have alt text. "
            'Decorative images should use alt="" to avoid cluttering AI output.'
        ),
        remediation='For purely decorative images, use alt="" or role="presentation".',
        impact=8,
        evidence=[f"Potentially decorative images: {len(flagged)}"],
        confidence=0.6,
    )


def check_dimensions(context: RuleContext) -> Issue | None:
    images = context.soup.find_all("img")
    missing = sum(
        1
        for img in images
        if not (img.has_attr("width") or _has_style_dimension(img, "width"))
        or not (img.has_attr("height") or _has_style_dimension(img, "height"))
    )
    if missing == 0:
        return None
    return make_issue(
        NO_DIMENSIONS,
        context,
        description=(
            f"Found {missing} image(s) without width/height attributes. This affects page layout stability."
        ),
        remediation="Add width and height attributes to images to prevent layout shifts.",
        impact=5,
        evidence=[f"Images without dimensions: {missing}", f"Total images: {len(images)}"],
        confidence=0.8,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(MISSING_ALT, check_missing_alt)
    registry.register(POOR_ALT, check_alt_quality)
    registry.register(DECORATIVE, check_decorative_images)
    registry.register(NO_DIMENSIONS, check_dimensions)
