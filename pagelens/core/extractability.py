"""
Extractability Map — Classifies content elements by how an agent would reach their text.

Static HTML only: client rendering, hidden content and shadow DOM are
detected from markup heuristics (framework mount points, hiding styles and
classes, custom element names), never by executing scripts.
"""

from __future__ import annotations

import logging
import re

from bs4 import Tag

from pagelens.core.document import Document, element_text
from pagelens.models.extract_models import (
    ContentNode,
    ContentSource,
    ContentTypeExtractability,
    Extractability,
    ExtractabilityIssue,
    ExtractabilityReport,
    ExtractabilityScores,
    ExtractabilitySummary,
)

logger = logging.getLogger("pagelens.extractability")

CONTENT_TAGS = [
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "article", "section", "main", "div",
    "span", "li", "td", "th",
    "blockquote", "pre", "code",
]

FRAMEWORK_ATTRS = (
    "data-react-root",
    "data-reactroot",
    "ng-app",
    "ng-controller",
    "v-app",
    "data-vue-app",
    "data-gatsby",
    "data-svelte",
)
FRAMEWORK_ID_PREFIXES = ("__next", "__nuxt")
APP_ROOT_IDS = ("root", "app", "main-app", "__next", "__nuxt")

HIDING_STYLES = (
    "display:none",
    "display: none",
    "visibility:hidden",
    "visibility: hidden",
    "opacity:0",
    "opacity: 0",
)
HIDDEN_CLASS_RE = re.compile(r"(^|\s)(hidden|invisible|d-none|sr-only|visually-hidden)(\s|$)")

INTERACTIVE_ATTRS = ("onclick", "onhover", "data-toggle", "data-dropdown", "data-modal", "data-accordion")
INTERACTIVE_ROLES = ("button", "tab", "menu", "menuitem", "tooltip", "dialog")

HIDDEN_PERCENT_LIMIT = 20
INTERACTIVE_PERCENT_LIMIT = 30
IFRAME_PERCENT_LIMIT = 10
SERVER_RENDERED_MIN_PERCENT = 50
EXTRACTABLE_MIN_SCORE = 70


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def _is_framework_root(tag: Tag) -> bool:
    if any(tag.has_attr(a) for a in FRAMEWORK_ATTRS):
        return True
    return _attr(tag, "id").startswith(FRAMEWORK_ID_PREFIXES)


def is_client_rendered(tag: Tag) -> bool:
    if _is_framework_root(tag) or any(_is_framework_root(p) for p in tag.parents if isinstance(p, Tag)):
        return True
    has_data_attrs = any(k.startswith("data-") for k in tag.attrs)
    if has_data_attrs and not element_text(tag) and tag.find(True) is None:
        return True
    return _attr(tag, "id") in APP_ROOT_IDS


def is_hidden(tag: Tag) -> bool:
    style = _attr(tag, "style")
    if any(s in style for s in HIDING_STYLES):
        return True
    if _attr(tag, "aria-hidden") == "true" or tag.has_attr("hidden"):
        return True
    return HIDDEN_CLASS_RE.search(_attr(tag, "class")) is not None


def requires_interaction(tag: Tag) -> bool:
    if any(_attr(tag, a) for a in INTERACTIVE_ATTRS):
        return True
    if _attr(tag, "role") in INTERACTIVE_ROLES:
        return True
    return tag.name == "details" and not tag.has_attr("open")


def is_shadow_host(tag: Tag) -> bool:
    """Custom elements (hyphenated names) and declarative shadow roots."""
    return "-" in (tag.name or "") or tag.has_attr("shadowroot")


def classify(node: ContentNode) -> Extractability:
    if node.source == ContentSource.SHADOW_DOM or (node.is_hidden and node.text_length == 0):
        return Extractability.IMPOSSIBLE
    if node.requires_interaction or node.source == ContentSource.IFRAME:
        return Extractability.DIFFICULT
    if node.source == ContentSource.CLIENT_RENDERED or node.is_hidden:
        return Extractability.MODERATE
    return Extractability.EASY


def element_selector(tag: Tag) -> str:
    tag_id = _attr(tag, "id")
    if tag_id:
        return f"#{tag_id}"
    classes = _attr(tag, "class").split()
    if classes:
        return f"{tag.name}.{classes[0]}"
    siblings = [s for s in tag.parent.children if isinstance(s, Tag)] if tag.parent else [tag]
    index = next((i for i, s in enumerate(siblings) if s is tag), 0)
    return f"{tag.name}:nth-child({index + 1})"


def _depth(tag: Tag) -> int:
    return sum(1 for _ in tag.parents)


def build_extractability_map(
    document: Document,
    max_nodes: int = 500,
    include_hidden: bool = True,
    min_text_length: int = 5,
) -> ExtractabilityReport:
    """
    Classify up to ``max_nodes`` content elements and derive scores, issues and recommendations.

    Args:
        document: parsed page
        max_nodes: cap on elements inspected, in document order
        include_hidden: when False, elements with less than ``min_text_length`` characters are skipped
        min_text_length: minimum text length used with ``include_hidden``
    """
    nodes: list[ContentNode] = []
    summary = ExtractabilitySummary()

    for tag in document.soup.find_all(CONTENT_TAGS, limit=max_nodes):
        text_length = len(element_text(tag))
        if text_length < min_text_length and not include_hidden:
            continue

        hidden = is_hidden(tag)
        interactive = requires_interaction(tag)
        shadow = is_shadow_host(tag)
        client = is_client_rendered(tag)
        in_iframe = tag.find_parent("iframe") is not None

        if shadow:
            source = ContentSource.SHADOW_DOM
        elif in_iframe:
            source = ContentSource.IFRAME
        elif interactive:
            source = ContentSource.INTERACTIVE
        elif hidden:
            source = ContentSource.HIDDEN
        elif client:
            source = ContentSource.CLIENT_RENDERED
        else:
            source = ContentSource.SERVER_RENDERED

        node = ContentNode(
            selector=element_selector(tag),
            tag=tag.name,
            source=source,
            extractability=Extractability.EASY,
            text_length=text_length,
            is_hidden=hidden,
            requires_interaction=interactive,
            is_nested=in_iframe or shadow,
            children=len(tag.find_all(True, recursive=False)),
            depth=_depth(tag),
        )
        node = node.model_copy(update={"extractability": classify(node)})
        nodes.append(node)

        summary.total_nodes += 1
        if node.extractability in (Extractability.EASY, Extractability.MODERATE):
            summary.extractable_nodes += 1
        summary.hidden_nodes += hidden
        summary.interactive_nodes += interactive
        summary.iframe_nodes += in_iframe
        summary.client_rendered_nodes += client
        summary.server_rendered_nodes += source == ContentSource.SERVER_RENDERED

    total = summary.total_nodes
    scores = ExtractabilityScores(
        extractability_score=_percent(summary.extractable_nodes, total),
        server_rendered_percent=_percent(summary.server_rendered_nodes, total),
        hidden_percent=_percent(summary.hidden_nodes, total),
        interactive_percent=_percent(summary.interactive_nodes, total),
        iframe_percent=_percent(summary.iframe_nodes, total),
    )

    issues: list[ExtractabilityIssue] = []
    recommendations: list[str] = []
    if scores.extractability_score < EXTRACTABLE_MIN_SCORE:
        recommendations.append(
            "Improve content extractability by reducing client-side rendering and hidden content"
        )
    if scores.hidden_percent > HIDDEN_PERCENT_LIMIT:
        issues.append(ExtractabilityIssue(
            type="hidden-content",
            severity="medium",
            description=f"{scores.hidden_percent}% of content is hidden from view",
            count=summary.hidden_nodes,
        ))
        recommendations.append("Reduce hidden content or provide alternative accessible versions")
    if scores.interactive_percent > INTERACTIVE_PERCENT_LIMIT:
        issues.append(ExtractabilityIssue(
            type="interactive-content",
            severity="high",
            description=f"{scores.interactive_percent}% of content requires user interaction",
            count=summary.interactive_nodes,
        ))
        recommendations.append(
            "Make interactive content accessible without JavaScript or provide server-rendered alternatives"
        )
    if scores.iframe_percent > IFRAME_PERCENT_LIMIT:
        issues.append(ExtractabilityIssue(
            type="iframe-content",
            severity="medium",
            description=f"{scores.iframe_percent}% of content is in iframes",
            count=summary.iframe_nodes,
        ))
        recommendations.append("Minimize iframe usage or provide alternative content representations")
    if scores.server_rendered_percent < SERVER_RENDERED_MIN_PERCENT:
        issues.append(ExtractabilityIssue(
            type="client-rendered",
            severity="high",
            description=f"Only {scores.server_rendered_percent}% of content is server-rendered",
            count=summary.client_rendered_nodes,
        ))
        recommendations.append("Increase server-side rendering for better AI/bot accessibility")

    noscript = document.soup.find_all("noscript")
    if noscript:
        issues.append(ExtractabilityIssue(
            type="noscript-fallback",
            severity="low",
            description="Page has noscript fallback content",
            count=len(noscript),
        ))

    logger.debug(f"Extractability for {document.url}: {scores.extractability_score}% over {total} nodes")
    return ExtractabilityReport(
        url=document.url,
        nodes=nodes,
        summary=summary,
        scores=scores,
        issues=issues,
        recommendations=recommendations,
        content_types=analyze_content_type_extractability(document),
    )


def _visible(tag: Tag) -> bool:
    return not is_hidden(tag)


def _share(tags: list[Tag], extractable) -> ContentTypeExtractability:
    count = sum(1 for t in tags if extractable(t))
    return ContentTypeExtractability(extractable=count, total=len(tags), percentage=_percent(count, len(tags)))


def analyze_content_type_extractability(document: Document) -> dict[str, ContentTypeExtractability]:
    """Visible share of text blocks, described images, links and structured blocks."""
    soup = document.soup
    return {
        "text": _share(soup.find_all(["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "td", "th"]), _visible),
        "images": _share(soup.find_all("img"), lambda t: not is_hidden(t) and bool(_attr(t, "alt"))),
        "links": _share(soup.find_all("a", href=True), _visible),
        "structured": _share(soup.find_all(["table", "ul", "ol", "dl"]), _visible),
    }
