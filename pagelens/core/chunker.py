"""
Content Chunker — Splits the main content region into bounded, labeled chunks.

The container is the first present of main, article, body. Chunking walks its
visible text nodes in document order and assigns every one of them to exactly
one chunk, so joining the chunk texts reproduces the container text.

Strategies:
    heading-based    a heading opens a chunk that runs until the next heading of
                     the same or a higher level; deeper headings stay inside it
    paragraph-based  paragraphs accumulate until the token budget would overflow
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal

from bs4 import NavigableString, Tag

from pagelens.core.document import HEADING_TAGS, Document, element_text, heading_level, is_content_string
from pagelens.core.text import estimate_token_count
from pagelens.models.chunk_models import (
    ChunkingResult,
    ChunkQuality,
    ChunkQualityReport,
    ChunkStats,
    ContentChunk,
)

logger = logging.getLogger("pagelens.chunker")

STRATEGY_HEADING = "heading-based"
STRATEGY_PARAGRAPH = "paragraph-based"
STRATEGY_FALLBACK = "paragraph-based (fallback)"

DEFAULT_MAX_TOKENS = 500
LARGE_CHUNK_TOKENS = 1000
SMALL_CHUNK_TOKENS = 50
HIGH_NOISE_RATIO = 0.5

NOISE_TAGS = ("script", "style")
CODE_TAGS = ("pre", "code")
LIST_TAGS = ("ul", "ol", "li")

_PUNCT_RUN_RE = re.compile(r"[.,!?;:]{2,}")
_WS_RE = re.compile(r"\s")


def calculate_noise_ratio(text: str, script_style_chars: int = 0) -> float:
    """
    Share of non-informative characters in ``text``, clamped to [0, 1].

    noise = (whitespace × 0.5 + punctuation_runs × 10 + script_style_chars) / len(text)
    """
    if not text:
        return 1.0
    whitespace = len(_WS_RE.findall(text))
    punct_runs = len(_PUNCT_RUN_RE.findall(text))
    noise = (whitespace * 0.5 + punct_runs * 10 + script_style_chars) / len(text)
    return round(min(1.0, noise), 2)


@dataclass
class _Segment:
    """One visible text node with the structure it sits in."""

    text: str
    heading: Tag | None = None
    paragraph: Tag | None = None
    in_code: bool = False
    in_list: bool = False
    in_table: bool = False
    noise_chars: int = 0


@dataclass
class _Draft:
    start_selector: str
    heading: Tag | None = None
    level: int | None = None
    segments: list[_Segment] = field(default_factory=list)

    @property
    def tokens(self) -> int:
        return estimate_token_count(self.text)

    @property
    def text(self) -> str:
        return " ".join(s.text for s in self.segments)


def _segments(container: Tag) -> list[_Segment]:
    segments: list[_Segment] = []
    pending_noise = 0
    for node in container.descendants:
        if isinstance(node, Tag):
            if node.name in NOISE_TAGS:
                pending_noise += len(node.get_text())
            continue
        if not isinstance(node, NavigableString) or not is_content_string(node):
            continue
        text = node.strip()
        if not text:
            continue

        segment = _Segment(text=text, noise_chars=pending_noise)
        pending_noise = 0
        for parent in node.parents:
            if parent is container:
                break
            name = parent.name
            if name in HEADING_TAGS and segment.heading is None:
                segment.heading = parent
            elif name == "p" and segment.paragraph is None:
                segment.paragraph = parent
            elif name in CODE_TAGS:
                segment.in_code = True
            elif name in LIST_TAGS:
                segment.in_list = True
            elif name == "table":
                segment.in_table = True
        segments.append(segment)

    if segments and pending_noise:
        segments[-1].noise_chars += pending_noise
    return segments


def _heading_selector(heading: Tag) -> str:
    heading_id = heading.get("id")
    if heading_id:
        return f"#{heading_id}"
    return f'{heading.name}:contains("{element_text(heading)[:30]}")'


def _finish(draft: _Draft, index: int, end_selector: str | None = None) -> ContentChunk:
    text = draft.text
    tokens = estimate_token_count(text)
    noise_chars = sum(s.noise_chars for s in draft.segments)
    return ContentChunk(
        id=f"chunk-{index + 1}",
        text=text,
        start_selector=draft.start_selector,
        end_selector=end_selector,
        heading=element_text(draft.heading) if draft.heading is not None else None,
        heading_level=draft.level,
        token_count=tokens,
        word_count=tokens,
        char_count=len(text),
        noise_ratio=calculate_noise_ratio(text, noise_chars),
        has_code=any(s.in_code for s in draft.segments),
        has_lists=any(s.in_list for s in draft.segments),
        has_tables=any(s.in_table for s in draft.segments),
    )


def _chunk_by_headings(container: Tag, segments: list[_Segment]) -> list[ContentChunk]:
    drafts: list[_Draft] = []
    current: _Draft | None = None
    last_heading: Tag | None = None

    for segment in segments:
        heading = segment.heading
        if heading is not None and heading is not last_heading:
            level = heading_level(heading)
            if current is None or current.level is None or (level is not None and level <= current.level):
                current = _Draft(start_selector=_heading_selector(heading), heading=heading, level=level)
                drafts.append(current)
        last_heading = heading
        if current is None:
            # Text before the first heading forms an untitled intro chunk
            current = _Draft(start_selector=container.name or "body")
            drafts.append(current)
        current.segments.append(segment)

    chunks = []
    for index, draft in enumerate(drafts):
        end = drafts[index + 1].start_selector if index + 1 < len(drafts) else None
        chunks.append(_finish(draft, index, end))
    return chunks


def _chunk_by_paragraphs(container: Tag, segments: list[_Segment], max_tokens: int) -> list[ContentChunk]:
    paragraphs = container.find_all("p")
    if not paragraphs:
        draft = _Draft(start_selector="body", segments=list(segments))
        return [_finish(draft, 0)]

    positions = {id(p): i for i, p in enumerate(paragraphs)}

    # Consecutive segments of the same paragraph (or of loose text) form one unit
    units: list[_Draft] = []
    for segment in segments:
        owner = segment.paragraph
        if units and _same_owner(units[-1], owner):
            units[-1].segments.append(segment)
            continue
        selector = f"p:nth-of-type({positions[id(owner)] + 1})" if owner is not None else "body"
        unit = _Draft(start_selector=selector)
        unit.segments.append(segment)
        units.append(unit)

    drafts: list[_Draft] = []
    current: _Draft | None = None
    current_tokens = 0
    for unit in units:
        unit_tokens = unit.tokens
        if current is not None and current.segments and current_tokens + unit_tokens > max_tokens:
            current = None
        if current is None:
            current = _Draft(start_selector=unit.start_selector)
            drafts.append(current)
            current_tokens = 0
        current.segments.extend(unit.segments)
        current_tokens += unit_tokens

    return [_finish(draft, index) for index, draft in enumerate(drafts)]


def _same_owner(unit: _Draft, owner: Tag | None) -> bool:
    return unit.segments[-1].paragraph is owner


def chunk_content(
    document: Document,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    strategy: Literal["auto", "heading-based", "paragraph-based"] = "auto",
) -> ChunkingResult:
    """
    Chunk the document's main content region.

    Args:
        document: parsed page
        max_tokens: budget per paragraph-based chunk
        strategy: "auto" picks heading-based when the container has headings

    Returns:
        ChunkingResult whose strategy label records any fallback.
    """
    container = document.main_container()
    has_headings = container.find(HEADING_TAGS) is not None
    segments = _segments(container)

    if strategy == "auto":
        label = STRATEGY_HEADING if has_headings else STRATEGY_PARAGRAPH
    else:
        label = strategy

    if label == STRATEGY_HEADING and not has_headings:
        label = STRATEGY_FALLBACK

    if label == STRATEGY_HEADING:
        chunks = _chunk_by_headings(container, segments)
    else:
        chunks = _chunk_by_paragraphs(container, segments, max_tokens)

    sizes = [c.token_count for c in chunks]
    stats = ChunkStats(
        total_chunks=len(chunks),
        avg_chunk_size=round(sum(sizes) / len(sizes)) if sizes else 0,
        max_chunk_size=max(sizes, default=0),
        min_chunk_size=min(sizes, default=0),
    )
    logger.debug(f"Chunked {document.url} into {len(chunks)} chunks ({label})")
    return ChunkingResult(chunks=chunks, total_tokens=sum(sizes), strategy=label, stats=stats)


def analyze_chunk_quality(chunk: ContentChunk) -> ChunkQualityReport:
    """Each failed boundary check demotes the chunk one tier below excellent."""
    issues: list[str] = []
    recommendations: list[str] = []

    if chunk.token_count > LARGE_CHUNK_TOKENS:
        issues.append("Chunk is very large (>1000 tokens)")
        recommendations.append("Split into smaller sections using subheadings")
    elif chunk.token_count < SMALL_CHUNK_TOKENS:
        issues.append("Chunk is very small (<50 tokens)")
        recommendations.append("Consider merging with adjacent chunks")

    if chunk.noise_ratio > HIGH_NOISE_RATIO:
        issues.append("High noise ratio (>50%)")
        recommendations.append("Remove excessive whitespace, comments, or non-content elements")

    if not chunk.heading:
        issues.append("Chunk lacks a clear heading")
        recommendations.append("Add descriptive heading to improve context")

    tiers = [ChunkQuality.EXCELLENT, ChunkQuality.GOOD, ChunkQuality.FAIR, ChunkQuality.POOR]
    quality = tiers[min(len(issues), len(tiers) - 1)]
    return ChunkQualityReport(quality=quality, issues=issues, recommendations=recommendations)
