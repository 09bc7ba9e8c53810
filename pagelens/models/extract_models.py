"""
Extractability Data Models — How much of a page an agent can actually read.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ContentSource(str, Enum):
    SERVER_RENDERED = "server-rendered"
    CLIENT_RENDERED = "client-rendered"
    INTERACTIVE = "interactive"
    HIDDEN = "hidden"
    IFRAME = "iframe"
    SHADOW_DOM = "shadow-dom"


class Extractability(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"
    IMPOSSIBLE = "impossible"


class ContentNode(BaseModel):
    """One content element and how an agent would get at its text."""

    selector: str
    tag: str
    source: ContentSource
    extractability: Extractability
    text_length: int = 0
    is_hidden: bool = False
    requires_interaction: bool = False
    is_nested: bool = Field(default=False, description="Inside an iframe or a custom element")
    children: int = 0
    depth: int = 0


class ExtractabilitySummary(BaseModel):
    total_nodes: int = 0
    extractable_nodes: int = 0
    hidden_nodes: int = 0
    interactive_nodes: int = 0
    iframe_nodes: int = 0
    client_rendered_nodes: int = 0
    server_rendered_nodes: int = 0


class ExtractabilityScores(BaseModel):
    """Percentages, each 0-100."""

    extractability_score: int = 0
    server_rendered_percent: int = 0
    hidden_percent: int = 0
    interactive_percent: int = 0
    iframe_percent: int = 0


class ExtractabilityIssue(BaseModel):
    type: str
    severity: str
    description: str
    count: int = 0


class ContentTypeExtractability(BaseModel):
    extractable: int = 0
    total: int = 0
    percentage: int = Field(default=0, ge=0, le=100)


class ExtractabilityReport(BaseModel):
    url: str
    nodes: list[ContentNode] = Field(default_factory=list)
    summary: ExtractabilitySummary = Field(default_factory=ExtractabilitySummary)
    scores: ExtractabilityScores = Field(default_factory=ExtractabilityScores)
    issues: list[ExtractabilityIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    content_types: dict[str, ContentTypeExtractability] = Field(
        default_factory=dict, description="Keyed by text, images, links, structured"
    )
