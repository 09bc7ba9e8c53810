"""
Enrichment Data Models — Comprehension, entities, FAQ and mirror-test payloads.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from pagelens.models.hallucination_models import HallucinationReport
from pagelens.models.issue_models import Issue

# ─── Comprehension ───────────────────────────────────────────────────────────


class Question(BaseModel):
    question: str
    category: str = "what"
    difficulty: str = "basic"


class TopEntity(BaseModel):
    name: str
    type: str = "Concept"
    relevance: float = 0.5


class SuggestedFAQ(BaseModel):
    question: str
    suggested_answer: str = ""
    importance: Literal["high", "medium", "low"] = "medium"


class ReadingLevel(BaseModel):
    grade: float = 0
    description: str = ""


class ComprehensionResult(BaseModel):
    summary: str
    page_type: str | None = None
    page_type_insights: list[str] = Field(default_factory=list)
    top_entities: list[TopEntity] = Field(default_factory=list)
    questions: list[Question] = Field(default_factory=list)
    suggested_faq: list[SuggestedFAQ] = Field(default_factory=list)
    reading_level: ReadingLevel | None = None
    key_topics: list[str] = Field(default_factory=list)
    sentiment: str | None = None
    technical_depth: str | None = None
    structure_quality: str | None = None


# ─── Entities ────────────────────────────────────────────────────────────────

EntityType = Literal[
    "organization", "product", "person", "date", "number", "location", "email", "url", "phone"
]
ENTITY_TYPES: tuple[str, ...] = (
    "organization", "product", "person", "date", "number", "location", "email", "url", "phone",
)


class EntityLocator(BaseModel):
    selector: str | None = None
    text_snippet: str = ""
    position: int = -1


class Entity(BaseModel):
    name: str
    type: EntityType
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    locator: EntityLocator = Field(default_factory=EntityLocator)
    source: Literal["regex", "schema", "llm"] = "regex"
    schema_field: str | None = None
    normalized: str | None = None
    context: str | None = None


class EntitySummary(BaseModel):
    total_entities: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    high_confidence: int = Field(default=0, description="confidence >= 0.8")
    medium_confidence: int = Field(default=0, description="0.5 <= confidence < 0.8")
    low_confidence: int = Field(default=0, description="confidence < 0.5")


class EntityExtractionResult(BaseModel):
    entities: list[Entity] = Field(default_factory=list)
    summary: EntitySummary = Field(default_factory=EntitySummary)
    schema_mapping: dict[str, list[Entity]] = Field(default_factory=dict)


# ─── FAQ ─────────────────────────────────────────────────────────────────────


class FAQEntry(BaseModel):
    question: str
    suggested_answer: str
    importance: Literal["high", "medium", "low"] = "medium"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    source: Literal["llm", "heuristic", "schema"] = "heuristic"


class FAQSummary(BaseModel):
    total_faqs: int = 0
    by_importance: dict[str, int] = Field(default_factory=lambda: {"high": 0, "medium": 0, "low": 0})
    average_confidence: float = 0.0


class FAQResult(BaseModel):
    faqs: list[FAQEntry] = Field(default_factory=list)
    summary: FAQSummary = Field(default_factory=FAQSummary)


# ─── Mirror test ─────────────────────────────────────────────────────────────


class IntendedMessaging(BaseModel):
    source: Literal["hero", "meta", "schema"]
    product_name: str | None = None
    description: str | None = None
    key_features: list[str] | None = None
    target_audience: str | None = None
    pricing: str | None = None
    category: str | None = None


class ModelInterpretation(BaseModel):
    product_name: str | None = None
    purpose: str | None = None
    key_features: list[str] | None = None
    target_audience: str | None = None
    pricing: str | None = None
    category: str | None = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


MismatchSeverity = Literal["critical", "major", "minor"]


class Mismatch(BaseModel):
    field: str
    intended: str
    interpreted: str
    severity: MismatchSeverity
    description: str
    recommendation: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class MirrorSummary(BaseModel):
    total_mismatches: int = 0
    critical: int = 0
    major: int = 0
    minor: int = 0
    alignment_score: int = Field(default=100, ge=0, le=100)
    clarity_score: int = Field(default=0, ge=0, le=100)


class MirrorReport(BaseModel):
    intended_messaging: list[IntendedMessaging] = Field(default_factory=list)
    interpretation: ModelInterpretation
    mismatches: list[Mismatch] = Field(default_factory=list)
    summary: MirrorSummary = Field(default_factory=MirrorSummary)
    recommendations: list[str] = Field(default_factory=list)


# ─── Orchestrator output ─────────────────────────────────────────────────────


class EnrichmentResult(BaseModel):
    """Fan-in of every enrichment task. A failed task leaves its field as None."""

    comprehension: ComprehensionResult | None = None
    entities: EntityExtractionResult | None = None
    faqs: FAQResult | None = None
    hallucination_report: HallucinationReport | None = None
    mirror_report: MirrorReport | None = None
    issues: list[Issue] = Field(default_factory=list, description="Findings folded back into the scan")
    model_limit_exceeded: bool = False
    failed_tasks: list[str] = Field(default_factory=list)
    tokens_used: int = 0
