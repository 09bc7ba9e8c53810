"""
Hallucination Data Models — Facts, verifications, triggers, and the risk report.

Facts and verifications live only for the duration of one scan.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from pagelens.models.issue_models import Severity, utc_now_iso


class FactCategory(str, Enum):
    DATE = "date"
    NUMBER = "number"
    NAME = "name"
    LOCATION = "location"
    CONCEPT = "concept"
    RELATIONSHIP = "relationship"


class TriggerType(str, Enum):
    MISSING_FACT = "missing_fact"
    CONTRADICTION = "contradiction"
    AMBIGUITY = "ambiguity"
    INCONSISTENCY = "inconsistency"


VerificationStatus = Literal["verified", "unverified", "contradicts"]


class ExtractedFact(BaseModel):
    id: str
    statement: str
    category: FactCategory = FactCategory.CONCEPT
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    source_context: str | None = None


class FactEvidence(BaseModel):
    """What the model said it knows about a claim."""

    found: bool = False
    knowledge: str | None = None
    selector: str | None = None
    text_snippet: str | None = None
    similarity: float | None = None


class Contradiction(BaseModel):
    conflicting_statement: str
    selector: str = ""
    text_snippet: str = ""


class FactVerification(BaseModel):
    fact: ExtractedFact
    verified: bool
    status: VerificationStatus = "unverified"
    evidence: FactEvidence = Field(default_factory=FactEvidence)
    contradictions: list[Contradiction] = Field(default_factory=list)


class HallucinationTrigger(BaseModel):
    type: TriggerType
    severity: Severity
    description: str
    facts: list[ExtractedFact] = Field(default_factory=list)
    verifications: list[FactVerification] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class FactCheckSummary(BaseModel):
    total_facts: int = 0
    verified_facts: int = 0
    unverified_facts: int = 0
    contradictions: int = 0
    ambiguities: int = 0


class HallucinationReport(BaseModel):
    """Misunderstanding report produced by the fact-verification subsystem."""

    url: str
    timestamp: str = Field(default_factory=utc_now_iso)
    triggers: list[HallucinationTrigger] = Field(default_factory=list)
    fact_check_summary: FactCheckSummary = Field(default_factory=FactCheckSummary)
    verifications: list[FactVerification] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    hallucination_risk_score: int = Field(default=0, ge=0, le=100)
    model_checked: bool = Field(default=False, description="Whether the model path contributed")
    model_error: str | None = None
    model_rate_limited: bool = False
