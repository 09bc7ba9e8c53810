"""
Hallucination Detection — Finds content an AI model is likely to misstate.

Two independent paths feed one report:
1. Claim check (needs a model): the model pulls 8-12 checkable claims from the
   main content and judges each from its own knowledge as verified,
   unverified, or contradicts.
2. Local contradictions (no model): pairs of text blocks that talk about the
   same thing but carry different years or numbers.

The local path always runs, so a report exists even without a provider or
when the model call fails.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from pagelens.core.document import Document, element_text
from pagelens.core.text import word_overlap
from pagelens.enrichment.content import main_content_text
from pagelens.llm.errors import ProviderError, is_rate_limit_error
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.response_parser import optional_text, payload_shape
from pagelens.models.hallucination_models import (
    Contradiction,
    ExtractedFact,
    FactCategory,
    FactCheckSummary,
    FactEvidence,
    FactVerification,
    HallucinationReport,
    HallucinationTrigger,
    TriggerType,
)
from pagelens.models.issue_models import Category, Issue, IssueLocation, Severity
from pagelens.models.llm_models import CallOverrides

logger = logging.getLogger("pagelens.hallucination")

BLOCK_TAGS = (
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "li", "td", "th", "blockquote", "figcaption",
    "dt", "dd", "summary", "article", "section",
)
MIN_BLOCK_LENGTH = 10

DATE_RE = re.compile(
    r"\b(19|20)\d{2}\b|\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2},?\s+\d{4}\b",
    re.IGNORECASE,
)
NUMBER_RE = re.compile(
    r"\b\d+(?:,\d{3})*(?:\.\d+)?(?:\s*(?:million|billion|thousand|percent|%|dollars?|\$))?\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")
_NUMBER_FORMATTING_RE = re.compile(r"[,$%\s]")
_LEADING_NUMBER_RE = re.compile(r"^(\d+(?:\.\d+)?)")

SIMILARITY_THRESHOLD = 0.2
DATE_KEYWORDS = ("found", "establish", "start")
NUMBER_KEYWORDS = ("ram", "memory", "gb", "accuracy")

LOCATE_THRESHOLD = 0.5

UNVERIFIED_RISK = 7
CONTRADICTION_RISK = 25
LOCAL_TRIGGER_RISK = 10
HIGH_RISK_SCORE = 50

TRIGGER_IMPACT: dict[TriggerType, int] = {
    TriggerType.MISSING_FACT: 25,
    TriggerType.CONTRADICTION: 40,
    TriggerType.AMBIGUITY: 15,
    TriggerType.INCONSISTENCY: 20,
}

TRIGGER_REMEDIATION: dict[TriggerType, str] = {
    TriggerType.MISSING_FACT: (
        "Ensure all important facts are clearly stated in the visible content. "
        "Add explicit statements rather than relying on implicit information."
    ),
    TriggerType.CONTRADICTION: (
        "Review and resolve contradictory information. "
        "Ensure dates, numbers, and facts are consistent throughout the page."
    ),
    TriggerType.AMBIGUITY: (
        "Clarify ambiguous statements. Use explicit language and avoid vague references."
    ),
    TriggerType.INCONSISTENCY: (
        "Standardize information presentation. Ensure consistent formatting and terminology."
    ),
}

CLAIM_CHECK_SYSTEM_PROMPT = """\
You are a fact checker. You read web content and pull out concrete, checkable claims:
dates, years, metrics, quantities, named facts, specifications.

For every claim, judge it ONLY from your own training knowledge, never from the page
itself:
- "verified": you know this to be true
- "unverified": you cannot confirm it (new, niche, or private information)
- "contradicts": what you know conflicts with the claim

Output STRICT JSON only."""

CLAIM_CHECK_USER_PROMPT = """\
Extract 8-12 specific, checkable claims from this content and judge each one.

URL: {url}
Content: {content}

Respond in JSON format:
{{
  "claims": [
    {{
      "statement": "Specific claim as stated on the page",
      "category": "date|number|name|location|concept|relationship",
      "confidence": 0.9,
      "sourceContext": "Brief context where the page mentions it",
      "status": "verified|unverified|contradicts",
      "knowledge": "What you know about this claim, or why you cannot confirm it"
    }}
  ]
}}"""

CLAIM_CONTENT_CHARS = 5000


@dataclass
class TextBlock:
    text: str
    selector: str
    values: list[str] = field(default_factory=list)


# ─── Local contradiction detection ───────────────────────────────────────────


def extract_text_blocks(document: Document) -> list[TextBlock]:
    """Semantic blocks longer than ``MIN_BLOCK_LENGTH`` characters, grouped by tag."""
    blocks: list[TextBlock] = []
    for tag_name in BLOCK_TAGS:
        for index, element in enumerate(document.soup.find_all(tag_name)):
            text = element_text(element)
            if len(text) > MIN_BLOCK_LENGTH:
                blocks.append(TextBlock(text=text, selector=f"{tag_name}:nth-of-type({index + 1})"))
    return blocks


def normalize_date(value: str) -> str:
    """Reduce a date mention to its year when one is present."""
    match = _YEAR_RE.search(value)
    return match.group(0) if match else value.lower()


def normalize_number(value: str) -> str:
    """Strip separators, currency and percent marks; keep the leading numeric part."""
    cleaned = _NUMBER_FORMATTING_RE.sub("", value).lower()
    match = _LEADING_NUMBER_RE.match(cleaned)
    return match.group(1) if match else cleaned


def _shares_keyword(text1: str, text2: str, keywords: tuple[str, ...]) -> bool:
    lower1, lower2 = text1.lower(), text2.lower()
    return any(k in lower1 and k in lower2 for k in keywords)


def _local_fact(block: TextBlock, category: FactCategory) -> ExtractedFact:
    return ExtractedFact(
        id=str(uuid.uuid4()),
        statement=block.text[:150],
        category=category,
        confidence=0.8,
    )


def _pairwise_conflicts(
    blocks: list[TextBlock],
    keywords: tuple[str, ...],
    normalize,
    category: FactCategory,
    label: str,
    explanation: str,
) -> list[HallucinationTrigger]:
    triggers: list[HallucinationTrigger] = []
    for i, first in enumerate(blocks):
        for second in blocks[i + 1 :]:
            similarity = word_overlap(first.text, second.text)
            if similarity <= SIMILARITY_THRESHOLD and not _shares_keyword(first.text, second.text, keywords):
                continue

            values1 = [normalize(v) for v in first.values]
            values2 = [normalize(v) for v in second.values]
            if not values1 or not values2 or any(v in values2 for v in values1):
                continue

            triggers.append(HallucinationTrigger(
                type=TriggerType.CONTRADICTION,
                severity=Severity.HIGH,
                description=(
                    f'Conflicting {label} found: "{", ".join(first.values)}" vs '
                    f'"{", ".join(second.values)}". {explanation}'
                ),
                facts=[_local_fact(first, category), _local_fact(second, category)],
                evidence=[
                    f"Block 1 ({first.selector}): {first.text[:200]}",
                    f"Block 2 ({second.selector}): {second.text[:200]}",
                ],
                confidence=max(0.6, similarity),
            ))
    return triggers


def detect_local_contradictions(document: Document) -> list[HallucinationTrigger]:
    """Contradiction triggers from blocks that share context but disagree on years or numbers."""
    date_blocks: list[TextBlock] = []
    number_blocks: list[TextBlock] = []
    for block in extract_text_blocks(document):
        dates = [m.group(0) for m in DATE_RE.finditer(block.text)]
        if dates:
            date_blocks.append(TextBlock(block.text, block.selector, dates))
        numbers = [m.group(0) for m in NUMBER_RE.finditer(block.text)]
        if numbers:
            number_blocks.append(TextBlock(block.text, block.selector, numbers))

    triggers = _pairwise_conflicts(
        date_blocks,
        DATE_KEYWORDS,
        normalize_date,
        FactCategory.DATE,
        "dates",
        "Page mentions multiple different years for similar events.",
    )
    triggers += _pairwise_conflicts(
        number_blocks,
        NUMBER_KEYWORDS,
        normalize_number,
        FactCategory.NUMBER,
        "numbers",
        "Page contains inconsistent specifications or metrics.",
    )
    return triggers


# ─── Model claim check ───────────────────────────────────────────────────────


def _category(value: Any) -> FactCategory:
    try:
        return FactCategory(str(value).lower())
    except ValueError:
        return FactCategory.CONCEPT


def _confidence(value: Any, default: float = 0.5) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return default


def _locate(statement: str, blocks: list[TextBlock]) -> tuple[TextBlock | None, float]:
    """Best-matching page block for a claim, by share of the claim's long words present."""
    tokens = statement.lower().split()
    if not tokens:
        return None, 0.0
    best: TextBlock | None = None
    best_score = 0.0
    for block in blocks:
        lower = block.text.lower()
        matched = [t for t in tokens if len(t) > 3 and t in lower]
        score = len(matched) / len(tokens)
        if score > best_score:
            best, best_score = block, score
    return best, best_score


def parse_claims(data: Any, blocks: list[TextBlock]) -> list[FactVerification]:
    """Map the model's claim list onto FactVerification records, skipping malformed claims."""
    claims = data.get("claims") if isinstance(data, dict) else data
    if not isinstance(claims, list):
        return []

    verifications: list[FactVerification] = []
    for claim in claims:
        if not isinstance(claim, dict) or not optional_text(claim.get("statement")):
            continue
        try:
            verifications.append(_verification(claim, blocks))
        except ValidationError as e:
            logger.debug(f"Skipping malformed claim {claim!r}: {e}")
    return verifications


def _verification(claim: dict[str, Any], blocks: list[TextBlock]) -> FactVerification:
    status = str(claim.get("status", "unverified")).lower()
    if status not in ("verified", "unverified", "contradicts"):
        status = "unverified"

    fact = ExtractedFact(
        id=str(uuid.uuid4()),
        statement=optional_text(claim["statement"]),
        category=_category(claim.get("category")),
        confidence=_confidence(claim.get("confidence")),
        source_context=optional_text(claim.get("sourceContext")),
    )
    knowledge = optional_text(claim.get("knowledge"))
    block, similarity = _locate(fact.statement, blocks)
    located = block is not None and similarity > LOCATE_THRESHOLD
    evidence = FactEvidence(
        found=status != "unverified",
        knowledge=knowledge,
        selector=block.selector if located else None,
        text_snippet=block.text[:200] if located else None,
        similarity=round(similarity, 2) if located else None,
    )
    contradictions = []
    if status == "contradicts":
        contradictions.append(Contradiction(
            conflicting_statement=knowledge or "Model knowledge conflicts with this claim",
            selector=evidence.selector or "",
            text_snippet=evidence.text_snippet or fact.statement[:200],
        ))
    return FactVerification(
        fact=fact,
        verified=status == "verified",
        status=status,
        evidence=evidence,
        contradictions=contradictions,
    )


async def check_claims(document: Document, gateway: LLMGateway) -> list[FactVerification]:
    """One structured model call: extract claims and judge them from model knowledge."""
    content = main_content_text(document)[:CLAIM_CONTENT_CHARS]
    data = await gateway.complete_json(
        CLAIM_CHECK_SYSTEM_PROMPT,
        CLAIM_CHECK_USER_PROMPT.format(url=document.url, content=content),
        CallOverrides(temperature=0.1, max_tokens=1500),
        context="claim check",
    )
    with payload_shape("claim check"):
        return parse_claims(data, extract_text_blocks(document))


def _average_confidence(verifications: list[FactVerification]) -> float:
    return sum(v.fact.confidence for v in verifications) / len(verifications)


def claim_triggers(verifications: list[FactVerification]) -> list[HallucinationTrigger]:
    triggers: list[HallucinationTrigger] = []

    unverified = [v for v in verifications if v.status == "unverified"]
    if unverified:
        count = len(unverified)
        if count > 6:
            severity = Severity.CRITICAL
        elif count > 3:
            severity = Severity.HIGH
        else:
            severity = Severity.MEDIUM
        triggers.append(HallucinationTrigger(
            type=TriggerType.MISSING_FACT,
            severity=severity,
            description=(
                f"{count} claim(s) on this page cannot be confirmed by AI models from their own "
                "knowledge. Models may fill the gap with guesses when answering about them."
            ),
            facts=[v.fact for v in unverified],
            verifications=unverified,
            evidence=[v.fact.statement for v in unverified],
            confidence=_average_confidence(unverified),
        ))

    contradicted = [v for v in verifications if v.status == "contradicts"]
    if contradicted:
        triggers.append(HallucinationTrigger(
            type=TriggerType.CONTRADICTION,
            severity=Severity.CRITICAL,
            description=(
                f"{len(contradicted)} claim(s) contradict what AI models know. "
                "Models may repeat their own version instead of the page's."
            ),
            facts=[v.fact for v in contradicted],
            verifications=contradicted,
            evidence=[
                f"{v.fact.statement} | model: {v.evidence.knowledge or 'conflicting knowledge'}"
                for v in contradicted
            ],
            confidence=_average_confidence(contradicted),
        ))
    return triggers


# ─── Report ──────────────────────────────────────────────────────────────────


def risk_score(unverified: int, contradictions: int, local_triggers: int) -> int:
    score = unverified * UNVERIFIED_RISK + contradictions * CONTRADICTION_RISK + local_triggers * LOCAL_TRIGGER_RISK
    return min(100, score)


def build_recommendations(
    unverified: int, contradictions: int, local_triggers: int, score: int, total_triggers: int
) -> list[str]:
    recommendations: list[str] = []
    if unverified > 0:
        recommendations.append(
            f"Verify {unverified} fact(s) that AI models cannot confirm; state them explicitly and cite sources"
        )
    if contradictions > 0:
        recommendations.append(
            f"Resolve {contradictions} contradiction(s) with widely known facts to prevent AI confusion"
        )
    if local_triggers > 0:
        suffix = "y" if local_triggers == 1 else "ies"
        recommendations.append(f"Review {local_triggers} potential inconsistenc{suffix} in dates/numbers")
    if score > HIGH_RISK_SCORE:
        recommendations.append("High hallucination risk - consider restructuring content for clarity")
    if total_triggers == 0:
        recommendations.append("No hallucination triggers detected - content appears consistent")
    return recommendations


async def detect_hallucinations(document: Document, gateway: LLMGateway | None = None) -> HallucinationReport:
    """
    Build the misunderstanding report for ``document``.

    Args:
        document: parsed page
        gateway: model access; without one only local detection runs

    Returns:
        HallucinationReport. A failed model call is recorded on ``model_error``
        (and ``model_rate_limited``) instead of raising.
    """
    local_triggers = detect_local_contradictions(document)

    verifications: list[FactVerification] = []
    model_error: str | None = None
    rate_limited = False

    if gateway is not None:
        try:
            verifications = await check_claims(document, gateway)
        except ProviderError as e:
            model_error = str(e)
            rate_limited = is_rate_limit_error(e)
            logger.warning(f"Claim check failed for {document.url}: {e}")

    triggers = claim_triggers(verifications) + local_triggers

    unverified = sum(1 for v in verifications if v.status == "unverified")
    contradicted = sum(1 for v in verifications if v.status == "contradicts")
    summary = FactCheckSummary(
        total_facts=len(verifications),
        verified_facts=sum(1 for v in verifications if v.verified),
        unverified_facts=unverified,
        contradictions=contradicted,
        ambiguities=sum(1 for t in triggers if t.type == TriggerType.AMBIGUITY),
    )
    score = risk_score(unverified, contradicted, len(local_triggers))

    logger.info(
        f"Hallucination check for {document.url}: {len(verifications)} claims, "
        f"{len(local_triggers)} local contradictions, risk={score}"
    )
    return HallucinationReport(
        url=document.url,
        triggers=triggers,
        fact_check_summary=summary,
        verifications=verifications,
        recommendations=build_recommendations(unverified, contradicted, len(local_triggers), score, len(triggers)),
        hallucination_risk_score=score,
        model_checked=gateway is not None and model_error is None,
        model_error=model_error,
        model_rate_limited=rate_limited,
    )


def triggers_to_issues(report: HallucinationReport) -> list[Issue]:
    """One HALL issue per trigger, impact scaled by the trigger's confidence."""
    issues: list[Issue] = []
    for trigger in report.triggers:
        kind = trigger.type.value
        issues.append(Issue(
            id=f"HALL-{kind.upper()}-{uuid.uuid4().hex[:8]}",
            title=f"Hallucination Trigger: {kind.replace('_', ' ')}",
            severity=trigger.severity,
            category=Category.HALL,
            description=trigger.description,
            remediation=TRIGGER_REMEDIATION[trigger.type],
            impact_score=round(TRIGGER_IMPACT[trigger.type] * trigger.confidence),
            location=IssueLocation(url=report.url),
            evidence=list(trigger.evidence),
            tags=["hallucination", "ai-safety", kind],
            confidence=trigger.confidence,
            timestamp=report.timestamp,
        ))
    return issues
