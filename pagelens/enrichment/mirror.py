"""
Mirror Test — What the page means to say versus what a model reads from it.

Intended messaging comes from the hero (first H1 and its lead paragraph),
meta / OpenGraph tags, and schema.org Product, SoftwareApplication and
Organization data. The model reads the page cold and reports product name,
purpose, features, audience, pricing and category; field-level differences
become severity-tagged mismatches.
"""

from __future__ import annotations

import logging
from typing import Any

from pagelens.core.document import Document, element_text, json_ld_types
from pagelens.enrichment.content import CHROME_TAGS, page_prose
from pagelens.llm.errors import ProviderResponseError
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.response_parser import optional_text, payload_shape
from pagelens.models.enrichment_models import (
    IntendedMessaging,
    Mismatch,
    MirrorReport,
    MirrorSummary,
    ModelInterpretation,
)
from pagelens.models.issue_models import Category, Issue, IssueLocation, Severity
from pagelens.models.llm_models import CallOverrides

logger = logging.getLogger("pagelens.enrichment.mirror")

MODEL_CONTENT_CHARS = 3000
PURPOSE_SIMILARITY_MIN = 0.3

SEVERITY_PENALTY = {"critical": 30, "major": 20, "minor": 10}

ALIGNMENT_MIN = 70
CLARITY_MIN = 60
CONFIDENCE_MIN = 0.6
MIN_KEY_FEATURES = 3

DRIFT_IMPACT = {"critical": 30, "major": 20}
DRIFT_SEVERITY = {"critical": Severity.CRITICAL, "major": Severity.HIGH}

MIRROR_SYSTEM_PROMPT = (
    "You are an expert at analyzing web content and understanding product messaging. "
    "Be precise and only report what you can verify from the content."
)

MIRROR_USER_PROMPT = """\
You are analyzing a webpage to understand what an AI assistant would learn from it.

Page Title: {title}
Main Heading: {h1}

Page Content:
\"\"\"
{content}
\"\"\"

Answer these questions as if you're an AI assistant seeing this page for the first time:
1. What is the name of the product/service?
2. What is its main purpose? (1-2 sentences)
3. What are the key features or capabilities? (list 3-5)
4. Who is the target audience?
5. What is the pricing model? (if mentioned)
6. What category/industry is this in?
7. How confident are you in your understanding? (0.0-1.0)

Return ONLY valid JSON (no other text):
{{
  "productName": "Name of product/service",
  "purpose": "What it does in 1-2 sentences",
  "keyFeatures": ["Feature 1", "Feature 2", "Feature 3"],
  "targetAudience": "Who should use this",
  "pricing": "Pricing model if mentioned, or null",
  "category": "Industry/category",
  "confidence": 0.85
}}

IMPORTANT:
- Only include information explicitly stated on the page
- If something is unclear or not mentioned, use null
- Be honest about your confidence level
- Don't make assumptions or fill in gaps"""


# ─── Intended messaging ──────────────────────────────────────────────────────


def _hero_messaging(document: Document) -> IntendedMessaging | None:
    h1 = document.soup.find("h1")
    name = element_text(h1) if h1 is not None else ""
    if not name:
        return None
    hero = None
    for parent in h1.parents:
        classes = " ".join(parent.get("class") or [])
        if parent.name in ("section", "header") or (parent.name == "div" and "hero" in classes):
            hero = parent
            break
    lead = hero.find("p") if hero is not None else None
    return IntendedMessaging(source="hero", product_name=name, description=element_text(lead) or None)


def _meta_messaging(document: Document) -> IntendedMessaging | None:
    title = document.meta_content(property="og:title") or document.title()
    description = document.meta_content(property="og:description") or document.meta_content(name="description")
    if not title and not description:
        return None
    return IntendedMessaging(source="meta", product_name=title or None, description=description or None)


def _scalar(value: Any) -> str | None:
    if isinstance(value, (str, int, float)) and str(value).strip():
        return str(value).strip()
    return None


def _schema_messaging(document: Document) -> list[IntendedMessaging]:
    messaging: list[IntendedMessaging] = []
    for item in document.json_ld():
        types = json_ld_types(item)
        if "Product" in types or "SoftwareApplication" in types:
            fields: dict[str, Any] = {
                "product_name": _scalar(item.get("name")),
                "description": _scalar(item.get("description")),
                "category": _scalar(item.get("category")),
            }
            if isinstance(item.get("features"), list):
                fields["key_features"] = [str(f) for f in item["features"]]
            offers = item.get("offers")
            offers = offers if isinstance(offers, list) else [offers]
            prices = [str(o["price"]) for o in offers if isinstance(o, dict) and o.get("price")]
            if prices:
                fields["pricing"] = ", ".join(prices)
            audience = item.get("audience")
            if isinstance(audience, dict) and audience.get("audienceType"):
                fields["target_audience"] = _scalar(audience["audienceType"])
            messaging.append(IntendedMessaging(source="schema", **{k: v for k, v in fields.items() if v}))
        if "Organization" in types and _scalar(item.get("name")):
            messaging.append(IntendedMessaging(
                source="schema",
                product_name=_scalar(item.get("name")),
                description=_scalar(item.get("description")),
            ))
    return messaging


def extract_intended_messaging(document: Document) -> list[IntendedMessaging]:
    messaging = [m for m in (_hero_messaging(document), _meta_messaging(document)) if m is not None]
    messaging += _schema_messaging(document)
    return messaging


def consolidate(intended: list[IntendedMessaging]) -> dict[str, Any]:
    """First non-empty value of each field, in extraction order."""
    consolidated: dict[str, Any] = {}
    for message in intended:
        for field in ("product_name", "description", "key_features", "target_audience", "pricing", "category"):
            value = getattr(message, field)
            if value and field not in consolidated:
                consolidated[field] = value
    return consolidated


# ─── Model interpretation ────────────────────────────────────────────────────


def parse_interpretation(data: Any) -> ModelInterpretation:
    if not isinstance(data, dict):
        raise ProviderResponseError("Mirror interpretation is not a JSON object")
    features = data.get("keyFeatures")
    try:
        confidence = min(1.0, max(0.0, float(data.get("confidence") or 0.5)))
    except (TypeError, ValueError):
        confidence = 0.5
    return ModelInterpretation(
        product_name=optional_text(data.get("productName")),
        purpose=optional_text(data.get("purpose")),
        key_features=[str(f) for f in features] if isinstance(features, list) and features else None,
        target_audience=optional_text(data.get("targetAudience")),
        pricing=optional_text(data.get("pricing")),
        category=optional_text(data.get("category")),
        confidence=confidence,
    )


async def interpret_page(document: Document, gateway: LLMGateway) -> ModelInterpretation:
    content = page_prose(document, CHROME_TAGS - {"header"})[:MODEL_CONTENT_CHARS]
    data = await gateway.complete_json(
        MIRROR_SYSTEM_PROMPT,
        MIRROR_USER_PROMPT.format(title=document.title(), h1=document.first_h1(), content=content),
        CallOverrides(temperature=0.2, max_tokens=1000),
        context="mirror interpretation",
    )
    with payload_shape("mirror interpretation"):
        return parse_interpretation(data)


# ─── Comparison ──────────────────────────────────────────────────────────────


def _long_words(text: str) -> set[str]:
    return {w for w in text.lower().split() if len(w) > 4}


def find_mismatches(intended: list[IntendedMessaging], interpreted: ModelInterpretation) -> list[Mismatch]:
    mismatches: list[Mismatch] = []
    wanted = consolidate(intended)

    name = wanted.get("product_name")
    if name and interpreted.product_name:
        intended_lower = name.lower()
        interpreted_lower = interpreted.product_name.lower()
        if (
            interpreted_lower.split()[0] not in intended_lower
            and intended_lower.split()[0] not in interpreted_lower
        ):
            mismatches.append(Mismatch(
                field="productName",
                intended=name,
                interpreted=interpreted.product_name,
                severity="critical",
                description=(
                    f'AI interprets the product name as "{interpreted.product_name}" '
                    f'but page metadata says "{name}"'
                ),
                recommendation=(
                    "Ensure H1, title tag, and meta tags consistently use the same product name. "
                    "Add Schema.org Product markup with clear name."
                ),
                confidence=0.9,
            ))
    elif name:
        mismatches.append(Mismatch(
            field="productName",
            intended=name,
            interpreted="Not identified",
            severity="critical",
            description="AI could not identify the product name from the page content",
            recommendation=(
                "Make the product name more prominent in H1, hero section, and opening paragraphs. "
                "Add Schema.org markup."
            ),
            confidence=0.85,
        ))

    description = wanted.get("description")
    if description and interpreted.purpose:
        intended_words = _long_words(description)
        interpreted_words = _long_words(interpreted.purpose)
        largest = max(len(intended_words), len(interpreted_words))
        similarity = len(intended_words & interpreted_words) / largest if largest else 1.0
        if similarity < PURPOSE_SIMILARITY_MIN:
            mismatches.append(Mismatch(
                field="purpose",
                intended=description,
                interpreted=interpreted.purpose,
                severity="major",
                description=(
                    f'AI understands the purpose as "{interpreted.purpose}" which differs significantly '
                    f'from intended description "{description}"'
                ),
                recommendation=(
                    "Clarify the main value proposition in the hero section and meta description. "
                    "Use clear, simple language."
                ),
                confidence=0.8,
            ))
    elif description:
        mismatches.append(Mismatch(
            field="purpose",
            intended=description,
            interpreted="Unclear",
            severity="major",
            description="AI could not clearly understand what the product does",
            recommendation=(
                'Add a clear, concise description in the first paragraph. Start with "This is..." '
                'or "We help you...".'
            ),
            confidence=0.75,
        ))

    audience = wanted.get("target_audience")
    if audience and interpreted.target_audience:
        intended_lower = audience.lower()
        interpreted_lower = interpreted.target_audience.lower()
        if interpreted_lower not in intended_lower and intended_lower not in interpreted_lower:
            mismatches.append(Mismatch(
                field="targetAudience",
                intended=audience,
                interpreted=interpreted.target_audience,
                severity="major",
                description=(
                    f'AI thinks target audience is "{interpreted.target_audience}" but intended for "{audience}"'
                ),
                recommendation=(
                    'Explicitly state target audience early in the page. Use phrases like "For developers..." '
                    'or "Perfect for teams...".'
                ),
                confidence=0.7,
            ))

    pricing = wanted.get("pricing")
    if pricing and interpreted.pricing:
        if "free" in pricing.lower() and "free" not in interpreted.pricing.lower():
            mismatches.append(Mismatch(
                field="pricing",
                intended=pricing,
                interpreted=interpreted.pricing,
                severity="major",
                description=f'Product is free but AI interprets pricing as "{interpreted.pricing}"',
                recommendation=(
                    'Make "free" or "open source" messaging more prominent. Add pricing schema markup.'
                ),
                confidence=0.8,
            ))
    elif pricing:
        mismatches.append(Mismatch(
            field="pricing",
            intended=pricing,
            interpreted="Not found",
            severity="minor",
            description="Pricing information not clear to AI",
            recommendation='Add clear pricing section or "Free" badge. Include Schema.org Offer markup.',
            confidence=0.65,
        ))

    category = wanted.get("category")
    if category and interpreted.category:
        intended_lower = category.lower()
        interpreted_lower = interpreted.category.lower()
        if interpreted_lower not in intended_lower and intended_lower not in interpreted_lower:
            mismatches.append(Mismatch(
                field="category",
                intended=category,
                interpreted=interpreted.category,
                severity="minor",
                description=f'AI categorizes this as "{interpreted.category}" but schema says "{category}"',
                recommendation=(
                    "Use consistent industry terms throughout the page. "
                    "Add applicationCategory in Schema.org markup."
                ),
                confidence=0.6,
            ))
    return mismatches


def alignment_score(mismatches: list[Mismatch]) -> float:
    score = 100.0
    for mismatch in mismatches:
        score -= SEVERITY_PENALTY[mismatch.severity] * mismatch.confidence
    return max(0.0, min(100.0, score))


def clarity_score(interpreted: ModelInterpretation) -> float:
    """Model confidence scaled by how many of name, purpose, features, audience it found."""
    fields = [
        interpreted.product_name,
        interpreted.purpose,
        interpreted.key_features,
        interpreted.target_audience,
    ]
    completeness = sum(1 for f in fields if f) / len(fields)
    return max(0.0, min(100.0, interpreted.confidence * 100 * completeness))


def build_recommendations(
    mismatches: list[Mismatch], interpreted: ModelInterpretation, alignment: float, clarity: float
) -> list[str]:
    recommendations: list[str] = []
    for mismatch in mismatches:
        if mismatch.recommendation not in recommendations:
            recommendations.append(mismatch.recommendation)

    if alignment < ALIGNMENT_MIN:
        recommendations.append(
            "Review and align all messaging sources (H1, meta tags, schema markup) to use consistent terminology."
        )
    if clarity < CLARITY_MIN:
        recommendations.append(
            "Simplify and clarify the main value proposition in the hero section and first paragraph."
        )
    if interpreted.confidence < CONFIDENCE_MIN:
        recommendations.append(
            "Content may be ambiguous or unclear to AI. "
            "Use more direct, declarative statements about what the product does."
        )
    if not interpreted.product_name:
        recommendations.append("Add clear product name in H1 and Schema.org markup to help AI identify the product.")
    if not interpreted.purpose:
        recommendations.append(
            "Add a clear elevator pitch in the first 1-2 sentences explaining what the product does and who it's for."
        )
    if not interpreted.key_features or len(interpreted.key_features) < MIN_KEY_FEATURES:
        recommendations.append(
            "Make key features more prominent using bullet points or feature cards near the top of the page."
        )
    return recommendations


async def run_mirror_test(document: Document, gateway: LLMGateway) -> MirrorReport:
    """
    Compare intended messaging with the model's reading of the page.

    Raises ValueError when the page declares no messaging at all (no H1,
    title or description meta, or product / organization schema).
    """
    intended = extract_intended_messaging(document)
    if not intended:
        raise ValueError("No intended messaging found. Page needs H1, meta tags, or Schema.org markup.")

    interpreted = await interpret_page(document, gateway)
    mismatches = find_mismatches(intended, interpreted)
    alignment = alignment_score(mismatches)
    clarity = clarity_score(interpreted)

    summary = MirrorSummary(
        total_mismatches=len(mismatches),
        critical=sum(1 for m in mismatches if m.severity == "critical"),
        major=sum(1 for m in mismatches if m.severity == "major"),
        minor=sum(1 for m in mismatches if m.severity == "minor"),
        alignment_score=round(alignment),
        clarity_score=round(clarity),
    )
    logger.info(f"Mirror test for {document.url}: {len(mismatches)} mismatches, alignment={summary.alignment_score}")
    return MirrorReport(
        intended_messaging=intended,
        interpretation=interpreted,
        mismatches=mismatches,
        summary=summary,
        recommendations=build_recommendations(mismatches, interpreted, alignment, clarity),
    )


def mismatches_to_issues(report: MirrorReport, url: str) -> list[Issue]:
    """Critical and major mismatches as DRIFT issues; minor ones stay in the report only."""
    issues: list[Issue] = []
    for mismatch in report.mismatches:
        if mismatch.severity not in DRIFT_SEVERITY:
            continue
        issues.append(Issue(
            id=f"DRIFT-{mismatch.field.upper()}",
            title=f"AI reads the page's {mismatch.field} differently than intended",
            severity=DRIFT_SEVERITY[mismatch.severity],
            category=Category.DRIFT,
            description=mismatch.description,
            remediation=mismatch.recommendation,
            impact_score=round(DRIFT_IMPACT[mismatch.severity] * mismatch.confidence),
            location=IssueLocation(url=url),
            evidence=[f"Intended: {mismatch.intended}", f"Interpreted: {mismatch.interpreted}"],
            tags=["mirror-test", "messaging", mismatch.field],
            confidence=mismatch.confidence,
        ))
    return issues
