"""
FAQ Generation — Questions a page should answer, with suggested answers.

Model FAQs come first; heuristic FAQs (FAQPage schema, question-like
headings, question sentences, page-structure prompts) fill in the rest.
Duplicates are matched case-insensitively on the question text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from bs4 import Tag
from pydantic import ValidationError

from pagelens.core.document import Document, element_text, json_ld_types
from pagelens.enrichment.content import page_prose
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.response_parser import optional_text, payload_shape
from pagelens.models.enrichment_models import FAQEntry, FAQResult, FAQSummary
from pagelens.models.llm_models import CallOverrides

logger = logging.getLogger("pagelens.enrichment.faq")

IMPORTANCE_ORDER = {"high": 0, "medium": 1, "low": 2}
MAX_ANSWER_CHARS = 300
MODEL_CONTENT_CHARS = 4000

QUESTION_WORD_RE = re.compile(
    r"^(what|why|how|when|where|who|which|can|should|is|are|do|does|will|would|could)\b", re.IGNORECASE
)
QUESTION_PATTERNS = (
    re.compile(r"(?:^|\n)([A-Z][^.!?]*(?:what|why|how|when|where|who)[^.!?]*\?)", re.IGNORECASE),
    re.compile(r"(?:^|\n)((?:What|Why|How|When|Where|Who|Can|Should|Is|Are|Do|Does|Will)[^.!?]{10,150}\?)"),
)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_TITLE_SPLIT_RE = re.compile(r"[-–—|]")

FAQ_SYSTEM_PROMPT = (
    "You are an expert at understanding user intent and creating helpful FAQ sections. "
    "Generate accurate, useful FAQ items."
)

FAQ_USER_PROMPT = """\
Analyze this webpage content and generate a list of FAQ (Frequently Asked Questions) that this page should answer.

Page Title: {title}

Content:
\"\"\"
{content}
\"\"\"

Generate 5-10 FAQ items that:
1. Address the most important questions visitors would have
2. Can be answered from the content provided
3. Cover different aspects (what, why, how, when, pricing, features, etc.)
4. Are ranked by importance (high/medium/low)

For each FAQ, provide:
- question: Clear, specific question a visitor would ask
- suggestedAnswer: Concise answer (2-3 sentences) based on the content
- importance: "high" (critical info), "medium" (useful), or "low" (nice to have)
- confidence: 0.0-1.0 (how confident you are the answer is accurate)

Return ONLY a JSON array (no other text):
[
  {{"question": "What is this product/service?", "suggestedAnswer": "Brief answer based on content...", "importance": "high", "confidence": 0.95}}
]

Prefer "What/How/Why" questions over yes/no questions and only include questions you can answer from the content."""


# ─── Model ───────────────────────────────────────────────────────────────────


def parse_model_faqs(data: Any) -> list[FAQEntry]:
    if not isinstance(data, list):
        logger.warning("Model returned a non-array FAQ answer")
        return []
    faqs: list[FAQEntry] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        question = optional_text(item.get("question"))
        answer = optional_text(item.get("suggestedAnswer"))
        if not question or not answer:
            continue
        importance = item.get("importance")
        if not isinstance(importance, str) or importance not in IMPORTANCE_ORDER:
            importance = "medium"
        try:
            confidence = min(1.0, max(0.0, float(item.get("confidence") or 0.8)))
        except (TypeError, ValueError):
            confidence = 0.8
        try:
            faqs.append(FAQEntry(
                question=question,
                suggested_answer=answer,
                importance=importance,
                confidence=confidence,
                source="llm",
            ))
        except ValidationError as e:
            logger.debug(f"Skipping malformed FAQ {item!r}: {e}")
    return faqs


async def generate_model_faqs(text: str, title: str, gateway: LLMGateway) -> list[FAQEntry]:
    data = await gateway.complete_json(
        FAQ_SYSTEM_PROMPT,
        FAQ_USER_PROMPT.format(title=title, content=text[:MODEL_CONTENT_CHARS]),
        CallOverrides(temperature=0.3, max_tokens=2000),
        context="FAQ generation",
    )
    with payload_shape("FAQ generation"):
        return parse_model_faqs(data)


# ─── Heuristics ──────────────────────────────────────────────────────────────


def _schema_faqs(document: Document, seen: set[str]) -> list[FAQEntry]:
    faqs: list[FAQEntry] = []
    for item in document.json_ld():
        if "FAQPage" not in json_ld_types(item) or not isinstance(item.get("mainEntity"), list):
            continue
        for entity in item["mainEntity"]:
            if not isinstance(entity, dict) or "Question" not in json_ld_types(entity) or not entity.get("name"):
                continue
            question = str(entity["name"])
            accepted = entity.get("acceptedAnswer")
            answer = ""
            if isinstance(accepted, dict):
                answer = str(accepted.get("text") or accepted.get("name") or "")
            key = question.lower()
            if key in seen or not answer:
                continue
            seen.add(key)
            faqs.append(FAQEntry(
                question=question,
                suggested_answer=answer[:MAX_ANSWER_CHARS],
                importance="high",
                confidence=1.0,
                source="schema",
            ))
    return faqs


def _answer_after(heading: Tag) -> str:
    following = heading.find_next_sibling(True)
    if following is not None and following.name == "p":
        answer = element_text(following)[:MAX_ANSWER_CHARS]
        if answer:
            return answer
    parts: list[str] = []
    for sibling in heading.find_next_siblings(True):
        if sibling.name in ("h2", "h3", "h4") or len(parts) == 2:
            break
        parts.append(element_text(sibling))
    return " ".join(p for p in parts if p)[:MAX_ANSWER_CHARS]


def _heading_faqs(document: Document, seen: set[str]) -> list[FAQEntry]:
    faqs: list[FAQEntry] = []
    for heading in document.soup.find_all(["h2", "h3", "h4"]):
        text = element_text(heading)
        if not (text.endswith("?") or QUESTION_WORD_RE.search(text)):
            continue
        key = text.lower()
        if key in seen or not 10 <= len(text) <= 200:
            continue
        seen.add(key)
        answer = _answer_after(heading)
        if len(answer) >= 20:
            faqs.append(FAQEntry(
                question=text if text.endswith("?") else f"{text}?",
                suggested_answer=answer,
                importance="medium",
                confidence=0.7,
                source="heuristic",
            ))
    return faqs


def _text_pattern_faqs(text: str, seen: set[str]) -> list[FAQEntry]:
    faqs: list[FAQEntry] = []
    for pattern in QUESTION_PATTERNS:
        for match in pattern.finditer(text):
            question = match.group(1).strip()
            key = question.lower()
            if key in seen or not 15 <= len(question) <= 200:
                continue
            seen.add(key)
            start = match.start(1) + len(question)
            sentences = _SENTENCE_SPLIT_RE.split(text[start : start + 500])[:3]
            answer = ". ".join(sentences).strip()
            if len(answer) >= 30:
                faqs.append(FAQEntry(
                    question=question,
                    suggested_answer=answer[:MAX_ANSWER_CHARS],
                    importance="low",
                    confidence=0.5,
                    source="heuristic",
                ))
    return faqs


def _contextual_faqs(document: Document, seen: set[str]) -> list[FAQEntry]:
    soup = document.soup
    faqs: list[FAQEntry] = []

    h1 = soup.find("h1")
    title = document.first_h1() or document.title()
    product_name = _TITLE_SPLIT_RE.split(title)[0].strip() if title else ""
    if h1 is not None and product_name and f"what is {product_name.lower()}" not in seen:
        first_p = h1.find_next("p")
        intro = element_text(first_p) if first_p is not None else ""
        if len(intro) > 50:
            faqs.append(FAQEntry(
                question=f"What is {product_name}?",
                suggested_answer=intro[:MAX_ANSWER_CHARS],
                importance="high",
                confidence=0.6,
                source="heuristic",
            ))

    if soup.select_one('[class*="price"], [id*="price"], [class*="pricing"], [id*="pricing"]') is not None:
        faqs.append(FAQEntry(
            question="How much does it cost?",
            suggested_answer=(
                "Pricing information is available on this page. "
                "Please refer to the pricing section for detailed cost information."
            ),
            importance="high",
            confidence=0.5,
            source="heuristic",
        ))

    feature = soup.select_one('[class*="feature"]')
    if feature is not None or soup.select_one('[id*="feature"]') is not None:
        feature_text = element_text(feature) if feature is not None else ""
        if len(feature_text) > 50:
            faqs.append(FAQEntry(
                question="What are the key features?",
                suggested_answer=feature_text[:MAX_ANSWER_CHARS],
                importance="medium",
                confidence=0.6,
                source="heuristic",
            ))

    mailto = soup.select_one('a[href^="mailto:"]')
    tel = soup.select_one('a[href^="tel:"]')
    email = str(mailto.get("href", "")).replace("mailto:", "", 1) if mailto is not None else ""
    phone = element_text(tel) if tel is not None else ""
    if email or phone:
        faqs.append(FAQEntry(
            question="How can I get in touch?",
            suggested_answer=f"You can contact us at {' or '.join(v for v in (email, phone) if v)}",
            importance="medium",
            confidence=0.7,
            source="heuristic",
        ))
    return faqs


def generate_heuristic_faqs(document: Document, text: str | None = None) -> list[FAQEntry]:
    """FAQs recoverable from the markup alone."""
    seen: set[str] = set()
    faqs = _schema_faqs(document, seen)
    faqs += _heading_faqs(document, seen)
    faqs += _text_pattern_faqs(text if text is not None else page_prose(document), seen)
    faqs += _contextual_faqs(document, seen)
    return faqs


# ─── Merge ───────────────────────────────────────────────────────────────────


def merge_faqs(model_faqs: list[FAQEntry], heuristic_faqs: list[FAQEntry]) -> list[FAQEntry]:
    merged: dict[str, FAQEntry] = {}
    for faq in model_faqs:
        merged[faq.question.lower().strip()] = faq
    for faq in heuristic_faqs:
        key = faq.question.lower().strip()
        existing = merged.get(key)
        if existing is None:
            merged[key] = faq
        else:
            confidence = min(1.0, (existing.confidence + faq.confidence) / 2)
            merged[key] = existing.model_copy(update={"confidence": confidence})
    faqs = list(merged.values())
    faqs.sort(key=lambda f: (IMPORTANCE_ORDER[f.importance], -f.confidence))
    return faqs


def summarize_faqs(faqs: list[FAQEntry]) -> FAQSummary:
    by_importance = {level: sum(1 for f in faqs if f.importance == level) for level in IMPORTANCE_ORDER}
    average = sum(f.confidence for f in faqs) / len(faqs) if faqs else 0.0
    return FAQSummary(total_faqs=len(faqs), by_importance=by_importance, average_confidence=average)


async def generate_faqs(
    document: Document,
    gateway: LLMGateway | None = None,
    max_faqs: int | None = None,
) -> FAQResult:
    """
    Model plus heuristic FAQs, sorted by importance then confidence.

    Model failures propagate to the caller; without a gateway only the
    heuristics run.
    """
    text = page_prose(document)
    title = document.title() or document.first_h1()
    model_faqs = await generate_model_faqs(text, title, gateway) if gateway is not None else []

    faqs = merge_faqs(model_faqs, generate_heuristic_faqs(document, text))
    if max_faqs:
        faqs = faqs[:max_faqs]
    logger.debug(f"Generated {len(faqs)} FAQs for {document.url}")
    return FAQResult(faqs=faqs, summary=summarize_faqs(faqs))
