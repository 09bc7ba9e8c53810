"""
Comprehension — High-level model summary of a page in two calls.

The first call produces the summary, page type, topics and entities; the
second turns that summary into the questions a reader would ask.
"""

from __future__ import annotations

import logging
from typing import Any

from pagelens.core.document import Document
from pagelens.enrichment.content import main_content_text
from pagelens.llm.errors import ProviderResponseError
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.response_parser import extract_json, optional_text, payload_shape
from pagelens.models.enrichment_models import (
    ComprehensionResult,
    Question,
    ReadingLevel,
    SuggestedFAQ,
    TopEntity,
)
from pagelens.models.llm_models import CallOverrides

logger = logging.getLogger("pagelens.enrichment.comprehension")

MAX_CONTENT_CHARS = 10000
QUESTION_CONTENT_CHARS = 2000

SUMMARY_SYSTEM_PROMPT = """\
You are an expert content analyzer for AI-powered search and comprehension systems.
Your task is to analyze web content and extract structured information that helps AI agents understand and index the page.
Be concise, accurate, and focus on extractable facts and key information."""

SUMMARY_USER_PROMPT = """\
Analyze the following web page content and provide a structured analysis.

URL: {url}

Content:
{content}

Provide your analysis in the following JSON format:
{{
  "summary": "A 2-3 sentence summary of the main content and purpose",
  "pageType": "One of: Homepage / Product Page / Blog Post / Documentation / Landing Page / FAQ / About Page / Contact Page / Pricing Page / Portfolio / Case Study / News Article / Tutorial / Guide / Directory / Dashboard / Forum / E-commerce / Service Page / Career Page",
  "pageTypeInsights": ["3-5 specific, actionable recommendations for this page type and content"],
  "keyTopics": ["topic1", "topic2", "topic3"],
  "topEntities": [
    {{"name": "Entity Name", "type": "Person|Organization|Product|Concept", "relevance": 0.9}}
  ],
  "readingLevel": {{"grade": 10, "description": "High school level"}},
  "technicalDepth": "beginner|intermediate|advanced|expert",
  "sentiment": "positive|neutral|negative",
  "structureQuality": "poor|fair|good|excellent"
}}

Focus on entities that are central to understanding the content. Limit to top 5-7 entities."""

QUESTIONS_SYSTEM_PROMPT = """\
You are an expert at understanding content and identifying what questions users might have.
Focus on questions that help understand the main purpose and value of the content."""

QUESTIONS_USER_PROMPT = """\
Based on this content, identify key questions users would ask:

Summary: {summary}

Content: {content}...

Provide your response in JSON format:
{{
  "questions": [
    {{"question": "What is...", "category": "what", "difficulty": "basic"}},
    {{"question": "How does...", "category": "how", "difficulty": "intermediate"}}
  ],
  "suggestedFAQ": [
    {{"question": "Common question?", "suggestedAnswer": "Brief answer", "importance": "high"}}
  ]
}}

Generate 3-5 questions and 2-3 FAQ items."""


def _dicts(value: Any) -> list[dict[str, Any]]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _strings(value: Any) -> list[str]:
    return [str(v) for v in value if v] if isinstance(value, list) else []


def _importance(value: Any) -> str:
    return value if value in ("high", "medium", "low") else "medium"


def _reading_level(value: Any) -> ReadingLevel | None:
    if not isinstance(value, dict):
        return None
    try:
        grade = float(value.get("grade", 0))
    except (TypeError, ValueError):
        grade = 0
    return ReadingLevel(grade=grade, description=str(value.get("description", "")))


def _top_entities(value: Any) -> list[TopEntity]:
    entities = []
    for item in _dicts(value):
        name = optional_text(item.get("name"))
        if not name:
            continue
        try:
            relevance = float(item.get("relevance", 0.5))
        except (TypeError, ValueError):
            relevance = 0.5
        entities.append(TopEntity(name=name, type=str(item.get("type", "Concept")), relevance=relevance))
    return entities


async def generate_comprehension(document: Document, gateway: LLMGateway) -> ComprehensionResult:
    """
    Summary, page type, topics and reader questions for ``document``.

    Raises ProviderResponseError when the summary answer has no usable JSON.
    A malformed questions answer only leaves the question lists empty.
    """
    content = main_content_text(document, MAX_CONTENT_CHARS)

    response = await gateway.complete_with_system(
        SUMMARY_SYSTEM_PROMPT,
        SUMMARY_USER_PROMPT.format(url=document.url, content=content),
        CallOverrides(temperature=0.3),
    )
    data = extract_json(response.content)
    summary = optional_text(data.get("summary")) if isinstance(data, dict) else None
    if not summary:
        raise ProviderResponseError("Failed to parse summary response from model")

    response = await gateway.complete_with_system(
        QUESTIONS_SYSTEM_PROMPT,
        QUESTIONS_USER_PROMPT.format(summary=summary, content=content[:QUESTION_CONTENT_CHARS]),
        CallOverrides(temperature=0.5),
    )
    questions_data = extract_json(response.content)
    if not isinstance(questions_data, dict):
        logger.warning(f"Questions answer for {document.url} had no JSON object")
        questions_data = {}

    with payload_shape("comprehension"):
        return _comprehension(summary, data, questions_data)


def _comprehension(summary: str, data: dict[str, Any], questions_data: dict[str, Any]) -> ComprehensionResult:
    questions = [
        Question(
            question=str(q["question"]),
            category=str(q.get("category", "what")),
            difficulty=str(q.get("difficulty", "basic")),
        )
        for q in _dicts(questions_data.get("questions"))
        if q.get("question")
    ]
    suggested = [
        SuggestedFAQ(
            question=str(f["question"]),
            suggested_answer=str(f.get("suggestedAnswer", "")),
            importance=_importance(f.get("importance")),
        )
        for f in _dicts(questions_data.get("suggestedFAQ"))
        if f.get("question")
    ]

    return ComprehensionResult(
        summary=summary,
        page_type=optional_text(data.get("pageType")),
        page_type_insights=_strings(data.get("pageTypeInsights")),
        top_entities=_top_entities(data.get("topEntities")),
        questions=questions,
        suggested_faq=suggested,
        reading_level=_reading_level(data.get("readingLevel")),
        key_topics=_strings(data.get("keyTopics")),
        sentiment=optional_text(data.get("sentiment")),
        technical_depth=optional_text(data.get("technicalDepth")),
        structure_quality=optional_text(data.get("structureQuality")),
    )
