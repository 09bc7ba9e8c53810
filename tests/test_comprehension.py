"""
Tests for Comprehension — summary call followed by the reader-questions call.
"""

import asyncio
import json

import pytest

from pagelens.enrichment.comprehension import generate_comprehension
from pagelens.llm.errors import ProviderResponseError

from conftest import QUESTIONS, SUMMARY

SUMMARY_ANSWER = {
    "summary": "CloudMaster Pro is a cloud monitoring product for engineering teams.",
    "pageType": "Product Page",
    "pageTypeInsights": ["Add a comparison table"],
    "keyTopics": ["monitoring", "alerting"],
    "topEntities": [
        {"name": "CloudMaster Pro", "type": "Product", "relevance": 0.95},
        {"type": "Concept"},
    ],
    "readingLevel": {"grade": "9", "description": "High school level"},
    "technicalDepth": "intermediate",
    "sentiment": "positive",
    "structureQuality": "good",
}

QUESTIONS_ANSWER = {
    "questions": [
        {"question": "What does CloudMaster Pro monitor?", "category": "what", "difficulty": "basic"},
        {"category": "how"},
    ],
    "suggestedFAQ": [
        {"question": "How much is it?", "suggestedAnswer": "$49 per month", "importance": "critical"},
    ],
}


def test_two_call_comprehension(make_document, article_html, make_gateway):
    gateway = make_gateway({
        SUMMARY: "```json\n" + json.dumps(SUMMARY_ANSWER) + "\n```",
        QUESTIONS: json.dumps(QUESTIONS_ANSWER),
    })
    result = asyncio.run(generate_comprehension(make_document(article_html), gateway))

    assert result.summary.startswith("CloudMaster Pro is a cloud monitoring product")
    assert result.page_type == "Product Page"
    assert result.key_topics == ["monitoring", "alerting"]
    assert [e.name for e in result.top_entities] == ["CloudMaster Pro"]
    assert result.reading_level.grade == 9.0
    assert [q.question for q in result.questions] == ["What does CloudMaster Pro monitor?"]
    assert result.suggested_faq[0].importance == "medium"
    assert gateway.get_tokens_used() == 20

    prompts = [prompt for prompt, _ in gateway.provider.calls]
    assert "CloudMaster Pro is a cloud monitoring product" in prompts[1]


def test_missing_summary_raises(make_document, article_html, make_gateway):
    gateway = make_gateway({SUMMARY: "I could not read the page."})
    with pytest.raises(ProviderResponseError, match="summary"):
        asyncio.run(generate_comprehension(make_document(article_html), gateway))


def test_malformed_questions_leave_lists_empty(make_document, article_html, make_gateway):
    gateway = make_gateway({SUMMARY: json.dumps(SUMMARY_ANSWER), QUESTIONS: "no idea"})
    result = asyncio.run(generate_comprehension(make_document(article_html), gateway))
    assert result.summary
    assert result.questions == []
    assert result.suggested_faq == []


def test_summary_must_be_text(make_document, article_html, make_gateway):
    gateway = make_gateway({SUMMARY: json.dumps({"summary": {"text": "nested"}})})
    with pytest.raises(ProviderResponseError, match="summary"):
        asyncio.run(generate_comprehension(make_document(article_html), gateway))


def test_wrongly_typed_summary_fields_are_dropped(make_document, article_html, make_gateway):
    answer = {
        **SUMMARY_ANSWER,
        "pageType": {"kind": "Product Page"},
        "sentiment": ["positive"],
        "topEntities": [{"name": ["CloudMaster"], "type": "Product"}, {"name": "TechCorp", "relevance": "high"}],
    }
    gateway = make_gateway({SUMMARY: json.dumps(answer), QUESTIONS: json.dumps(QUESTIONS_ANSWER)})
    result = asyncio.run(generate_comprehension(make_document(article_html), gateway))

    assert result.page_type is None
    assert result.sentiment is None
    assert [(e.name, e.relevance) for e in result.top_entities] == [("TechCorp", 0.5)]
