"""
Tests for FAQ Generation — schema, heading and page-structure heuristics merged with model FAQs.
"""

import asyncio
import json

from pagelens.enrichment.faq import generate_faqs, merge_faqs, parse_model_faqs
from pagelens.models.enrichment_models import FAQEntry

from conftest import FAQS


def test_heuristic_faqs_from_page_structure(make_document, article_html):
    result = asyncio.run(generate_faqs(make_document(article_html)))
    questions = [f.question for f in result.faqs]

    assert questions == [
        "What is CloudMaster Pro?",
        "How much does it cost?",
        "What does CloudMaster Pro do?",
        "How can I get in touch?",
        "What are the key features?",
    ]
    contact = result.faqs[3]
    assert contact.suggested_answer == "You can contact us at sales@techcorp.example"
    heading = result.faqs[2]
    assert heading.suggested_answer.startswith("It collects metrics")
    assert all(f.source == "heuristic" for f in result.faqs)

    assert result.summary.total_faqs == 5
    assert result.summary.by_importance == {"high": 2, "medium": 3, "low": 0}


def test_schema_faqs_come_first(make_document):
    schema = {
        "@context": "https://schema.org",
        "@type": "FAQPage",
        "mainEntity": [
            {"@type": "Question", "name": "Is there a free trial?",
             "acceptedAnswer": {"@type": "Answer", "text": "Yes, 14 days."}},
            {"@type": "Question", "name": "Unanswered question?"},
        ],
    }
    html = f"""<html><head><script type="application/ld+json">{json.dumps(schema)}</script></head>
    <body><p>Short page.</p></body></html>"""
    result = asyncio.run(generate_faqs(make_document(html)))
    assert [f.question for f in result.faqs] == ["Is there a free trial?"]
    assert result.faqs[0].source == "schema"
    assert result.faqs[0].confidence == 1.0


def test_model_faqs_merge_with_heuristics(make_document, article_html, make_gateway):
    answer = json.dumps([
        {"question": "What is CloudMaster Pro?", "suggestedAnswer": "A monitoring tool.",
         "importance": "high", "confidence": 0.9},
        {"question": "Does it support Kubernetes?", "suggestedAnswer": "Containers are covered.",
         "importance": "low", "confidence": 0.6},
    ])
    gateway = make_gateway({FAQS: answer})
    result = asyncio.run(generate_faqs(make_document(article_html), gateway))

    first = result.faqs[0]
    assert first.question == "What is CloudMaster Pro?"
    assert first.source == "llm"
    assert first.suggested_answer == "A monitoring tool."
    assert first.confidence == (0.9 + 0.6) / 2
    assert result.faqs[-1].question == "Does it support Kubernetes?"
    assert result.summary.total_faqs == 6


def test_max_faqs_cap(make_document, article_html):
    result = asyncio.run(generate_faqs(make_document(article_html), max_faqs=2))
    assert len(result.faqs) == 2
    assert result.summary.total_faqs == 2


def test_parse_model_faqs_skips_incomplete_items():
    faqs = parse_model_faqs([
        {"question": "Q1?", "suggestedAnswer": "A1", "importance": "urgent", "confidence": "high"},
        {"question": "Q2?"},
        "junk",
    ])
    assert len(faqs) == 1
    assert faqs[0].importance == "medium"
    assert faqs[0].confidence == 0.8
    assert parse_model_faqs({"faqs": []}) == []


def test_merge_sorts_by_importance_then_confidence():
    faqs = merge_faqs(
        [FAQEntry(question="Low?", suggested_answer="x", importance="low", confidence=0.99)],
        [
            FAQEntry(question="Mid?", suggested_answer="x", importance="medium", confidence=0.5),
            FAQEntry(question="High weak?", suggested_answer="x", importance="high", confidence=0.4),
            FAQEntry(question="High strong?", suggested_answer="x", importance="high", confidence=0.9),
        ],
    )
    assert [f.question for f in faqs] == ["High strong?", "High weak?", "Mid?", "Low?"]


def test_parse_model_faqs_with_wrong_field_types():
    faqs = parse_model_faqs([
        {"question": "Is there a trial?", "suggestedAnswer": "Yes, 14 days.", "importance": ["high"]},
        {"question": {"text": "nested"}, "suggestedAnswer": "ignored"},
        {"question": "How many seats?", "suggestedAnswer": 25, "confidence": [0.9]},
    ])
    assert [f.question for f in faqs] == ["Is there a trial?", "How many seats?"]
    assert faqs[0].importance == "medium"
    assert faqs[1].suggested_answer == "25"
    assert faqs[1].confidence == 0.8
