"""
Tests for the Enrichment Orchestrator — concurrent tasks, per-task failure handling, fold-back.
"""

import asyncio
import json

from pagelens.enrichment.orchestrator import EnrichmentOrchestrator
from pagelens.llm.errors import ProviderError, RateLimitError
from pagelens.models.issue_models import Category
from pagelens.models.scan_models import ScanOptions

from conftest import CLAIMS, ENTITIES, FAQS, MIRROR, QUESTIONS, SUMMARY

ALIGNED_MIRROR = {
    "productName": "CloudMaster Pro",
    "purpose": "Monitors cloud infrastructure and alerts engineering teams about outages",
    "keyFeatures": ["Anomaly detection", "Dashboards", "On-call routing"],
    "targetAudience": "Engineering teams",
    "pricing": "$49 per month",
    "confidence": 0.9,
}


def _routes(overrides=None):
    routes = {
        SUMMARY: json.dumps({"summary": "A cloud monitoring product page.", "pageType": "Product Page"}),
        QUESTIONS: json.dumps({"questions": [{"question": "What is monitored?"}]}),
        ENTITIES: json.dumps([{"name": "TechCorp Inc", "type": "organization", "confidence": 0.9}]),
        FAQS: json.dumps([{"question": "Is there a trial?", "suggestedAnswer": "Yes.", "importance": "low"}]),
        CLAIMS: json.dumps({"claims": [{"statement": "Plans start at $49 per month", "status": "verified"}]}),
        MIRROR: json.dumps(ALIGNED_MIRROR),
    }
    routes.update(overrides or {})
    return routes


def _run(gateway, document, options=None):
    return asyncio.run(EnrichmentOrchestrator(gateway).run(document, options or ScanOptions(), "test"))


def test_all_tasks_succeed(make_document, article_html, make_gateway):
    gateway = make_gateway(_routes())
    result = _run(gateway, make_document(article_html))

    assert result.failed_tasks == []
    assert result.model_limit_exceeded is False
    assert result.comprehension.summary == "A cloud monitoring product page."
    assert any(e.source == "schema" for e in result.entities.entities)
    assert result.faqs.summary.total_faqs > 0
    assert result.hallucination_report.model_checked is True
    assert result.hallucination_report.fact_check_summary.verified_facts == 1
    assert result.mirror_report.summary.alignment_score == 100
    assert not [i for i in result.issues if i.category == Category.LLMAPI]
    # comprehension makes two calls, every other task one
    assert result.tokens_used == 60


def test_provider_error_becomes_low_issue(make_document, article_html, make_gateway):
    gateway = make_gateway(_routes({ENTITIES: ProviderError("entity backend down", provider="fake")}))
    result = _run(gateway, make_document(article_html))

    assert result.entities is None
    assert result.failed_tasks == ["entities"]
    issue = next(i for i in result.issues if i.id == "LLMAPI-ERR-entities")
    assert issue.category == Category.LLMAPI
    assert issue.impact_score == 2
    assert "entity backend down" in issue.description
    # siblings still completed
    assert result.comprehension is not None
    assert result.faqs is not None
    assert result.mirror_report is not None


def test_rate_limit_sets_flag_without_issue(make_document, article_html, make_gateway):
    gateway = make_gateway(_routes({FAQS: RateLimitError("429 Too Many Requests", status_code=429)}))
    result = _run(gateway, make_document(article_html))

    assert result.model_limit_exceeded is True
    assert result.faqs is None
    assert "faqs" in result.failed_tasks
    assert not [i for i in result.issues if i.category == Category.LLMAPI]
    assert result.entities is not None


def test_claim_check_rate_limit(make_document, contradiction_html, make_gateway):
    gateway = make_gateway(_routes({CLAIMS: RateLimitError("quota exhausted")}))
    result = _run(gateway, make_document(contradiction_html))

    assert result.model_limit_exceeded is True
    report = result.hallucination_report
    assert report.model_rate_limited is True
    # local contradictions still folded back
    assert any(i.id.startswith("HALL-CONTRADICTION-") for i in result.issues)


def test_claim_check_failure_reported(make_document, article_html, make_gateway):
    gateway = make_gateway(_routes({CLAIMS: ProviderError("claims backend down")}))
    result = _run(gateway, make_document(article_html))

    assert result.model_limit_exceeded is False
    assert any(i.id == "LLMAPI-ERR-hallucination" for i in result.issues)
    assert result.hallucination_report.model_checked is False


def test_mirror_without_messaging_is_left_empty(make_document, make_gateway):
    html = "<html><body><p>Nothing declared here, only plain prose about nothing.</p></body></html>"
    gateway = make_gateway(_routes())
    result = _run(gateway, make_document(html))

    assert result.mirror_report is None
    assert result.failed_tasks == ["mirror"]
    assert not [i for i in result.issues if i.id.startswith("LLMAPI-ERR")]


def test_mirror_drift_folded_back(make_document, article_html, make_gateway):
    confused = json.dumps({"productName": "Widget Hub", "purpose": "A recipe sharing community"})
    gateway = make_gateway(_routes({MIRROR: confused}))
    result = _run(gateway, make_document(article_html))

    drift = [i.id for i in result.issues if i.category == Category.DRIFT]
    assert drift == ["DRIFT-PRODUCTNAME", "DRIFT-PURPOSE"]


def test_disabled_tasks_do_not_run(make_document, article_html, make_gateway):
    gateway = make_gateway(_routes())
    options = ScanOptions(
        enable_comprehension=False, enable_entities=False, enable_faqs=False, enable_mirror_test=False
    )
    result = _run(gateway, make_document(article_html), options)

    assert result.comprehension is None
    assert result.entities is None
    assert result.faqs is None
    assert result.mirror_report is None
    assert result.hallucination_report is not None
    assert len(gateway.provider.calls) == 1


def test_broken_claim_check_falls_back_to_local_report(make_document, contradiction_html, make_gateway, monkeypatch):
    async def broken(document, gateway):
        raise KeyError("claims")

    monkeypatch.setattr("pagelens.enrichment.hallucination.check_claims", broken)
    result = _run(make_gateway(_routes()), make_document(contradiction_html))

    report = result.hallucination_report
    assert report is not None
    assert report.model_checked is False
    assert "claims" in report.model_error
    assert result.failed_tasks == ["hallucination"]
    assert [i.id for i in result.issues if i.id == "LLMAPI-ERR-hallucination"] == ["LLMAPI-ERR-hallucination"]
    assert any(i.id.startswith("HALL-CONTRADICTION-") for i in result.issues)


def test_wrongly_typed_entity_context_is_dropped(make_document, article_html, make_gateway):
    answer = json.dumps([{"name": "Acme", "type": "organization", "confidence": 0.9, "context": ["about page"]}])
    result = _run(make_gateway(_routes({ENTITIES: answer})), make_document(article_html))

    acme = next(e for e in result.entities.entities if e.name == "Acme")
    assert acme.context is None
    assert acme.locator.text_snippet == "Found by model analysis"
    assert "entities" not in result.failed_tasks


def test_hallucination_check_can_be_switched_off(make_document, contradiction_html, make_gateway):
    gateway = make_gateway(_routes())
    options = ScanOptions(
        enable_comprehension=False,
        enable_entities=False,
        enable_faqs=False,
        enable_mirror_test=False,
        enable_hallucination_detection=False,
    )
    result = _run(gateway, make_document(contradiction_html), options)

    assert result.hallucination_report is None
    assert gateway.provider.calls == []
    assert not [i for i in result.issues if i.category == Category.HALL]
