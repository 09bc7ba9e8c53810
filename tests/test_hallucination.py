"""
Tests for Hallucination Detection — local contradictions, claim check, report, issue conversion.
"""

import asyncio
import json

from pagelens.enrichment.hallucination import (
    TextBlock,
    build_recommendations,
    claim_triggers,
    detect_hallucinations,
    detect_local_contradictions,
    normalize_date,
    normalize_number,
    parse_claims,
    risk_score,
    triggers_to_issues,
)
from pagelens.llm.errors import ProviderError, RateLimitError
from pagelens.models.hallucination_models import TriggerType
from pagelens.models.issue_models import Category, Severity

from conftest import CLAIMS


def _claims(*statuses):
    return json.dumps({
        "claims": [
            {
                "statement": f"Acme Robotics claim number {i}",
                "category": "number",
                "confidence": 0.8,
                "sourceContext": "about page",
                "status": status,
                "knowledge": f"model knowledge {i}",
            }
            for i, status in enumerate(statuses)
        ]
    })


def test_founding_year_contradiction(make_document, contradiction_html):
    triggers = detect_local_contradictions(make_document(contradiction_html))
    dates = [t for t in triggers if '"2010" vs "2015"' in t.description]
    assert len(dates) == 1
    trigger = dates[0]
    assert trigger.type == TriggerType.CONTRADICTION
    assert trigger.severity == Severity.HIGH
    assert trigger.description.startswith("Conflicting dates found")
    assert "founded in 2010" in trigger.evidence[0]
    assert "founded in 2015" in trigger.evidence[1]
    assert trigger.evidence[0].startswith("Block 1 (p:nth-of-type(1))")
    assert trigger.confidence >= 0.6


def test_consistent_page_has_no_local_triggers(make_document):
    html = """<html><body>
      <p>Acme Robotics was founded in 2010 by engineers.</p>
      <p>Since it was founded in 2010, Acme has grown steadily.</p>
    </body></html>"""
    assert detect_local_contradictions(make_document(html)) == []


def test_unrelated_blocks_are_not_compared(make_document):
    html = """<html><body>
      <p>Our office moved downtown during 2012 summer.</p>
      <p>Quarterly newsletter archive begins 2019 onwards.</p>
    </body></html>"""
    assert detect_local_contradictions(make_document(html)) == []


def test_normalizers():
    assert normalize_date("March 3, 2015") == "2015"
    assert normalize_date("2010") == "2010"
    assert normalize_number("$1,200") == "1200"
    assert normalize_number("16 GB") == "16"
    assert normalize_number("95%") == "95"


def test_no_provider_still_reports(make_document, contradiction_html):
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html)))
    assert report.fact_check_summary.total_facts == 0
    assert report.verifications == []
    assert report.model_checked is False
    assert report.model_error is None
    assert report.triggers
    assert all(t.type == TriggerType.CONTRADICTION for t in report.triggers)
    assert report.hallucination_risk_score == 10 * len(report.triggers)


def test_model_claim_check(make_document, contradiction_html, make_gateway):
    gateway = make_gateway({CLAIMS: _claims("verified", "unverified", "unverified", "contradicts")})
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html), gateway))

    summary = report.fact_check_summary
    assert summary.total_facts == 4
    assert summary.verified_facts == 1
    assert summary.unverified_facts == 2
    assert summary.contradictions == 1
    assert report.model_checked is True

    types = [t.type for t in report.triggers]
    assert TriggerType.MISSING_FACT in types
    local = [t for t in report.triggers if t.severity == Severity.HIGH]
    assert report.hallucination_risk_score == min(100, 2 * 7 + 25 + 10 * len(local))


def test_claim_check_failure_keeps_local_path(make_document, contradiction_html, make_gateway):
    gateway = make_gateway({CLAIMS: ProviderError("boom", provider="fake")})
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html), gateway))
    assert report.model_error == "boom"
    assert report.model_rate_limited is False
    assert report.model_checked is False
    assert report.triggers


def test_claim_check_rate_limit_flagged(make_document, contradiction_html, make_gateway):
    gateway = make_gateway({CLAIMS: RateLimitError("429 too many requests", status_code=429)})
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html), gateway))
    assert report.model_rate_limited is True


def test_parse_claims_locates_evidence():
    blocks = [TextBlock("Acme Robotics shipped 5000 robots last year.", "p:nth-of-type(1)")]
    data = {"claims": [
        {"statement": "Acme Robotics shipped 5000 robots", "status": "contradicts", "knowledge": "Closer to 500"},
        {"statement": "", "status": "verified"},
        "not a claim",
    ]}
    verifications = parse_claims(data, blocks)
    assert len(verifications) == 1
    verification = verifications[0]
    assert verification.evidence.selector == "p:nth-of-type(1)"
    assert verification.contradictions[0].conflicting_statement == "Closer to 500"
    assert verification.verified is False


def test_parse_claims_rejects_garbage():
    assert parse_claims("nonsense", []) == []
    assert parse_claims({"claims": "nope"}, []) == []


def test_wrongly_typed_claim_fields_keep_local_results(make_document, contradiction_html, make_gateway):
    answer = json.dumps({"claims": [
        {"statement": "Acme was founded in 2010", "status": "unverified", "sourceContext": {"section": "about"}},
        {"statement": {"text": "nested"}, "status": "verified"},
        {"statement": "Acme ships robots", "status": "contradicts", "knowledge": ["a", "b"]},
    ]})
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html), make_gateway({CLAIMS: answer})))

    assert report.model_checked is True
    assert report.model_error is None
    assert report.fact_check_summary.total_facts == 2
    assert report.verifications[0].fact.source_context is None
    contradiction = report.verifications[1].contradictions[0]
    assert contradiction.conflicting_statement == "Model knowledge conflicts with this claim"
    assert any(t.type == TriggerType.CONTRADICTION and t.severity == Severity.HIGH for t in report.triggers)


def test_scalar_claim_fields_coerced_to_text():
    verifications = parse_claims({"claims": [{"statement": 2010, "sourceContext": 42, "knowledge": True}]}, [])
    fact = verifications[0].fact
    assert fact.statement == "2010"
    assert fact.source_context == "42"
    assert verifications[0].evidence.knowledge is None


def test_unverified_severity_scales():
    verifications = parse_claims(json.loads(_claims(*["unverified"] * 7)), [])
    trigger = claim_triggers(verifications)[0]
    assert trigger.type == TriggerType.MISSING_FACT
    assert trigger.severity == Severity.CRITICAL

    few = claim_triggers(parse_claims(json.loads(_claims("unverified", "unverified")), []))
    assert few[0].severity == Severity.MEDIUM


def test_contradiction_evidence_carries_model_knowledge():
    trigger = claim_triggers(parse_claims(json.loads(_claims("contradicts")), []))[0]
    assert trigger.severity == Severity.CRITICAL
    assert trigger.evidence == ["Acme Robotics claim number 0 | model: model knowledge 0"]


def test_risk_score_constants():
    assert risk_score(1, 0, 0) == 7
    assert risk_score(0, 1, 0) == 25
    assert risk_score(0, 0, 1) == 10
    assert risk_score(10, 10, 10) == 100


def test_recommendations():
    assert build_recommendations(0, 0, 0, 0, 0) == [
        "No hallucination triggers detected - content appears consistent"
    ]
    recs = build_recommendations(2, 1, 1, 60, 4)
    assert recs[0].startswith("Verify 2 fact(s)")
    assert "Review 1 potential inconsistency in dates/numbers" in recs
    assert "High hallucination risk - consider restructuring content for clarity" in recs


def test_triggers_to_issues(make_document, contradiction_html):
    report = asyncio.run(detect_hallucinations(make_document(contradiction_html)))
    issues = triggers_to_issues(report)
    assert len(issues) == len(report.triggers)
    issue = issues[0]
    assert issue.id.startswith("HALL-CONTRADICTION-")
    assert issue.title == "Hallucination Trigger: contradiction"
    assert issue.category == Category.HALL
    assert issue.impact_score == round(40 * report.triggers[0].confidence)
    assert issue.tags == ["hallucination", "ai-safety", "contradiction"]
