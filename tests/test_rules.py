"""
Tests for the built-in rule catalog — each family fires on the markup it targets.
"""

from pagelens.core.rule_engine import RuleEngine
from pagelens.models.rule_models import ResponseMeta, RuleContext
from pagelens.models.scan_models import ScanOptions


def _run(make_document, html, url="https://example.com/product", options=None, response=None):
    document = make_document(html, url=url, response=response)
    context = RuleContext(url=url, document=document, options=options or ScanOptions(), response=response)
    result = RuleEngine().run(context)
    return {issue.id: issue for issue in result.issues}


def test_page_without_headings_or_json_ld(make_document, bare_html):
    issues = _run(make_document, bare_html)
    assert "KG-001" in issues
    assert "CRAWL-003" in issues
    assert "AIREAD-001" in issues
    assert any(issue_id.startswith("CRAWL-") for issue_id in issues)


def test_structured_page_passes_structure_checks(make_document, article_html):
    issues = _run(make_document, article_html)
    assert "KG-001" not in issues
    assert "CRAWL-003" not in issues
    assert "AIREAD-001" not in issues
    assert "A11Y-001" not in issues


def test_missing_h1_is_critical(make_document, bare_html):
    issue = _run(make_document, bare_html)["AIREAD-001"]
    assert issue.severity.value == "critical"
    assert issue.impact_score == 40
    assert issue.location.url == "https://example.com/product"


def test_skipped_heading_level(make_document):
    html = "<html><body><h1>Title</h1><h3>Deep</h3><p>text</p></body></html>"
    issue = _run(make_document, html)["AIREAD-015"]
    assert issue.evidence == ["Heading levels found: 1, 3"]


def test_oversized_main_content(make_document):
    words = " ".join(f"word{i}" for i in range(60))
    html = f"<html><body><main><h1>Long</h1><p>{words}</p></main></body></html>"
    issues = _run(make_document, html, options=ScanOptions(max_chunk_tokens=20))
    issue = issues["CHUNK-001"]
    assert issue.severity.value == "critical"
    assert issue.impact_score == 40
    assert issue.evidence == ["tokens:61"]
    assert issue.confidence == 0.9


def test_content_within_budget_has_no_chunk_issue(make_document, article_html):
    assert "CHUNK-001" not in _run(make_document, article_html)


def test_plain_http_page(make_document, article_html):
    issues = _run(make_document, article_html, url="http://example.com/product")
    assert "TECH-007" in issues


def test_http_error_status(make_document, article_html):
    response = ResponseMeta(status_code=503, headers={})
    issues = _run(make_document, article_html, response=response)
    assert issues["CRAWL-001"].impact_score == 50


def test_noindex_from_header(make_document, article_html):
    response = ResponseMeta(status_code=200, headers={"X-Robots-Tag": "noindex"})
    issues = _run(make_document, article_html, response=response)
    assert "CRAWL-008" in issues
    assert "CRAWL-006" in issues


def test_images_without_alt(make_document):
    html = '<html><body><h1>Gallery</h1><img src="/a.png"><img src="/b.png" alt="A chart of sales"></body></html>'
    issue = _run(make_document, html)["AIREAD-037"]
    assert issue.evidence[0] == "Images without alt: 1"


def test_invalid_json_ld(make_document):
    html = '<html><head><script type="application/ld+json">{not json</script></head><body><h1>x</h1></body></html>'
    issues = _run(make_document, html)
    assert "KG-002" in issues
    assert "KG-001" not in issues
