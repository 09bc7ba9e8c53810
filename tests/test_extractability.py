"""
Tests for the Extractability Map — node classification, scores, issues.
"""

from pagelens.core.extractability import analyze_content_type_extractability, build_extractability_map, classify
from pagelens.models.extract_models import ContentNode, ContentSource, Extractability


def test_server_rendered_page_is_fully_extractable(make_document, bare_html):
    report = build_extractability_map(make_document(bare_html))
    assert report.summary.total_nodes == 3
    assert report.scores.extractability_score == 100
    assert report.scores.server_rendered_percent == 100
    assert report.issues == []
    assert all(node.extractability == Extractability.EASY for node in report.nodes)


def test_client_rendered_and_hidden_content(make_document):
    html = """<html><body>
      <div id="root" data-reactroot><p>Loading the dashboard</p></div>
      <p style="display:none">Secret pricing details</p>
    </body></html>"""
    report = build_extractability_map(make_document(html))
    types = {issue.type for issue in report.issues}
    assert "client-rendered" in types
    assert "hidden-content" in types
    assert report.summary.client_rendered_nodes == 2
    assert report.recommendations


def test_interactive_content_is_difficult(make_document):
    html = '<html><body><div role="button">Open menu</div><p>Plain text here</p></body></html>'
    report = build_extractability_map(make_document(html))
    by_tag = {node.tag: node for node in report.nodes}
    assert by_tag["div"].extractability == Extractability.DIFFICULT
    assert by_tag["p"].extractability == Extractability.EASY


def test_max_nodes_caps_inspection(make_document):
    html = "<html><body>" + "".join(f"<p>Paragraph {i}</p>" for i in range(20)) + "</body></html>"
    report = build_extractability_map(make_document(html), max_nodes=5)
    assert report.summary.total_nodes == 5


def test_short_nodes_skipped_when_hidden_excluded(make_document):
    html = "<html><body><p>ok</p><p>long enough text</p></body></html>"
    report = build_extractability_map(make_document(html), include_hidden=False, min_text_length=5)
    assert report.summary.total_nodes == 1


def test_classify():
    node = ContentNode(selector="x-widget", tag="x-widget", source=ContentSource.SHADOW_DOM, extractability=Extractability.EASY)
    assert classify(node) == Extractability.IMPOSSIBLE
    hidden_empty = node.model_copy(update={"source": ContentSource.HIDDEN, "is_hidden": True, "text_length": 0})
    assert classify(hidden_empty) == Extractability.IMPOSSIBLE
    hidden_text = hidden_empty.model_copy(update={"text_length": 12})
    assert classify(hidden_text) == Extractability.MODERATE


def test_content_type_extractability(make_document):
    html = '<html><body><img src="a.png" alt="Chart"><img src="b.png"><a href="/x">x</a></body></html>'
    types = analyze_content_type_extractability(make_document(html))
    assert types["images"].extractable == 1
    assert types["images"].total == 2
    assert types["images"].percentage == 50
    assert types["links"].percentage == 100
    assert types["structured"].total == 0
