"""
Tests for the Content Chunker — strategies, fallback labels, text reconstruction, quality.
"""

from pagelens.core.chunker import analyze_chunk_quality, calculate_noise_ratio, chunk_content
from pagelens.core.document import element_text
from pagelens.models.chunk_models import ChunkQuality, ContentChunk


def _reconstructed(result):
    return " ".join(chunk.text for chunk in result.chunks)


def test_no_headings_uses_paragraph_chunking(make_document, bare_html):
    document = make_document(bare_html)
    result = chunk_content(document)
    assert result.strategy == "paragraph-based"
    assert len(result.chunks) == 1
    assert result.total_tokens == 34


def test_chunks_reconstruct_container_text(make_document, bare_html, article_html):
    for html in (bare_html, article_html):
        document = make_document(html)
        result = chunk_content(document, max_tokens=10)
        assert _reconstructed(result) == element_text(document.main_container())


def test_paragraph_budget_splits_chunks(make_document, bare_html):
    result = chunk_content(make_document(bare_html), max_tokens=15)
    assert [c.start_selector for c in result.chunks] == [
        "p:nth-of-type(1)",
        "p:nth-of-type(2)",
        "p:nth-of-type(3)",
    ]
    assert [c.id for c in result.chunks] == ["chunk-1", "chunk-2", "chunk-3"]
    assert result.stats.total_chunks == 3
    assert result.stats.max_chunk_size == 12
    assert result.stats.min_chunk_size == 10


def test_headings_use_heading_chunking(make_document, article_html):
    result = chunk_content(make_document(article_html))
    assert result.strategy == "heading-based"
    first = result.chunks[0]
    assert first.heading == "CloudMaster Pro"
    assert first.heading_level == 1


def test_sibling_headings_open_new_chunks(make_document):
    html = """<html><body><article>
      <h2 id="intro">Intro</h2><p>Alpha beta gamma.</p>
      <h3>Detail</h3><p>Delta epsilon.</p>
      <h2>Second</h2><p>Zeta eta theta.</p>
    </article></body></html>"""
    result = chunk_content(make_document(html))
    assert [c.heading for c in result.chunks] == ["Intro", "Second"]
    assert result.chunks[0].start_selector == "#intro"
    assert result.chunks[0].end_selector == result.chunks[1].start_selector
    assert "Delta epsilon." in result.chunks[0].text


def test_forced_paragraph_strategy_ignores_headings(make_document, article_html):
    result = chunk_content(make_document(article_html), strategy="paragraph-based")
    assert result.strategy == "paragraph-based"
    assert all(chunk.heading is None for chunk in result.chunks)


def test_forced_heading_strategy_falls_back(make_document, bare_html):
    result = chunk_content(make_document(bare_html), strategy="heading-based")
    assert result.strategy == "paragraph-based (fallback)"
    assert result.chunks


def test_structure_flags(make_document):
    html = "<html><body><main><h1>T</h1><ul><li>one</li></ul><pre><code>x = 1</code></pre></main></body></html>"
    chunk = chunk_content(make_document(html)).chunks[0]
    assert chunk.has_lists
    assert chunk.has_code
    assert not chunk.has_tables


def test_noise_ratio():
    assert calculate_noise_ratio("") == 1.0
    assert calculate_noise_ratio("abcdef") == 0.0
    assert calculate_noise_ratio("ab", script_style_chars=10) == 1.0


def test_chunk_quality_tiers():
    good = ContentChunk(id="c1", text="x", start_selector="h2", heading="Setup", token_count=200, noise_ratio=0.1)
    assert analyze_chunk_quality(good).quality == ChunkQuality.EXCELLENT

    weak = ContentChunk(id="c2", text="x", start_selector="body", token_count=20, noise_ratio=0.1)
    report = analyze_chunk_quality(weak)
    assert report.quality == ChunkQuality.FAIR
    assert "Chunk lacks a clear heading" in report.issues
