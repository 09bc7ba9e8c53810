"""
Tests for the HTTP host — /health and /scan over FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from pagelens.api.dependencies import get_scan_worker
from pagelens.api.routes.scan import build_options
from pagelens.config import Settings
from pagelens.main import app
from pagelens.models.scan_models import ScanRequest
from pagelens.workers.scan_worker import ScanWorker


@pytest.fixture
def client(make_fetcher, article_html):
    worker = ScanWorker(fetcher=make_fetcher(article_html), settings=Settings(local_llm_url=None))
    app.dependency_overrides[get_scan_worker] = lambda: worker
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "1.0.0"
    assert isinstance(body["providers"], list)


def test_scan_default_preset(client):
    response = client.post("/scan", json={"url": "https://example.com/product"})
    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "https://example.com/product"
    assert body["status_code"] == 200
    assert body["grade"]
    assert 0 <= body["scoring"]["overall_score"] <= 100
    assert len(body["issues"]) <= 15
    assert body["chunking"]["stats"]["total_chunks"] >= 1


def test_scan_verbose_preset_reports_more(client):
    default = client.post("/scan", json={"url": "https://example.com/product"}).json()
    verbose = client.post("/scan", json={"url": "https://example.com/product", "preset": "verbose"}).json()
    assert len(verbose["issues"]) >= len(default["issues"])
    assert verbose["total_issues_found"] == default["total_issues_found"]


def test_scan_strict_preset_skips_categories(client):
    body = client.post("/scan", json={"url": "https://example.com/product", "preset": "strict"}).json()
    assert not {i["category"] for i in body["issues"]} & {"CRAWL", "TECH", "A11Y"}
    assert len(body["issues"]) <= 10


def test_scan_threshold_overrides(client):
    body = client.post(
        "/scan", json={"url": "https://example.com/product", "preset": "verbose", "max_issues": 2}
    ).json()
    assert len(body["issues"]) <= 2


def test_missing_url_rejected(client):
    response = client.post("/scan", json={})
    assert response.status_code == 422


@pytest.mark.parametrize(
    "field, value",
    [("min_confidence", 2), ("min_impact_score", -1), ("max_issues", 0), ("max_chunk_tokens", 0), ("preset", "loose")],
)
def test_out_of_range_options_rejected(client, field, value):
    response = client.post("/scan", json={"url": "https://example.com/product", field: value})
    assert response.status_code == 422


def test_incomplete_provider_rejected(client):
    response = client.post(
        "/scan",
        json={"url": "https://example.com/product", "enable_model_analysis": True, "provider": {"kind": "local"}},
    )
    assert response.status_code == 422
    assert "Base URL" in response.json()["detail"]


def test_options_default_to_settings():
    settings = Settings(fetch_timeout=7.5, max_chunk_tokens=800)

    options = build_options(ScanRequest(url="https://example.com"), settings)
    assert options.timeout_seconds == 7.5
    assert options.max_chunk_tokens == 800
    assert options.enable_hallucination_detection is None

    options = build_options(ScanRequest(url="https://example.com", max_chunk_tokens=300, preset="strict"), settings)
    assert options.max_chunk_tokens == 300
    assert options.max_issues == 10
