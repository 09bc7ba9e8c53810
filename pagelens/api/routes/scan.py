"""
Scan Route — POST /scan

Converts the request body into ScanOptions, runs the audit pipeline and
returns the ScanResult as-is.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from pagelens.api.dependencies import get_app_settings, get_scan_worker
from pagelens.config import Settings
from pagelens.models.scan_models import ProviderConfig, ScanOptions, ScanRequest, ScanResult, preset_options
from pagelens.workers.scan_worker import ScanWorker

logger = logging.getLogger("pagelens.api.scan")

router = APIRouter()


def build_options(request: ScanRequest, settings: Settings) -> ScanOptions:
    """
    Preset values first, then every field the caller set explicitly.

    Fetch timeout and chunk size default to the process settings. Model
    analysis without a provider picks the first configured backend; the
    worker fills any credentials a given provider leaves out.
    """
    provider = request.provider
    if provider is None and request.enable_model_analysis:
        provider = ProviderConfig.from_env(settings)

    overrides: dict[str, Any] = {
        "timeout_seconds": settings.fetch_timeout,
        "max_chunk_tokens": request.max_chunk_tokens or settings.max_chunk_tokens,
        "enable_model_analysis": request.enable_model_analysis,
        "provider": provider,
    }
    if request.enable_hallucination_detection is not None:
        overrides["enable_hallucination_detection"] = request.enable_hallucination_detection
    for field in ("min_impact_score", "min_confidence", "max_issues"):
        value = getattr(request, field)
        if value is not None:
            overrides[field] = value
    return preset_options(request.preset, **overrides)


@router.post("/scan", response_model=ScanResult)
async def scan(
    request: ScanRequest,
    worker: ScanWorker = Depends(get_scan_worker),
    settings: Settings = Depends(get_app_settings),
):
    """
    Audit one URL.

    Request body:
        - url: page to fetch and audit
        - preset: "default", "strict" or "verbose" filter bundle
        - enable_model_analysis / provider: optional model enrichment
        - threshold overrides: min_impact_score, min_confidence, max_issues

    Response:
        - the full ScanResult (issues, scoring, grade, chunking, extractability, enrichment)
    """
    options = build_options(request, settings)
    logger.info(f"Scan requested for {request.url} (preset={request.preset})")
    return await worker.scan(request.url, options)
