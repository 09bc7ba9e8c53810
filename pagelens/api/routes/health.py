"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pagelens.api.dependencies import get_app_settings
from pagelens.config import Settings
from pagelens.models.scan_models import available_providers

router = APIRouter()


@router.get("/health")
async def health(settings: Settings = Depends(get_app_settings)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "providers": [kind.value for kind in available_providers(settings)],
    }
