"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from pagelens.config import Settings, get_settings
from pagelens.core.document import Fetcher, fetch_page
from pagelens.workers.scan_worker import ScanWorker


def get_app_settings() -> Settings:
    return get_settings()


@lru_cache
def get_fetcher() -> Fetcher:
    """Page fetcher shared by every scan."""
    return fetch_page


@lru_cache
def get_scan_worker() -> ScanWorker:
    """Shared scan worker singleton."""
    return ScanWorker(fetcher=get_fetcher(), settings=get_settings())
