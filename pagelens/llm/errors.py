"""
Provider Errors — Failure taxonomy for language-model calls.

Rate-limit / quota failures are kept distinguishable from every other failure
because the enrichment layer reports them as a soft warning.
"""

from __future__ import annotations

import httpx


class ConfigurationError(ValueError):
    """Caller-supplied configuration is unusable (missing credentials, bad ranges)."""


class ProviderError(Exception):
    """Any failure of a language-model backend call."""

    def __init__(self, message: str, provider: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class RateLimitError(ProviderError):
    """The backend refused the call because of a rate limit or exhausted quota."""


class ProviderTimeoutError(ProviderError):
    """The call did not complete within its time budget."""


class ProviderResponseError(ProviderError):
    """Non-2xx status or a payload that does not have the expected shape."""


_RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "ratelimit",
    "quota",
    "too many requests",
    "insufficient credits",
    "insufficient_quota",
)


def is_rate_limit_error(exc: BaseException) -> bool:
    """Classify an exception as a rate-limit / quota condition."""
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, ProviderError) and exc.status_code == 429:
        return True
    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429:
        return True
    # SDK exception types (groq.RateLimitError, botocore ThrottlingException ...)
    name = type(exc).__name__.lower()
    if "ratelimit" in name or "throttl" in name:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def raise_for_status(response: httpx.Response, provider: str) -> None:
    """Translate a non-2xx backend response into the provider error taxonomy."""
    if response.is_success:
        return
    body = response.text[:500]
    message = f"{provider} API error: {response.status_code} - {body}"
    if response.status_code == 429:
        raise RateLimitError(message, provider=provider, status_code=429)
    raise ProviderResponseError(message, provider=provider, status_code=response.status_code)
