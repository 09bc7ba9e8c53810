"""
LLM Gateway — Wraps the selected provider with retry, backoff, and token tracking.

The provider is chosen once per scan. Rate-limit failures are never retried:
they propagate immediately so the enrichment layer can flag them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pagelens.config import Settings, get_settings
from pagelens.llm.errors import ProviderError, is_rate_limit_error
from pagelens.llm.providers import LLMProvider, create_provider
from pagelens.llm.response_parser import parse_json_response
from pagelens.models.llm_models import CallOverrides, LLMMessage, LLMResponse
from pagelens.models.scan_models import ProviderConfig

logger = logging.getLogger("pagelens.llm")


class LLMGateway:
    """
    Provider wrapper with:
    - Caller-side retry with exponential backoff (non-rate-limit errors only)
    - Token usage tracking
    - JSON helpers for structured prompts
    """

    def __init__(
        self,
        provider: LLMProvider,
        max_retries: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.provider = provider
        self.max_retries = max(1, max_retries if max_retries is not None else settings.llm_max_retries)
        self.total_tokens_used = 0
        self.calls_made = 0

    @classmethod
    def from_config(cls, config: ProviderConfig, settings: Settings | None = None) -> LLMGateway:
        settings = settings or get_settings()
        return cls(create_provider(config, settings), settings=settings)

    @property
    def provider_name(self) -> str:
        return self.provider.name

    async def complete(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        """Call the provider, retrying transient failures up to ``max_retries`` attempts."""
        last_error: ProviderError | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self.provider.call(messages, overrides)
            except ProviderError as e:
                if is_rate_limit_error(e):
                    logger.warning(f"{self.provider.name} rate limited: {e}")
                    raise
                last_error = e
                logger.warning(
                    f"LLM attempt {attempt + 1}/{self.max_retries} failed: {e}"
                )
                if attempt < self.max_retries - 1:
                    # Exponential backoff: 1s, 2s, 4s
                    await asyncio.sleep(2**attempt)
                continue

            self.calls_made += 1
            if response.usage:
                self.total_tokens_used += response.usage.total_tokens
            return response

        logger.error(f"LLM gateway exhausted retries. Last error: {last_error}")
        raise last_error or ProviderError("No attempt was made", provider=self.provider.name)

    async def complete_with_system(
        self, system: str, user: str, overrides: CallOverrides | None = None
    ) -> LLMResponse:
        return await self.complete(
            [LLMMessage(role="system", content=system), LLMMessage(role="user", content=user)],
            overrides,
        )

    async def complete_json(
        self,
        system: str,
        user: str,
        overrides: CallOverrides | None = None,
        context: str = "model response",
    ) -> Any:
        """System + user call whose answer must contain JSON. Raises ProviderResponseError otherwise."""
        response = await self.complete_with_system(system, user, overrides)
        return parse_json_response(response.content, context)

    def get_tokens_used(self) -> int:
        return self.total_tokens_used

    def reset_token_counter(self) -> None:
        self.total_tokens_used = 0
