"""
LLM Providers — One ``call`` shape over every supported backend.

Each backend owns its request shaping, default model and timeout. None of them
retries: retry policy belongs to the caller (see ``LLMGateway``). Backends whose
client cannot be cancelled natively are raced against a timer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import groq
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from pagelens.config import Settings, get_settings
from pagelens.llm.bedrock import runtime_client
from pagelens.llm.errors import (
    ConfigurationError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    RateLimitError,
    raise_for_status,
)
from pagelens.models.llm_models import CallOverrides, LLMMessage, LLMResponse, LLMUsage
from pagelens.models.scan_models import DEFAULT_OLLAMA_URL, ProviderConfig, ProviderKind

logger = logging.getLogger("pagelens.llm.providers")


class LLMProvider(ABC):
    """A language-model backend behind the uniform ``call`` capability."""

    name = "provider"
    default_base_url: str | None = None

    def __init__(
        self,
        config: ProviderConfig,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or get_settings()
        self._http_client = http_client

    @abstractmethod
    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        """Send ``messages`` and return the normalized response, or raise ProviderError."""

    # ── shared parameter resolution ──

    def default_timeout(self) -> float:
        return self.settings.llm_timeout

    def _model(self, overrides: CallOverrides | None) -> str:
        return (overrides.model if overrides and overrides.model else None) or self.config.resolved_model

    def _temperature(self, overrides: CallOverrides | None) -> float:
        if overrides and overrides.temperature is not None:
            return overrides.temperature
        if self.config.temperature is not None:
            return self.config.temperature
        return self.settings.llm_temperature

    def _max_tokens(self, overrides: CallOverrides | None) -> int:
        if overrides and overrides.max_tokens is not None:
            return overrides.max_tokens
        if self.config.max_tokens is not None:
            return self.config.max_tokens
        return self.settings.llm_max_tokens

    def _timeout(self, overrides: CallOverrides | None) -> float:
        if overrides and overrides.timeout is not None:
            return overrides.timeout
        if self.config.timeout is not None:
            return self.config.timeout
        return self.default_timeout()

    def _base_url(self) -> str:
        base = self.config.base_url or self.default_base_url
        if not base:
            raise ConfigurationError(f"Base URL is required for {self.name}")
        return base.rstrip("/")

    # ── shared transport ──

    async def _post_json(
        self, url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float
    ) -> dict[str, Any]:
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.name} request timed out after {timeout}s", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} transport error: {e}", provider=self.name) from e

        raise_for_status(response, self.name)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"{self.name} returned a non-JSON body", provider=self.name,
                status_code=response.status_code,
            ) from e


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions (and any endpoint speaking the same shape)."""

    name = "openai"
    default_base_url = "https://api.openai.com/v1"

    def _headers(self) -> dict[str, str]:
        if not self.config.api_key:
            raise ConfigurationError(f"API key is required for {self.name}")
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.config.api_key}"}

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        model = self._model(overrides)
        payload = {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "temperature": self._temperature(overrides),
            "max_tokens": self._max_tokens(overrides),
        }
        data = await self._post_json(
            f"{self._base_url()}/chat/completions", payload, self._headers(), self._timeout(overrides)
        )
        return self._parse_chat_completion(data, model)

    def _parse_chat_completion(self, data: dict[str, Any], model: str) -> LLMResponse:
        try:
            choice = data["choices"][0]
            content = choice["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(f"{self.name} response missing choices", provider=self.name) from e
        usage = data.get("usage") or None
        return LLMResponse(
            content=content,
            usage=LLMUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            ) if usage else None,
            model=data.get("model") or model,
            finish_reason=choice.get("finish_reason"),
        )


class LocalProvider(OpenAIProvider):
    """A bare OpenAI-compatible endpoint (LM Studio, vLLM, llama.cpp server ...)."""

    name = "local"
    default_base_url = None

    def default_timeout(self) -> float:
        return self.settings.llm_local_timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers


class OpenRouterProvider(OpenAIProvider):
    """Model aggregator. Slower than direct APIs, so it gets a longer budget and a hard timer."""

    name = "openrouter"
    default_base_url = "https://openrouter.ai/api/v1"

    def default_timeout(self) -> float:
        return self.settings.llm_aggregator_timeout

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        timeout = self._timeout(overrides)
        try:
            return await asyncio.wait_for(super().call(messages, overrides), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"OpenRouter request timeout after {timeout}s", provider=self.name
            ) from e


class AnthropicProvider(LLMProvider):
    """Anthropic messages API. The system prompt travels outside the message list."""

    name = "anthropic"
    default_base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        if not self.config.api_key:
            raise ConfigurationError("API key is required for anthropic")
        model = self._model(overrides)
        system = next((m.content for m in messages if m.role == "system"), None)
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.model_dump() for m in messages if m.role != "system"],
            "temperature": self._temperature(overrides),
            "max_tokens": self._max_tokens(overrides),
        }
        if system:
            payload["system"] = system
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key,
            "anthropic-version": self.api_version,
        }
        data = await self._post_json(
            f"{self._base_url()}/messages", payload, headers, self._timeout(overrides)
        )
        try:
            content = "".join(
                block.get("text", "") for block in data["content"] if block.get("type", "text") == "text"
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderResponseError("anthropic response missing content", provider=self.name) from e
        usage = data.get("usage") or {}
        prompt_tokens = usage.get("input_tokens") or 0
        completion_tokens = usage.get("output_tokens") or 0
        return LLMResponse(
            content=content,
            usage=LLMUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=data.get("model") or model,
            finish_reason=data.get("stop_reason"),
        )


class OllamaProvider(LLMProvider):
    """Local Ollama daemon."""

    name = "ollama"
    default_base_url = DEFAULT_OLLAMA_URL

    def default_timeout(self) -> float:
        return self.settings.llm_local_timeout

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        model = self._model(overrides)
        payload = {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "stream": False,
            "options": {
                "temperature": self._temperature(overrides),
                "num_predict": self._max_tokens(overrides),
            },
        }
        data = await self._post_json(
            f"{self._base_url()}/api/chat",
            payload,
            {"Content-Type": "application/json"},
            self._timeout(overrides),
        )
        try:
            content = data["message"]["content"] or ""
        except (KeyError, TypeError) as e:
            raise ProviderResponseError("ollama response missing message", provider=self.name) from e
        prompt_tokens = data.get("prompt_eval_count") or 0
        completion_tokens = data.get("eval_count") or 0
        return LLMResponse(
            content=content,
            usage=LLMUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            model=data.get("model") or model,
            finish_reason="stop" if data.get("done") else "length",
        )


class GroqProvider(LLMProvider):
    """Groq via its synchronous SDK, run in a worker thread and raced against a timer."""

    name = "groq"

    def __init__(self, config: ProviderConfig, settings: Settings | None = None, client: groq.Groq | None = None) -> None:
        super().__init__(config, settings)
        if client is None:
            if not config.api_key:
                raise ConfigurationError("API key is required for groq")
            # SDK-level retries disabled; LLMGateway owns retry policy
            client = groq.Groq(api_key=config.api_key, max_retries=0)
        self.client = client

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        model = self._model(overrides)
        timeout = self._timeout(overrides)
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._sync_complete, messages, model, overrides),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(f"groq request timeout after {timeout}s", provider=self.name) from e
        except groq.RateLimitError as e:
            raise RateLimitError(f"groq rate limit: {e}", provider=self.name, status_code=429) from e
        except groq.APITimeoutError as e:
            raise ProviderTimeoutError(f"groq request timed out: {e}", provider=self.name) from e
        except groq.APIStatusError as e:
            raise ProviderResponseError(
                f"groq API error: {e.status_code} - {e}", provider=self.name, status_code=e.status_code
            ) from e
        except groq.APIError as e:
            raise ProviderError(f"groq error: {e}", provider=self.name) from e

        try:
            choice = response.choices[0]
            content = choice.message.content or ""
        except (AttributeError, IndexError) as e:
            raise ProviderResponseError("groq response missing choices", provider=self.name) from e
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=content,
            usage=LLMUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
                total_tokens=getattr(usage, "total_tokens", 0) or 0,
            ) if usage else None,
            model=getattr(response, "model", None) or model,
            finish_reason=getattr(choice, "finish_reason", None),
        )

    def _sync_complete(self, messages: list[LLMMessage], model: str, overrides: CallOverrides | None):
        """Synchronous Groq completion call."""
        return self.client.chat.completions.create(
            model=model,
            messages=[m.model_dump() for m in messages],
            temperature=self._temperature(overrides),
            max_tokens=self._max_tokens(overrides),
        )


class BedrockProvider(LLMProvider):
    """AWS Bedrock (Amazon Nova message format) through boto3 or a bearer-token client."""

    name = "bedrock"

    def __init__(self, config: ProviderConfig, settings: Settings | None = None, client: Any = None) -> None:
        super().__init__(config, settings)
        self.client = client or runtime_client(self.settings, timeout=self._timeout(None))

    async def call(
        self, messages: list[LLMMessage], overrides: CallOverrides | None = None
    ) -> LLMResponse:
        model = self._model(overrides)
        timeout = self._timeout(overrides)
        system = [{"text": m.content} for m in messages if m.role == "system"]
        body: dict[str, Any] = {
            "messages": [
                {"role": m.role, "content": [{"text": m.content}]} for m in messages if m.role != "system"
            ],
            "inferenceConfig": {
                "maxTokens": self._max_tokens(overrides),
                "temperature": self._temperature(overrides),
            },
        }
        if system:
            body["system"] = system

        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self._sync_invoke, model, json.dumps(body)), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(f"bedrock request timeout after {timeout}s", provider=self.name) from e
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("ThrottlingException", "ServiceQuotaExceededException"):
                raise RateLimitError(f"bedrock throttled: {code}", provider=self.name, status_code=429) from e
            raise ProviderResponseError(f"bedrock error: {code}", provider=self.name) from e
        except httpx.HTTPStatusError as e:
            raise_for_status(e.response, self.name)
            raise
        except (BotoCoreError, httpx.HTTPError) as e:
            raise ProviderError(f"bedrock transport error: {e}", provider=self.name) from e

        try:
            result = json.loads(raw)
            # Amazon Nova format: output.message.content[0].text
            content = result["output"]["message"]["content"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError("bedrock response missing output", provider=self.name) from e
        usage = result.get("usage") or {}
        prompt_tokens = usage.get("inputTokens") or 0
        completion_tokens = usage.get("outputTokens") or 0
        return LLMResponse(
            content=content,
            usage=LLMUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=usage.get("totalTokens") or prompt_tokens + completion_tokens,
            ),
            model=model,
            finish_reason=result.get("stopReason"),
        )

    def _sync_invoke(self, model: str, body: str) -> bytes:
        response = self.client.invoke_model(modelId=model, body=body)
        return response["body"].read()


PROVIDER_CLASSES: dict[ProviderKind, type[LLMProvider]] = {
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.ANTHROPIC: AnthropicProvider,
    ProviderKind.GROQ: GroqProvider,
    ProviderKind.OPENROUTER: OpenRouterProvider,
    ProviderKind.OLLAMA: OllamaProvider,
    ProviderKind.LOCAL: LocalProvider,
    ProviderKind.BEDROCK: BedrockProvider,
}


def create_provider(config: ProviderConfig, settings: Settings | None = None) -> LLMProvider:
    """Select the backend once, at configuration time."""
    config.validate_credentials()
    provider_cls = PROVIDER_CLASSES[config.kind]
    logger.info(
        f"Using {config.display_name} provider (model={config.resolved_model}, "
        f"key_len={len(config.api_key or '')})"
    )
    return provider_cls(config, settings)
