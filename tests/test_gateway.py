"""
Tests for the LLM Gateway — retry policy, rate-limit passthrough, token accounting.
"""

import asyncio

import pytest

from pagelens.config import Settings
from pagelens.llm.errors import ProviderError, ProviderResponseError, RateLimitError
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.providers import LLMProvider
from pagelens.models.llm_models import LLMMessage, LLMResponse, LLMUsage
from pagelens.models.scan_models import ProviderConfig, ProviderKind

MESSAGES = [LLMMessage(role="user", content="hello")]


class ScriptedProvider(LLMProvider):
    """Plays back a list of answers / errors, one per call."""

    name = "scripted"

    def __init__(self, script):
        super().__init__(ProviderConfig(kind=ProviderKind.OLLAMA), Settings())
        self.script = list(script)
        self.calls = 0

    async def call(self, messages, overrides=None):
        self.calls += 1
        answer = self.script.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return LLMResponse(content=answer, usage=LLMUsage(total_tokens=12), model="scripted")


def test_success_counts_tokens():
    provider = ScriptedProvider(["a", "b"])
    gateway = LLMGateway(provider, max_retries=1, settings=Settings())
    asyncio.run(gateway.complete(MESSAGES))
    asyncio.run(gateway.complete(MESSAGES))
    assert gateway.get_tokens_used() == 24
    assert gateway.calls_made == 2
    gateway.reset_token_counter()
    assert gateway.get_tokens_used() == 0


def test_transient_failure_is_retried():
    provider = ScriptedProvider([ProviderError("502 bad gateway"), "recovered"])
    gateway = LLMGateway(provider, max_retries=2, settings=Settings())
    response = asyncio.run(gateway.complete(MESSAGES))
    assert response.content == "recovered"
    assert provider.calls == 2


def test_single_attempt_raises_last_error():
    provider = ScriptedProvider([ProviderError("boom")])
    gateway = LLMGateway(provider, max_retries=1, settings=Settings())
    with pytest.raises(ProviderError, match="boom"):
        asyncio.run(gateway.complete(MESSAGES))
    assert provider.calls == 1


def test_rate_limit_is_not_retried():
    provider = ScriptedProvider([RateLimitError("429", status_code=429), "never"])
    gateway = LLMGateway(provider, max_retries=3, settings=Settings())
    with pytest.raises(RateLimitError):
        asyncio.run(gateway.complete(MESSAGES))
    assert provider.calls == 1


def test_max_retries_floor():
    gateway = LLMGateway(ScriptedProvider([]), max_retries=0, settings=Settings())
    assert gateway.max_retries == 1


def test_no_attempt_raises_provider_error():
    provider = ScriptedProvider([])
    gateway = LLMGateway(provider, settings=Settings())
    gateway.max_retries = 0
    with pytest.raises(ProviderError, match="No attempt"):
        asyncio.run(gateway.complete(MESSAGES))
    assert provider.calls == 0


def test_complete_json_parses_fenced_answer():
    provider = ScriptedProvider(['```json\n{"ok": true}\n```'])
    gateway = LLMGateway(provider, max_retries=1, settings=Settings())
    assert asyncio.run(gateway.complete_json("sys", "user")) == {"ok": True}


def test_complete_json_unparseable():
    provider = ScriptedProvider(["plain prose"])
    gateway = LLMGateway(provider, max_retries=1, settings=Settings())
    with pytest.raises(ProviderResponseError, match="entity extraction"):
        asyncio.run(gateway.complete_json("sys", "user", context="entity extraction"))


def test_provider_name():
    assert LLMGateway(ScriptedProvider([]), settings=Settings()).provider_name == "scripted"
