"""
LLM Data Models — The uniform message / response shape shared by every backend.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Normalized result of one provider call."""

    content: str = ""
    usage: LLMUsage | None = None
    model: str = ""
    finish_reason: str | None = None


class CallOverrides(BaseModel):
    """Per-call overrides of the provider configuration."""

    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    timeout: float | None = Field(default=None, gt=0, description="Seconds")
