"""
PageLens Configuration — pydantic-settings based.

Process-level defaults read from environment variables or a .env file.
Per-scan configuration travels separately as an explicit ScanOptions value.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Fetch ──
    fetch_timeout: float = Field(default=15.0, description="Page fetch timeout in seconds")
    user_agent: str = Field(
        default="PageLens/1.0 (+https://github.com/pagelens/pagelens)",
        description="User-Agent header sent with page fetches",
    )

    # ── Chunking ──
    max_chunk_tokens: int = Field(default=1200, description="Default token budget per chunk")

    # ── LLM ──
    llm_timeout: float = Field(default=30.0, description="Hosted API call timeout in seconds")
    llm_aggregator_timeout: float = Field(
        default=90.0, description="Timeout for aggregator backends (OpenRouter)"
    )
    llm_local_timeout: float = Field(
        default=60.0, description="Timeout for local daemons (Ollama, local endpoints)"
    )
    llm_max_retries: int = Field(
        default=1, description="Attempts per model call; 1 means no retry"
    )
    llm_temperature: float = Field(default=0.7, description="Default sampling temperature")
    llm_max_tokens: int = Field(default=2000, description="Default completion token cap")

    # ── Provider credentials ──
    openai_api_key: str | None = Field(default=None, repr=False)
    anthropic_api_key: str | None = Field(default=None, repr=False)
    groq_api_key: str | None = Field(default=None, repr=False)
    openrouter_api_key: str | None = Field(default=None, repr=False)
    ollama_base_url: str | None = None
    local_llm_url: str | None = None
    aws_default_region: str = Field(default="us-east-1", description="Region for AWS Bedrock")
    aws_bearer_token_bedrock: str | None = Field(default=None, repr=False)

    # ── Logging ──
    log_level: str = Field(default="INFO")

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def api_key_for(self, provider: str) -> str | None:
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "groq": self.groq_api_key,
            "openrouter": self.openrouter_api_key,
        }.get(provider)


@lru_cache
def get_settings() -> Settings:
    """Cached, read-only process settings."""
    return Settings()
