"""
Scan Data Models — Per-scan options, provider configuration, and the scan result.

ScanOptions is an explicit, read-only record: every call site receives its own
value and nothing in the pipeline mutates it.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagelens.llm.errors import ConfigurationError
from pagelens.models.chunk_models import ChunkingResult
from pagelens.models.enrichment_models import (
    ComprehensionResult,
    EntityExtractionResult,
    FAQResult,
    MirrorReport,
)
from pagelens.models.extract_models import ExtractabilityReport
from pagelens.models.hallucination_models import HallucinationReport
from pagelens.models.issue_models import Category, Issue
from pagelens.models.rule_models import RuleFailure
from pagelens.models.score_models import ScoringResult

if TYPE_CHECKING:
    from pagelens.config import Settings


class ProviderKind(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    LOCAL = "local"
    BEDROCK = "bedrock"


HOSTED_KINDS = {
    ProviderKind.OPENAI,
    ProviderKind.ANTHROPIC,
    ProviderKind.GROQ,
    ProviderKind.OPENROUTER,
}

RECOMMENDED_MODELS: dict[ProviderKind, str] = {
    ProviderKind.OPENAI: "gpt-4o-mini",
    ProviderKind.ANTHROPIC: "claude-3-5-haiku-20241022",
    ProviderKind.GROQ: "llama-3.3-70b-versatile",
    ProviderKind.OPENROUTER: "meta-llama/llama-3.3-70b-instruct:free",
    ProviderKind.OLLAMA: "llama3.2",
    ProviderKind.LOCAL: "local-model",
    ProviderKind.BEDROCK: "us.amazon.nova-lite-v1:0",
}

PROVIDER_DISPLAY_NAMES: dict[ProviderKind, str] = {
    ProviderKind.OPENAI: "OpenAI",
    ProviderKind.ANTHROPIC: "Anthropic",
    ProviderKind.GROQ: "Groq",
    ProviderKind.OPENROUTER: "OpenRouter",
    ProviderKind.OLLAMA: "Ollama (Local)",
    ProviderKind.LOCAL: "Local LLM",
    ProviderKind.BEDROCK: "AWS Bedrock",
}

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class ProviderConfig(BaseModel):
    """Language-model backend selection for one scan."""

    model_config = ConfigDict(frozen=True)

    kind: ProviderKind
    model: str | None = None
    api_key: str | None = Field(default=None, repr=False)
    base_url: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    timeout: float | None = Field(default=None, gt=0, description="Seconds")

    @property
    def resolved_model(self) -> str:
        return self.model or RECOMMENDED_MODELS[self.kind]

    @property
    def display_name(self) -> str:
        return PROVIDER_DISPLAY_NAMES[self.kind]

    def validate_credentials(self) -> None:
        """Raise ConfigurationError when the selected backend cannot be called."""
        if self.kind in HOSTED_KINDS and not self.api_key:
            raise ConfigurationError(f"API key is required for {self.display_name}")
        if self.kind == ProviderKind.LOCAL and not self.base_url:
            raise ConfigurationError("Base URL is required for the local provider")

    def with_env_defaults(self, settings: Settings) -> ProviderConfig:
        """Fill missing credentials / URLs from process settings."""
        updates: dict[str, Any] = {}
        if not self.api_key:
            key = settings.api_key_for(self.kind.value)
            if key:
                updates["api_key"] = key
        if not self.base_url:
            if self.kind == ProviderKind.OLLAMA:
                updates["base_url"] = settings.ollama_base_url or DEFAULT_OLLAMA_URL
            elif self.kind == ProviderKind.LOCAL and settings.local_llm_url:
                updates["base_url"] = settings.local_llm_url
        return self.model_copy(update=updates) if updates else self

    @classmethod
    def from_env(cls, settings: Settings) -> ProviderConfig | None:
        """Pick the first backend that has credentials configured."""
        if settings.openai_api_key:
            return cls(kind=ProviderKind.OPENAI, api_key=settings.openai_api_key)
        if settings.anthropic_api_key:
            return cls(kind=ProviderKind.ANTHROPIC, api_key=settings.anthropic_api_key)
        if settings.groq_api_key:
            return cls(kind=ProviderKind.GROQ, api_key=settings.groq_api_key)
        if settings.openrouter_api_key:
            return cls(kind=ProviderKind.OPENROUTER, api_key=settings.openrouter_api_key)
        if settings.ollama_base_url:
            return cls(kind=ProviderKind.OLLAMA, base_url=settings.ollama_base_url)
        if settings.local_llm_url:
            return cls(kind=ProviderKind.LOCAL, base_url=settings.local_llm_url)
        return None


def available_providers(settings: Settings) -> list[ProviderKind]:
    """Backends with credentials present in the environment."""
    found: list[ProviderKind] = []
    for kind in (ProviderKind.OPENAI, ProviderKind.ANTHROPIC, ProviderKind.GROQ, ProviderKind.OPENROUTER):
        if settings.api_key_for(kind.value):
            found.append(kind)
    if settings.ollama_base_url:
        found.append(ProviderKind.OLLAMA)
    if settings.local_llm_url:
        found.append(ProviderKind.LOCAL)
    return found


ChunkStrategy = Literal["auto", "heading-based", "paragraph-based"]


class ScanOptions(BaseModel):
    """Read-only configuration for one scan."""

    model_config = ConfigDict(frozen=True)

    # ── Fetch ──
    timeout_seconds: float = Field(default=15.0, gt=0)
    user_agent: str | None = None

    # ── Chunking ──
    max_chunk_tokens: int = Field(default=1200, gt=0)
    chunk_strategy: ChunkStrategy = "auto"

    # ── Feature flags ──
    enable_chunking: bool = True
    enable_extractability: bool = True
    enable_model_analysis: bool = False
    enable_hallucination_detection: bool | None = Field(
        default=None, description="Fact verification; unset follows enable_model_analysis"
    )
    enable_comprehension: bool = True
    enable_entities: bool = True
    enable_faqs: bool = True
    enable_mirror_test: bool = True

    # ── Rule categories ──
    disabled_categories: frozenset[Category] = frozenset()

    # ── Filtering ──
    min_impact_score: int = Field(default=8, ge=0, le=100)
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    max_issues: int = Field(default=15, ge=1)

    # ── Model ──
    provider: ProviderConfig | None = None

    @field_validator("disabled_categories", mode="before")
    @classmethod
    def _coerce_categories(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        return value

    def category_enabled(self, category: Category) -> bool:
        return category not in self.disabled_categories

    @property
    def model_analysis_active(self) -> bool:
        return self.enable_model_analysis and self.provider is not None

    @property
    def hallucination_check_enabled(self) -> bool:
        if self.enable_hallucination_detection is None:
            return self.model_analysis_active
        return self.enable_hallucination_detection

    def validate_for_scan(self) -> None:
        """Fail fast on caller-input problems before any network activity."""
        if self.enable_model_analysis:
            if self.provider is None:
                raise ConfigurationError("Model analysis requested without a provider configuration")
            self.provider.validate_credentials()


def preset_options(name: str, **overrides: Any) -> ScanOptions:
    """Build ScanOptions from a named preset: 'default', 'strict' or 'verbose'."""
    presets: dict[str, dict[str, Any]] = {
        "default": {"min_impact_score": 8, "min_confidence": 0.7, "max_issues": 15},
        "strict": {
            "min_impact_score": 15,
            "min_confidence": 0.8,
            "max_issues": 10,
            "disabled_categories": frozenset({Category.CRAWL, Category.TECH, Category.A11Y}),
            "enable_faqs": False,
        },
        "verbose": {"min_impact_score": 0, "min_confidence": 0.0, "max_issues": 100},
    }
    if name not in presets:
        raise ConfigurationError(f"Unknown preset: {name}")
    return ScanOptions(**{**presets[name], **overrides})


class ScanResult(BaseModel):
    """Everything one scan produced."""

    url: str
    scan_id: str
    timestamp: str
    status_code: int | None = None
    issues: list[Issue] = Field(default_factory=list, description="Filtered, sorted, capped")
    total_issues_found: int = Field(default=0, description="Issue count before filtering")
    scores: dict[str, int] = Field(default_factory=dict, description="Legacy per-category scores")
    scoring: ScoringResult
    grade: str
    chunking: ChunkingResult | None = None
    extractability: ExtractabilityReport | None = None
    hallucination_report: HallucinationReport | None = None
    comprehension: ComprehensionResult | None = None
    entities: EntityExtractionResult | None = None
    faqs: FAQResult | None = None
    mirror_report: MirrorReport | None = None
    model_limit_exceeded: bool = False
    rule_failures: list[RuleFailure] = Field(default_factory=list)
    duration_ms: float = 0.0


class ScanRequest(BaseModel):
    """Request body for POST /scan."""

    url: str = Field(..., min_length=1)
    preset: Literal["default", "strict", "verbose"] = "default"
    enable_model_analysis: bool = False
    enable_hallucination_detection: bool | None = None
    max_chunk_tokens: int | None = Field(default=None, gt=0)
    min_impact_score: int | None = Field(default=None, ge=0, le=100)
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    max_issues: int | None = Field(default=None, ge=1)
    provider: ProviderConfig | None = None
