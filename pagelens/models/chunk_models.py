"""
Chunking Data Models — Labeled content slices and chunk quality.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ChunkQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ChunkStats(BaseModel):
    total_chunks: int = 0
    avg_chunk_size: int = Field(default=0, description="Mean token estimate, rounded")
    max_chunk_size: int = 0
    min_chunk_size: int = 0


class ContentChunk(BaseModel):
    """A contiguous, labeled slice of the main content."""

    id: str
    text: str
    start_selector: str
    end_selector: str | None = None
    heading: str | None = None
    heading_level: int | None = Field(default=None, ge=1, le=6)
    token_count: int = Field(default=0, ge=0)
    word_count: int = Field(default=0, ge=0)
    char_count: int = Field(default=0, ge=0)
    noise_ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    has_code: bool = False
    has_lists: bool = False
    has_tables: bool = False


class ChunkingResult(BaseModel):
    chunks: list[ContentChunk] = Field(default_factory=list)
    total_tokens: int = 0
    strategy: str = Field(
        ..., description="'heading-based', 'paragraph-based' or 'paragraph-based (fallback)'"
    )
    stats: ChunkStats = Field(default_factory=ChunkStats)


class ChunkQualityReport(BaseModel):
    quality: ChunkQuality
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
