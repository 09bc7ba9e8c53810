"""
Chunking Rules — Main content too long for a single model context window.
"""

from __future__ import annotations

from pagelens.core.rules.common import make_issue
from pagelens.core.rule_engine import RuleRegistry
from pagelens.core.text import estimate_token_count
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

OVERSIZED_CONTENT = RuleMeta(
    id="CHUNK-001",
    title="Chunk exceeds recommended token/window size",
    category=Category.CHUNK,
    default_severity=Severity.CRITICAL,
    tags=["chunking", "embeddings"],
    priority=5,
)


def check_oversized_content(context: RuleContext) -> Issue | None:
    tokens = estimate_token_count(context.document.main_text())
    if tokens <= context.options.max_chunk_tokens:
        return None
    return make_issue(
        OVERSIZED_CONTENT,
        context,
        description=(
            f"Main content appears to be long ({tokens} tokens) and may exceed model context windows. "
            "Consider splitting into smaller sections or paginating content."
        ),
        remediation=(
            "Break content into smaller semantic sections using headings or create separate pages "
            "for distinct topics."
        ),
        impact=40,
        evidence=[f"tokens:{tokens}"],
        confidence=0.9,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(OVERSIZED_CONTENT, check_oversized_content)
