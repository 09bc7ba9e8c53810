"""
Scan Worker — Async orchestrator running the full page audit pipeline.

Pipeline:
1. Fetch the page (transport failures become a MISC issue, never an exception)
2. Parse it into a shared, read-only Document
3. Execute the rule engine
4. Chunk the main content and map its extractability
5. Model enrichment (concurrent tasks) or the local-only hallucination check
6. Score the full issue list
7. Filter, sort and cap the issues and assemble the ScanResult
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from pagelens.config import Settings, get_settings
from pagelens.core.chunker import chunk_content
from pagelens.core.document import Document, Fetcher, FetchResult, fetch_page
from pagelens.core.extractability import build_extractability_map
from pagelens.core.issue_filter import filter_issues
from pagelens.core.rule_engine import RuleEngine
from pagelens.core.scorer import calculate_score, legacy_scores, letter_grade
from pagelens.enrichment.hallucination import detect_hallucinations, triggers_to_issues
from pagelens.enrichment.orchestrator import EnrichmentOrchestrator
from pagelens.llm.gateway import LLMGateway
from pagelens.models.issue_models import Category, Issue, IssueLocation, Severity, utc_now_iso
from pagelens.models.rule_models import RuleContext
from pagelens.models.scan_models import ProviderConfig, ScanOptions, ScanResult

logger = logging.getLogger("pagelens.worker")

GatewayFactory = Callable[[ProviderConfig], LLMGateway]


def fetch_error_issue(url: str, error: Exception) -> Issue:
    return Issue(
        id="MISC-001",
        title="Failed to fetch page",
        severity=Severity.LOW,
        category=Category.MISC,
        description=f"Failed to fetch page: {type(error).__name__}: {error}",
        remediation="Check URL and network; ensure the page is accessible.",
        impact_score=2,
        location=IssueLocation(url=url),
        evidence=[type(error).__name__],
        tags=["network"],
        confidence=0.9,
    )


def http_status_issue(url: str, status_code: int) -> Issue:
    return Issue(
        id="MISC-002",
        title="HTTP error fetching page",
        severity=Severity.LOW,
        category=Category.MISC,
        description=f"Failed to fetch page; HTTP status {status_code}",
        remediation="Check URL and network; ensure the page is accessible.",
        impact_score=2,
        location=IssueLocation(url=url),
        evidence=[str(status_code)],
        tags=["network"],
        confidence=0.9,
    )


class ScanWorker:
    """Async scan orchestrator implementing the full page audit pipeline."""

    def __init__(
        self,
        fetcher: Fetcher = fetch_page,
        rule_engine: RuleEngine | None = None,
        settings: Settings | None = None,
        gateway_factory: GatewayFactory | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.rule_engine = rule_engine or RuleEngine()
        self.settings = settings or get_settings()
        self.gateway_factory = gateway_factory or self._default_gateway

    def _default_gateway(self, config: ProviderConfig) -> LLMGateway:
        return LLMGateway.from_config(config, self.settings)

    def default_options(self) -> ScanOptions:
        return ScanOptions(
            timeout_seconds=self.settings.fetch_timeout, max_chunk_tokens=self.settings.max_chunk_tokens
        )

    def _prepare(self, options: ScanOptions | None) -> ScanOptions:
        """Fill provider credentials from settings, then fail fast on anything still missing."""
        options = options or self.default_options()
        if options.provider is not None:
            options = options.model_copy(update={"provider": options.provider.with_env_defaults(self.settings)})
        options.validate_for_scan()
        return options

    async def _fetch(self, url: str, options: ScanOptions) -> FetchResult:
        user_agent = options.user_agent or self.settings.user_agent
        try:
            return await self.fetcher(url, options.timeout_seconds, user_agent)
        except Exception as e:
            # injected fetchers may raise; the pipeline still runs on empty HTML
            logger.warning(f"Fetcher raised for {url}: {type(e).__name__}: {e}")
            return FetchResult(url=url, error=e)

    async def scan(self, url: str, options: ScanOptions | None = None) -> ScanResult:
        """
        Execute the full pipeline for one URL.

        Args:
            url: page to audit
            options: per-scan configuration; defaults apply when omitted

        Returns:
            ScanResult with filtered issues, both scoring views and any
            chunking / extractability / enrichment payloads.

        Raises:
            ConfigurationError: model analysis requested with missing or
                incomplete provider credentials (before any network activity).
        """
        options = self._prepare(options)

        scan_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        logger.info(f"[{scan_id}] Starting scan of {url}")

        issues: list[Issue] = []

        # ── Step 1: Fetch ──
        fetched = await self._fetch(url, options)
        status_code = fetched.response.status_code if fetched.response else None
        if fetched.error is not None:
            issues.append(fetch_error_issue(url, fetched.error))
        elif status_code is not None and status_code >= 400:
            issues.append(http_status_issue(url, status_code))
        logger.info(f"[{scan_id}] Fetched: status={status_code}, {len(fetched.html)} chars")

        # ── Step 2: Parse ──
        document = Document(url, fetched.html, fetched.response)

        # ── Step 3: Rule engine ──
        context = RuleContext(url=url, document=document, options=options, response=fetched.response)
        rule_result = self.rule_engine.run(context)
        issues.extend(rule_result.issues)
        logger.info(
            f"[{scan_id}] Rules: {len(rule_result.issues)} issues from {len(rule_result.rules_executed)} rules, "
            f"{len(rule_result.failures)} failures ({rule_result.scan_duration_ms:.1f}ms)"
        )

        # ── Step 4: Chunking and extractability ──
        chunking = None
        if options.enable_chunking:
            chunking = chunk_content(document, options.max_chunk_tokens, options.chunk_strategy)
            logger.info(f"[{scan_id}] Chunking: {chunking.stats.total_chunks} chunks ({chunking.strategy})")

        extractability = None
        if options.enable_extractability:
            extractability = build_extractability_map(document, max_nodes=500, include_hidden=True, min_text_length=5)
            logger.info(f"[{scan_id}] Extractability: score {extractability.scores.extractability_score}")

        # ── Step 5: Enrichment ──
        enrichment = None
        hallucination_report = None
        if options.model_analysis_active:
            gateway = self.gateway_factory(options.provider)
            enrichment = await EnrichmentOrchestrator(gateway).run(document, options, scan_id)
            hallucination_report = enrichment.hallucination_report
            issues.extend(enrichment.issues)
        elif options.hallucination_check_enabled:
            hallucination_report = await detect_hallucinations(document)
            issues.extend(triggers_to_issues(hallucination_report))
            logger.info(
                f"[{scan_id}] Local hallucination check: {len(hallucination_report.triggers)} triggers"
            )

        # ── Step 6: Scoring (always over the unfiltered list) ──
        scoring = calculate_score(issues)
        grade = letter_grade(scoring.overall_score)
        logger.info(f"[{scan_id}] Score: {scoring.overall_score}/100 ({grade})")

        # ── Step 7: Filter and assemble ──
        filtered = filter_issues(
            issues,
            min_impact_score=options.min_impact_score,
            min_confidence=options.min_confidence,
            max_issues=options.max_issues,
        )

        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        logger.info(
            f"[{scan_id}] Scan complete in {duration_ms:.0f}ms: "
            f"{len(filtered)}/{len(issues)} issues reported"
        )

        return ScanResult(
            url=url,
            scan_id=scan_id,
            timestamp=utc_now_iso(),
            status_code=status_code,
            issues=filtered,
            total_issues_found=len(issues),
            scores=legacy_scores(issues),
            scoring=scoring,
            grade=grade,
            chunking=chunking,
            extractability=extractability,
            hallucination_report=hallucination_report,
            comprehension=enrichment.comprehension if enrichment else None,
            entities=enrichment.entities if enrichment else None,
            faqs=enrichment.faqs if enrichment else None,
            mirror_report=enrichment.mirror_report if enrichment else None,
            model_limit_exceeded=enrichment.model_limit_exceeded if enrichment else False,
            rule_failures=rule_result.failures,
            duration_ms=duration_ms,
        )
