"""
Enrichment Orchestrator — Runs the model-backed tasks concurrently and folds results back.

Tasks: comprehension, entities, FAQs, hallucination check, mirror test. They
share one parsed document and one gateway, read-only. Each task is guarded
on its own:
    rate limit / quota     → model_limit_exceeded, no issue
    other provider error   → one low-severity LLMAPI-ERR-<task> issue
    anything else          → logged, result left empty
A broken hallucination check falls back to its local-only report.
A failing task never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from pagelens.core.document import Document
from pagelens.enrichment.comprehension import generate_comprehension
from pagelens.enrichment.entities import extract_entities
from pagelens.enrichment.faq import generate_faqs
from pagelens.enrichment.hallucination import detect_hallucinations, triggers_to_issues
from pagelens.enrichment.mirror import mismatches_to_issues, run_mirror_test
from pagelens.llm.errors import ProviderError, is_rate_limit_error
from pagelens.llm.gateway import LLMGateway
from pagelens.models.enrichment_models import EnrichmentResult
from pagelens.models.hallucination_models import HallucinationReport
from pagelens.models.issue_models import Category, Issue, IssueLocation, Severity
from pagelens.models.scan_models import ScanOptions

logger = logging.getLogger("pagelens.enrichment")

DEFAULT_MAX_FAQS = 10


def task_failure_issue(task: str, url: str, error: BaseException) -> Issue:
    return Issue(
        id=f"LLMAPI-ERR-{task}",
        title=f"Model analysis failed: {task}",
        severity=Severity.LOW,
        category=Category.LLMAPI,
        description=f"The {task} task could not complete: {error}",
        remediation="Check the provider configuration and retry the scan.",
        impact_score=2,
        location=IssueLocation(url=url),
        evidence=[f"{type(error).__name__}: {str(error)[:200]}"],
        tags=["llm", "enrichment", task],
        confidence=0.5,
    )


class EnrichmentOrchestrator:
    """Fan-out / fan-in over the enrichment tasks of one scan."""

    def __init__(self, gateway: LLMGateway, max_faqs: int | None = DEFAULT_MAX_FAQS) -> None:
        self.gateway = gateway
        self.max_faqs = max_faqs

    def _tasks(self, document: Document, options: ScanOptions) -> dict[str, Awaitable[Any]]:
        tasks: dict[str, Awaitable[Any]] = {}
        if options.enable_comprehension:
            tasks["comprehension"] = generate_comprehension(document, self.gateway)
        if options.enable_entities:
            tasks["entities"] = extract_entities(document, self.gateway)
        if options.enable_faqs:
            tasks["faqs"] = generate_faqs(document, self.gateway, self.max_faqs)
        # unset follows model analysis, which is active here
        if options.enable_hallucination_detection is not False:
            tasks["hallucination"] = detect_hallucinations(document, self.gateway)
        if options.enable_mirror_test:
            tasks["mirror"] = run_mirror_test(document, self.gateway)
        return tasks

    @staticmethod
    async def _guard(name: str, task: Awaitable[Any]) -> tuple[str, Any, Exception | None]:
        try:
            return name, await task, None
        except Exception as e:
            return name, None, e

    @staticmethod
    async def _local_report(document: Document, error: Exception) -> HallucinationReport:
        """Local contradictions still count when the model path of the check breaks."""
        report = await detect_hallucinations(document)
        return report.model_copy(update={
            "model_error": str(error) or type(error).__name__,
            "model_rate_limited": is_rate_limit_error(error),
            "model_checked": False,
        })

    async def run(self, document: Document, options: ScanOptions, scan_id: str = "") -> EnrichmentResult:
        """
        Run every enabled task and merge the results by field.

        Args:
            document: parsed page shared by all tasks
            options: scan options selecting the tasks
            scan_id: log prefix

        Returns:
            EnrichmentResult with the folded-back issues and the rate-limit flag.
        """
        tasks = self._tasks(document, options)
        logger.info(f"[{scan_id}] Enrichment: running {', '.join(tasks)} via {self.gateway.provider_name}")

        settled = await asyncio.gather(*(self._guard(name, task) for name, task in tasks.items()))

        result = EnrichmentResult()
        results: dict[str, Any] = {}
        errors: dict[str, Exception] = {}
        for name, value, error in settled:
            if error is None:
                results[name] = value
                continue
            errors[name] = error
            result.failed_tasks.append(name)
            if name == "hallucination":
                # reported through the local fallback report below
                logger.warning(f"[{scan_id}] hallucination check broke, keeping local results", exc_info=error)
                continue
            if is_rate_limit_error(error):
                result.model_limit_exceeded = True
                logger.warning(f"[{scan_id}] {name} hit a provider rate limit: {error}")
            elif isinstance(error, ProviderError):
                result.issues.append(task_failure_issue(name, document.url, error))
                logger.warning(f"[{scan_id}] {name} failed", exc_info=error)
            else:
                logger.warning(f"[{scan_id}] {name} produced no result: {error}", exc_info=error)

        result.comprehension = results.get("comprehension")
        result.entities = results.get("entities")
        result.faqs = results.get("faqs")
        result.mirror_report = results.get("mirror")

        report = results.get("hallucination")
        if "hallucination" in errors:
            report = await self._local_report(document, errors["hallucination"])
        result.hallucination_report = report
        if report is not None:
            if report.model_rate_limited:
                result.model_limit_exceeded = True
            elif report.model_error:
                result.issues.append(
                    task_failure_issue("hallucination", document.url, ProviderError(report.model_error))
                )
            result.issues.extend(triggers_to_issues(report))

        if result.mirror_report is not None:
            result.issues.extend(mismatches_to_issues(result.mirror_report, document.url))

        result.tokens_used = self.gateway.get_tokens_used()
        logger.info(
            f"[{scan_id}] Enrichment done: {len(result.issues)} issues folded back, "
            f"failed={result.failed_tasks or 'none'}, limit_exceeded={result.model_limit_exceeded}"
        )
        return result
