"""
Rule Engine — Registry of independent page checks plus a failure-isolating executor.

Rules are plain functions ``fn(context) -> Issue | list[Issue] | None``.
Registration happens once at process start; duplicate ids are a startup error.
No rule failure can abort a scan.
"""

from __future__ import annotations

import logging
import time
from functools import lru_cache

from pagelens.models.issue_models import Category, Issue, IssueLocation, Severity
from pagelens.models.rule_models import (
    RegisteredRule,
    RuleContext,
    RuleFailure,
    RuleFn,
    RuleMeta,
    RuleResult,
)

logger = logging.getLogger("pagelens.rules")


class RuleRegistry:
    """Ordered map of rule id -> (meta, fn)."""

    def __init__(self) -> None:
        self._rules: dict[str, RegisteredRule] = {}

    def register(self, meta: RuleMeta, fn: RuleFn) -> None:
        if meta.id in self._rules:
            raise ValueError(f"Duplicate rule id: {meta.id}")
        self._rules[meta.id] = RegisteredRule(meta=meta, fn=fn)

    def rule(self, meta: RuleMeta):
        """Decorator form of :meth:`register`."""

        def decorator(fn: RuleFn) -> RuleFn:
            self.register(meta, fn)
            return fn

        return decorator

    def get(self, rule_id: str) -> RegisteredRule:
        if rule_id not in self._rules:
            raise ValueError(f"Unknown rule: {rule_id}")
        return self._rules[rule_id]

    def ordered(self) -> list[RegisteredRule]:
        """Higher priority first; ties keep registration order (sort is stable)."""
        return sorted(self._rules.values(), key=lambda r: -r.meta.priority)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)


@lru_cache
def build_default_registry() -> RuleRegistry:
    """The built-in rule catalog, assembled once per process."""
    from pagelens.core.rules import (
        accessibility,
        chunking,
        content,
        crawl,
        headings,
        images,
        knowledge_graph,
        meta_tags,
        technical,
    )

    registry = RuleRegistry()
    for module in (
        headings, meta_tags, crawl, knowledge_graph, accessibility, content, technical, images, chunking
    ):
        module.register(registry)
    return registry


def rule_failure_issue(meta: RuleMeta, url: str, exc: Exception) -> Issue:
    """Low-severity diagnostic recorded in place of a rule that raised."""
    return Issue(
        id="MISC-ERR",
        title=f"Rule {meta.id} failed to run",
        severity=Severity.LOW,
        category=Category.MISC,
        description=f"{type(exc).__name__}: {exc}",
        remediation="Report this rule error to maintainers.",
        impact_score=1,
        location=IssueLocation(url=url),
        evidence=[f"rule:{meta.id}"],
        tags=["rule-error"],
        confidence=0.0,
    )


class RuleEngine:
    """
    Runs every enabled rule against one shared, read-only context.

    Rules run sequentially in priority order. A raising rule yields a MISC-ERR
    diagnostic and a RuleFailure record; the remaining rules still run.
    """

    def __init__(self, registry: RuleRegistry | None = None) -> None:
        self.registry = registry if registry is not None else build_default_registry()

    def run(self, context: RuleContext) -> RuleResult:
        start = time.monotonic()
        issues: list[Issue] = []
        executed: list[str] = []
        skipped: list[str] = []
        failures: list[RuleFailure] = []

        for rule in self.registry.ordered():
            meta = rule.meta
            if not context.options.category_enabled(meta.category):
                skipped.append(meta.id)
                continue
            executed.append(meta.id)
            try:
                output = rule.fn(context)
            except Exception as e:
                logger.warning(f"Rule {meta.id} failed: {type(e).__name__}: {e}")
                failures.append(RuleFailure(rule_id=meta.id, error_type=type(e).__name__, message=str(e)))
                issues.append(rule_failure_issue(meta, context.url, e))
                continue
            if output is None:
                continue
            if isinstance(output, Issue):
                issues.append(output)
            else:
                issues.extend(output)

        elapsed = (time.monotonic() - start) * 1000
        logger.debug(f"Ran {len(executed)} rules ({len(skipped)} skipped) in {elapsed:.1f}ms")
        return RuleResult(
            issues=issues,
            rules_executed=executed,
            rules_skipped=skipped,
            failures=failures,
            scan_duration_ms=round(elapsed, 2),
        )

    def run_single_rule(self, rule_id: str, context: RuleContext) -> list[Issue]:
        """Run one rule without isolation; used for debugging rule bodies."""
        output = self.registry.get(rule_id).fn(context)
        if output is None:
            return []
        return [output] if isinstance(output, Issue) else list(output)
