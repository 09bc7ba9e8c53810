"""
Tests for the Rule Engine — registration, ordering, category gating, failure isolation.
"""

import pytest

from pagelens.core.rule_engine import RuleEngine, RuleRegistry, build_default_registry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta
from pagelens.models.scan_models import ScanOptions


def _meta(rule_id, category=Category.AIREAD, priority=50):
    return RuleMeta(
        id=rule_id, title=f"Rule {rule_id}", category=category, default_severity=Severity.MEDIUM, priority=priority
    )


def _finding(rule_id):
    def rule(context):
        return Issue(id=rule_id, title=rule_id, severity=Severity.MEDIUM, category=Category.AIREAD, impact_score=10)

    return rule


def _broken(context):
    raise RuntimeError("selector exploded")


@pytest.fixture
def context(make_document, bare_html):
    return RuleContext(url="https://example.com/", document=make_document(bare_html), options=ScanOptions())


def test_duplicate_rule_id_rejected():
    registry = RuleRegistry()
    registry.register(_meta("X-001"), _finding("X-001"))
    with pytest.raises(ValueError):
        registry.register(_meta("X-001"), _finding("X-001"))


def test_decorator_registration():
    registry = RuleRegistry()

    @registry.rule(_meta("X-002"))
    def check(context):
        return None

    assert "X-002" in registry
    assert registry.get("X-002").fn is check


def test_failing_rule_is_isolated(context):
    registry = RuleRegistry()
    registry.register(_meta("OK-001", priority=60), _finding("OK-001"))
    registry.register(_meta("BAD-001", priority=55), _broken)
    registry.register(_meta("OK-002", priority=50), _finding("OK-002"))

    result = RuleEngine(registry).run(context)

    ids = [i.id for i in result.issues]
    assert ids == ["OK-001", "MISC-ERR", "OK-002"]
    assert result.rules_executed == ["OK-001", "BAD-001", "OK-002"]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.rule_id == "BAD-001"
    assert failure.error_type == "RuntimeError"

    diagnostic = result.issues[1]
    assert diagnostic.severity == Severity.LOW
    assert diagnostic.evidence == ["rule:BAD-001"]


def test_higher_priority_runs_first(context):
    registry = RuleRegistry()
    registry.register(_meta("LOW", priority=1), _finding("LOW"))
    registry.register(_meta("HIGH", priority=90), _finding("HIGH"))
    registry.register(_meta("MID-A", priority=50), _finding("MID-A"))
    registry.register(_meta("MID-B", priority=50), _finding("MID-B"))

    result = RuleEngine(registry).run(context)
    assert result.rules_executed == ["HIGH", "MID-A", "MID-B", "LOW"]


def test_list_and_empty_outputs(context):
    registry = RuleRegistry()
    registry.register(_meta("NONE"), lambda ctx: None)
    registry.register(_meta("EMPTY"), lambda ctx: [])
    registry.register(_meta("MANY"), lambda ctx: [_finding("M1")(ctx), _finding("M2")(ctx)])

    result = RuleEngine(registry).run(context)
    assert [i.id for i in result.issues] == ["M1", "M2"]
    assert len(result.rules_executed) == 3


def test_disabled_category_skipped(make_document, bare_html):
    registry = RuleRegistry()
    registry.register(_meta("CRAWL-X", category=Category.CRAWL), _finding("CRAWL-X"))
    registry.register(_meta("AIREAD-X"), _finding("AIREAD-X"))
    options = ScanOptions(disabled_categories=frozenset({Category.CRAWL}))
    context = RuleContext(url="https://example.com/", document=make_document(bare_html), options=options)

    result = RuleEngine(registry).run(context)
    assert result.rules_skipped == ["CRAWL-X"]
    assert [i.id for i in result.issues] == ["AIREAD-X"]


def test_run_single_rule_propagates_errors(context):
    registry = RuleRegistry()
    registry.register(_meta("BAD-002"), _broken)
    with pytest.raises(RuntimeError):
        RuleEngine(registry).run_single_rule("BAD-002", context)


def test_default_catalog_loaded():
    registry = build_default_registry()
    for rule_id in ("AIREAD-001", "AIREAD-015", "KG-001", "CRAWL-003", "TECH-007", "A11Y-001", "CHUNK-001"):
        assert rule_id in registry
    assert len(registry) > 40


def test_default_catalog_never_raises(context):
    result = RuleEngine().run(context)
    assert result.failures == []
    assert result.scan_duration_ms >= 0
