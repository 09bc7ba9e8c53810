"""
Accessibility Rules — Landmarks, labels and ARIA hygiene.

What helps assistive technology find its way around a page helps AI agents
in the same way: named regions, labelled controls, explicit table headers.
"""

from __future__ import annotations

from pagelens.core.document import HEADING_TAGS
from pagelens.core.rules.common import attr, make_issue, text_of
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

ARIA_RATIO_LIMIT = 0.3
LABELLED_INPUTS = (
    'input[type="text"], input[type="email"], input[type="password"], '
    'input[type="search"], textarea, select'
)


def _meta(rule_id: str, title: str, severity: Severity, tags: list[str]) -> RuleMeta:
    return RuleMeta(
        id=rule_id, title=title, category=Category.A11Y, default_severity=severity, tags=tags, priority=12
    )


NO_LANDMARKS = _meta("A11Y-001", "No ARIA landmarks or semantic elements", Severity.HIGH, ["accessibility", "aria", "landmarks"])
UNLABELLED_INPUTS = _meta("A11Y-002", "Form inputs without labels", Severity.MEDIUM, ["forms", "labels", "accessibility"])
SILENT_BUTTONS = _meta("A11Y-003", "Buttons without accessible text", Severity.MEDIUM, ["buttons", "accessibility", "labels"])
NO_SKIP_LINK = _meta("A11Y-004", "Missing skip navigation link", Severity.LOW, ["navigation", "accessibility", "skip-links"])
UNLABELLED_NAV = _meta("A11Y-005", "Navigation without labels", Severity.LOW, ["navigation", "labels", "accessibility"])
TABLE_SCOPE = _meta("A11Y-006", "Table headers missing scope attributes", Severity.LOW, ["tables", "scope", "accessibility"])
EXCESSIVE_ARIA = _meta("A11Y-007", "Excessive ARIA usage", Severity.LOW, ["aria", "semantic", "best-practices"])


def _has_aria_name(tag) -> bool:
    return bool(attr(tag, "aria-label").strip() or attr(tag, "aria-labelledby").strip())


def check_landmarks(context: RuleContext) -> Issue | None:
    soup = context.soup
    aria = soup.select(
        '[role="main"], [role="navigation"], [role="banner"], [role="contentinfo"], [role="complementary"]'
    )
    semantic = soup.find_all(["main", "nav", "header", "footer", "aside"])
    if aria or semantic:
        return None
    return make_issue(
        NO_LANDMARKS,
        context,
        description=(
            "The page lacks ARIA landmark roles and semantic HTML5 elements. "
            "These help AI agents identify and navigate content sections."
        ),
        remediation=(
            'Add ARIA landmark roles (role="main", role="navigation", etc.) or use semantic '
            "HTML5 elements (<main>, <nav>, <header>, <footer>)."
        ),
        impact=25,
        evidence=["No landmarks found"],
    )


def check_input_labels(context: RuleContext) -> Issue | None:
    soup = context.soup
    labelled_ids = {attr(label, "for") for label in soup.find_all("label") if attr(label, "for")}
    unlabelled = 0
    for field in soup.select(LABELLED_INPUTS):
        field_id = attr(field, "id")
        if field_id and field_id in labelled_ids:
            continue
        if field.find_parent("label") is not None or _has_aria_name(field):
            continue
        unlabelled += 1
    if unlabelled == 0:
        return None
    return make_issue(
        UNLABELLED_INPUTS,
        context,
        description=(
            f"Found {unlabelled} form input(s) without associated labels or ARIA labels. "
            "Labels help AI agents understand form purpose and context."
        ),
        remediation=(
            "Add <label> elements associated with inputs via for/id attributes, "
            "or use aria-label/aria-labelledby."
        ),
        impact=15,
        evidence=[f"Unlabeled inputs: {unlabelled}"],
        selector="input, textarea, select",
    )


def check_button_text(context: RuleContext) -> Issue | None:
    silent = 0
    for button in context.soup.select('button, [role="button"]'):
        if text_of(button) or _has_aria_name(button) or attr(button, "title").strip():
            continue
        silent += 1
    if silent == 0:
        return None
    return make_issue(
        SILENT_BUTTONS,
        context,
        description=(
            f"Found {silent} button(s) without text or ARIA labels. AI agents need text to understand button purpose."
        ),
        remediation="Add visible text to buttons, or use aria-label for icon-only buttons.",
        impact=15,
        evidence=[f"Buttons without text: {silent}"],
        selector="button",
    )


def check_skip_link(context: RuleContext) -> Issue | None:
    soup = context.soup
    if soup.find("nav") is None:
        return None
    for link in soup.select('a[href^="#"]'):
        text = text_of(link).lower()
        if "skip" in text and ("content" in text or "main" in text):
            return None
    return make_issue(
        NO_SKIP_LINK,
        context,
        description=(
            'The page lacks a "skip to main content" link. It also helps AI agents identify the main content.'
        ),
        remediation="Add a skip link at the beginning of the page that jumps to the main content area.",
        impact=8,
        evidence=["No skip link found"],
        confidence=0.8,
    )


def check_nav_labels(context: RuleContext) -> Issue | None:
    unlabelled = [
        nav
        for nav in context.soup.find_all("nav")
        if nav.find(HEADING_TAGS) is None and not _has_aria_name(nav)
    ]
    if not unlabelled:
        return None
    return make_issue(
        UNLABELLED_NAV,
        context,
        description=(
            f"Found {len(unlabelled)} <nav> element(s) without headings or ARIA labels. "
            "Labels help AI agents distinguish between navigation sections."
        ),
        remediation='Add aria-label to <nav> elements (e.g., aria-label="Main navigation") or include a heading.',
        impact=10,
        evidence=[f"Unlabeled navigation sections: {len(unlabelled)}"],
        confidence=0.9,
        selector="nav",
    )


def check_table_scope(context: RuleContext) -> Issue | None:
    missing = 0
    for table in context.soup.find_all("table"):
        headers = table.find_all("th")
        if headers and not any(th.has_attr("scope") for th in headers):
            missing += 1
    if missing == 0:
        return None
    return make_issue(
        TABLE_SCOPE,
        context,
        description=(
            f"Found {missing} table(s) with headers but no scope attributes. "
            "Scope helps AI agents understand header relationships."
        ),
        remediation='Add scope="col" or scope="row" to <th> elements.',
        impact=8,
        evidence=[f"Tables with scope issues: {missing}"],
        selector="table",
    )


def check_excessive_aria(context: RuleContext) -> Issue | None:
    soup = context.soup
    total = len(soup.find_all(True))
    if total == 0:
        return None
    with_aria = len(soup.select("[aria-label], [aria-labelledby], [aria-describedby], [role]"))
    ratio = with_aria / total
    if ratio <= ARIA_RATIO_LIMIT:
        return None
    return make_issue(
        EXCESSIVE_ARIA,
        context,
        description=(
            f"{ratio * 100:.1f}% of elements have ARIA attributes. Overuse of ARIA can add noise for AI parsing."
        ),
        remediation="Use semantic HTML5 elements instead of ARIA roles where possible.",
        impact=5,
        evidence=[f"Elements with ARIA: {with_aria}", f"Total elements: {total}", f"Ratio: {ratio * 100:.1f}%"],
        confidence=0.7,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(NO_LANDMARKS, check_landmarks)
    registry.register(UNLABELLED_INPUTS, check_input_labels)
    registry.register(SILENT_BUTTONS, check_button_text)
    registry.register(NO_SKIP_LINK, check_skip_link)
    registry.register(UNLABELLED_NAV, check_nav_labels)
    registry.register(TABLE_SCOPE, check_table_scope)
    registry.register(EXCESSIVE_ARIA, check_excessive_aria)
