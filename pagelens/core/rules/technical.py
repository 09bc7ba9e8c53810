"""
Technical Rules — Transport security and script hygiene.
"""

from __future__ import annotations

from pagelens.core.rules.common import attr, make_issue
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

MAX_EXTERNAL_SCRIPTS = 10
PASSWORD_AUTOCOMPLETE = ("current-password", "new-password")


def _meta(rule_id: str, title: str, severity: Severity, tags: list[str], priority: int = 10) -> RuleMeta:
    return RuleMeta(
        id=rule_id, title=title, category=Category.TECH, default_severity=severity, tags=tags, priority=priority
    )


TOO_MANY_SCRIPTS = _meta(
    "TECH-001", "Excessive external scripts", Severity.MEDIUM, ["performance", "scripts", "optimization"], priority=14
)
NOT_HTTPS = _meta("TECH-007", "Page not served over HTTPS", Severity.CRITICAL, ["security", "https", "ssl"])
MIXED_CONTENT = _meta("TECH-008", "Mixed content detected", Severity.HIGH, ["security", "mixed-content", "https"])
NO_CSP = _meta("TECH-009", "No Content Security Policy", Severity.LOW, ["security", "csp", "headers"])
INSECURE_FORMS = _meta("TECH-010", "Forms submitting to HTTP", Severity.CRITICAL, ["security", "forms", "https"])
PASSWORD_AUTOFILL = _meta(
    "TECH-011", "Password inputs lacking proper autocomplete", Severity.LOW, ["security", "forms", "autocomplete"]
)
NO_SRI = _meta("TECH-012", "External scripts without integrity checks", Severity.MEDIUM, ["security", "sri", "scripts"])


def _external_scripts(context: RuleContext) -> list[str]:
    sources = [attr(s, "src") for s in context.soup.find_all("script", src=True)]
    return [src for src in sources if src.startswith(("http", "//"))]


def check_external_scripts(context: RuleContext) -> Issue | None:
    count = len(_external_scripts(context))
    if count <= MAX_EXTERNAL_SCRIPTS:
        return None
    return make_issue(
        TOO_MANY_SCRIPTS,
        context,
        description=(
            f"Found {count} external script files. Too many external resources slow down page "
            "loading and may impact AI crawler efficiency."
        ),
        remediation="Bundle and minify scripts, lazy load non-critical scripts, and reduce third-party dependencies.",
        impact=15,
        evidence=[f"External scripts: {count}"],
    )


def check_https(context: RuleContext) -> Issue | None:
    if context.url.startswith("https://"):
        return None
    return make_issue(
        NOT_HTTPS,
        context,
        description=(
            "The page is served over HTTP instead of HTTPS. Many AI crawlers prefer or require HTTPS."
        ),
        remediation="Serve the page over HTTPS with a valid TLS certificate.",
        impact=35,
        evidence=["Protocol: HTTP"],
    )


def check_mixed_content(context: RuleContext) -> Issue | None:
    if not context.url.startswith("https://"):
        return None
    count = len(
        context.soup.select('script[src^="http:"], link[href^="http:"], img[src^="http:"], iframe[src^="http:"]')
    )
    if count == 0:
        return None
    return make_issue(
        MIXED_CONTENT,
        context,
        description=(
            f"HTTPS page loading {count} HTTP resource(s). Mixed content is blocked by browsers "
            "and raises security concerns."
        ),
        remediation="Update all resource URLs to use HTTPS or protocol-relative URLs (//).",
        impact=25,
        evidence=[f"HTTP resources on HTTPS page: {count}"],
    )


def check_csp(context: RuleContext) -> Issue | None:
    if context.response is not None and context.response.header("content-security-policy"):
        return None
    for meta in context.soup.find_all("meta"):
        if attr(meta, "http-equiv").lower() == "content-security-policy":
            return None
    return make_issue(
        NO_CSP,
        context,
        description=(
            "No Content Security Policy detected. CSP helps prevent XSS attacks and signals security awareness."
        ),
        remediation="Implement a Content-Security-Policy header or meta tag.",
        impact=10,
        evidence=["No CSP header or meta tag"],
        confidence=0.6,
    )


def check_insecure_forms(context: RuleContext) -> Issue | None:
    count = sum(1 for form in context.soup.find_all("form") if attr(form, "action").startswith("http://"))
    if count == 0:
        return None
    return make_issue(
        INSECURE_FORMS,
        context,
        description=(
            f"Found {count} form(s) submitting to HTTP URLs. This exposes user data and signals "
            "poor security practices."
        ),
        remediation="Update form actions to use HTTPS URLs to protect user data in transit.",
        impact=30,
        evidence=[f"Insecure forms: {count}"],
        selector='form[action^="http:"]',
    )


def check_password_autocomplete(context: RuleContext) -> Issue | None:
    count = sum(
        1
        for field in context.soup.find_all("input", attrs={"type": "password"})
        if attr(field, "autocomplete") not in PASSWORD_AUTOCOMPLETE
    )
    if count == 0:
        return None
    return make_issue(
        PASSWORD_AUTOFILL,
        context,
        description=(
            f"Found {count} password input(s) without proper autocomplete attributes. "
            "This affects password manager integration."
        ),
        remediation='Add autocomplete="current-password" or autocomplete="new-password" to password inputs.',
        impact=5,
        evidence=[f"Password inputs without autocomplete: {count}"],
        selector='input[type="password"]',
    )


def check_script_integrity(context: RuleContext) -> Issue | None:
    count = sum(
        1
        for script in context.soup.find_all("script", src=True)
        if attr(script, "src").startswith("http") and not script.has_attr("integrity")
    )
    if count == 0:
        return None
    return make_issue(
        NO_SRI,
        context,
        description=(
            f"Found {count} external script(s) without Subresource Integrity (SRI) checks. This poses security risks."
        ),
        remediation="Add integrity and crossorigin attributes to external script tags.",
        impact=15,
        evidence=[f"Scripts without SRI: {count}"],
        confidence=0.9,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(TOO_MANY_SCRIPTS, check_external_scripts)
    registry.register(NOT_HTTPS, check_https)
    registry.register(MIXED_CONTENT, check_mixed_content)
    registry.register(NO_CSP, check_csp)
    registry.register(INSECURE_FORMS, check_insecure_forms)
    registry.register(PASSWORD_AUTOFILL, check_password_autocomplete)
    registry.register(NO_SRI, check_script_integrity)
