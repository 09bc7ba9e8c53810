"""
Crawlability Rules — Status codes, canonical URLs, robots directives, hreflang and crawl budget.

These checks look at what a crawler sees before it reads a single paragraph:
the transport status, the canonical and robots signals, and how much it has
to download.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

from pagelens.core.rules.common import attr, find_link, make_issue, text_of
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

MAX_RESOURCES = 100
HREFLANG_RE = re.compile(r"^[a-z]{2}(-[A-Z]{2})?$")


def _meta(rule_id: str, title: str, severity: Severity, priority: int, tags: list[str]) -> RuleMeta:
    return RuleMeta(
        id=rule_id,
        title=title,
        category=Category.CRAWL,
        default_severity=severity,
        tags=tags,
        priority=priority,
    )


HTTP_STATUS = _meta("CRAWL-001", "HTTP status not OK", Severity.CRITICAL, 50, ["http", "status", "crawl"])
SOFT_404 = _meta("CRAWL-002", "Soft 404 detected", Severity.HIGH, 30, ["http", "soft-404", "crawl"])
MISSING_CANONICAL = _meta(
    "CRAWL-003", "Missing canonical tag", Severity.HIGH, 25, ["canonical", "duplicate-content", "seo"]
)
CANONICAL_ELSEWHERE = _meta(
    "CRAWL-004", "Canonical points to different URL", Severity.MEDIUM, 20, ["canonical", "seo"]
)
INVALID_CANONICAL = _meta(
    "CRAWL-005", "Invalid canonical URL format", Severity.HIGH, 22, ["canonical", "validation"]
)
CANONICAL_NOINDEX = _meta(
    "CRAWL-006", "Canonical and noindex conflict", Severity.HIGH, 25, ["canonical", "robots", "conflict"]
)
NO_SITEMAP = _meta("CRAWL-007", "No sitemap reference in page", Severity.MEDIUM, 15, ["sitemap", "discovery"])
NOINDEX = _meta("CRAWL-008", "Page has noindex directive", Severity.CRITICAL, 40, ["robots", "noindex"])
NOFOLLOW = _meta("CRAWL-009", "Page has nofollow directive", Severity.HIGH, 30, ["robots", "nofollow"])
HREFLANG_SELF = _meta(
    "CRAWL-010", "Missing hreflang self-reference", Severity.LOW, 10, ["hreflang", "i18n", "validation"]
)
HREFLANG_SYNTAX = _meta("CRAWL-011", "Invalid hreflang syntax", Severity.MEDIUM, 15, ["hreflang", "validation", "i18n"])
META_REFRESH = _meta("CRAWL-012", "Meta refresh redirect detected", Severity.MEDIUM, 18, ["redirect", "meta-refresh"])
HOMEPAGE_H1 = _meta("CRAWL-013", "Homepage missing H1", Severity.LOW, 12, ["homepage", "h1", "structure"])
EXCESSIVE_RESOURCES = _meta(
    "CRAWL-014", "Excessive external resources", Severity.LOW, 10, ["crawl-budget", "performance"]
)
PAGINATION = _meta("CRAWL-015", "Pagination without rel prev/next", Severity.LOW, 8, ["pagination", "crawl"])


def _robots_directives(context: RuleContext) -> str:
    """Meta robots content plus any X-Robots-Tag header, lowercased."""
    parts = []
    meta = context.document.meta_content(name="robots")
    if meta:
        parts.append(meta)
    if context.response is not None:
        header = context.response.header("x-robots-tag")
        if header:
            parts.append(header)
    return ", ".join(parts).lower()


def _canonical_href(context: RuleContext) -> str:
    return attr(find_link(context, "canonical"), "href").strip()


def _normalize_url(url: str) -> str:
    parts = urlsplit(url)
    path = parts.path or "/"
    normalized = f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}"
    if parts.query:
        normalized += f"?{parts.query}"
    if parts.fragment:
        normalized += f"#{parts.fragment}"
    return normalized


def _is_homepage(url: str) -> bool:
    return urlsplit(url).path in ("", "/")


def check_http_status(context: RuleContext) -> Issue | None:
    if context.response is None:
        return None
    status = context.response.status_code
    if 200 <= status < 400:
        return None
    return make_issue(
        HTTP_STATUS,
        context,
        description=(
            f"Page returned HTTP status {status}. AI crawlers cannot index pages with "
            "non-2xx or 3xx status codes."
        ),
        remediation="Ensure the page returns a successful 2xx status code (typically 200 OK).",
        impact=50,
        evidence=[f"HTTP Status: {status}"],
    )


def check_soft_404(context: RuleContext) -> Issue | None:
    if context.response is None or context.response.status_code != 200:
        return None
    title = context.document.title().lower()
    h1 = context.document.first_h1().lower()
    if not any("404" in t or "not found" in t for t in (title, h1)):
        return None
    return make_issue(
        SOFT_404,
        context,
        description=(
            'Page returns 200 OK but contains "404" or "not found" in its title or heading. '
            "This confuses AI crawlers."
        ),
        remediation="Return a proper 404 status code for missing pages instead of 200 OK.",
        impact=30,
        evidence=["HTTP Status: 200", f"Title: {title[:100]}"],
        confidence=0.9,
    )


def check_missing_canonical(context: RuleContext) -> Issue | None:
    if _canonical_href(context):
        return None
    return make_issue(
        MISSING_CANONICAL,
        context,
        description="No canonical URL specified. This can cause duplicate content issues for AI crawlers.",
        remediation='Add <link rel="canonical" href="..."> to specify the preferred URL version.',
        impact=25,
        evidence=["No canonical tag found"],
    )


def check_canonical_target(context: RuleContext) -> Issue | None:
    canonical = _canonical_href(context)
    if not canonical:
        return None
    try:
        current = _normalize_url(context.url)
        resolved = _normalize_url(urljoin(context.url, canonical))
    except ValueError:
        return None
    if current == resolved:
        return None
    return make_issue(
        CANONICAL_ELSEWHERE,
        context,
        description=(
            "Canonical URL differs from current page URL. This tells AI crawlers to index a different URL."
        ),
        remediation=(
            "Ensure the canonical URL matches the current page URL unless intentionally "
            "consolidating duplicate content."
        ),
        impact=20,
        evidence=[f"Current: {current}", f"Canonical: {resolved}"],
    )


def check_canonical_format(context: RuleContext) -> Issue | None:
    canonical = _canonical_href(context)
    if not canonical:
        return None
    try:
        urlsplit(urljoin(context.url, canonical))
    except ValueError:
        return make_issue(
            INVALID_CANONICAL,
            context,
            description="Canonical URL cannot be parsed. AI crawlers may ignore it.",
            remediation="Ensure the canonical URL is a valid absolute URL.",
            impact=22,
            evidence=[f"Canonical: {canonical}"],
        )
    if canonical.startswith("http") and not re.match(r"^https?://.+", canonical):
        return make_issue(
            INVALID_CANONICAL,
            context,
            description="Canonical URL has invalid format. AI crawlers may ignore it.",
            remediation="Ensure the canonical URL is a valid absolute URL (starts with http:// or https://).",
            impact=22,
            evidence=[f"Canonical: {canonical}"],
        )
    return None


def check_canonical_noindex(context: RuleContext) -> Issue | None:
    canonical = _canonical_href(context)
    robots = _robots_directives(context)
    if not canonical or "noindex" not in robots:
        return None
    return make_issue(
        CANONICAL_NOINDEX,
        context,
        description=(
            "Page has both a canonical tag and a noindex directive. This sends conflicting signals to AI crawlers."
        ),
        remediation="Remove the canonical tag from noindexed pages, or remove noindex if the page should be indexed.",
        impact=25,
        evidence=[f"Canonical: {canonical}", f"Robots: {robots}"],
    )


def check_sitemap(context: RuleContext) -> Issue | None:
    if find_link(context, "sitemap") is not None:
        return None
    return make_issue(
        NO_SITEMAP,
        context,
        description=(
            "No sitemap link found in page. While not required, sitemap references help AI crawlers discover content."
        ),
        remediation='Add <link rel="sitemap" type="application/xml" href="/sitemap.xml">.',
        impact=15,
        evidence=["No sitemap link in HTML"],
        confidence=0.7,
    )


def check_noindex(context: RuleContext) -> Issue | None:
    robots = _robots_directives(context)
    if "noindex" not in robots:
        return None
    return make_issue(
        NOINDEX,
        context,
        description='Robots directives contain "noindex". This prevents AI crawlers from indexing the page.',
        remediation='Remove "noindex" if you want AI crawlers to index this page.',
        impact=40,
        evidence=[f"Robots: {robots}"],
    )


def check_nofollow(context: RuleContext) -> Issue | None:
    robots = _robots_directives(context)
    if "nofollow" not in robots:
        return None
    return make_issue(
        NOFOLLOW,
        context,
        description='Robots directives contain "nofollow". This prevents AI crawlers from following links on the page.',
        remediation='Remove "nofollow" if you want AI crawlers to discover linked pages.',
        impact=30,
        evidence=[f"Robots: {robots}"],
    )


def _hreflang_links(context: RuleContext):
    return [
        link
        for link in context.soup.find_all("link", attrs={"hreflang": True})
        if "alternate" in attr(link, "rel").lower().split()
    ]


def check_hreflang_self_reference(context: RuleContext) -> Issue | None:
    links = _hreflang_links(context)
    if not links:
        return None
    page_lang = attr(context.soup.find("html"), "lang")
    current_path = urlsplit(context.url).path
    for link in links:
        hreflang = attr(link, "hreflang")
        try:
            target_path = urlsplit(urljoin(context.url, attr(link, "href"))).path
        except ValueError:
            continue
        if hreflang in (page_lang, "x-default") and target_path == current_path:
            return None
    return make_issue(
        HREFLANG_SELF,
        context,
        description="Hreflang tags present but no self-reference found. This is a best practice for international SEO.",
        remediation="Add a self-referential hreflang link pointing to the current page in its own language.",
        impact=10,
        evidence=[f"Hreflang tags: {len(links)}", f"Page lang: {page_lang or 'not set'}"],
        confidence=0.8,
    )


def check_hreflang_syntax(context: RuleContext) -> Issue | None:
    invalid = [
        value
        for value in (attr(link, "hreflang") for link in _hreflang_links(context))
        if value and value != "x-default" and not HREFLANG_RE.match(value)
    ]
    if not invalid:
        return None
    return make_issue(
        HREFLANG_SYNTAX,
        context,
        description=(
            f'Found {len(invalid)} hreflang tag(s) with invalid language codes. Use ISO 639-1 format (e.g., "en", "en-US").'
        ),
        remediation="Correct hreflang values to use valid ISO 639-1 language codes.",
        impact=15,
        evidence=[f"Invalid hreflang tags: {len(invalid)}"] + invalid[:3],
    )


def check_meta_refresh(context: RuleContext) -> Issue | None:
    for meta in context.soup.find_all("meta"):
        if attr(meta, "http-equiv").lower() == "refresh":
            return make_issue(
                META_REFRESH,
                context,
                description=(
                    "Page uses a meta refresh redirect. AI crawlers prefer server-side 301/302 redirects."
                ),
                remediation="Use server-side HTTP 301 or 302 redirects instead of meta refresh.",
                impact=18,
                evidence=[f"Meta refresh: {attr(meta, 'content')}"],
            )
    return None


def check_homepage_h1(context: RuleContext) -> Issue | None:
    if not _is_homepage(context.url) or context.soup.find("h1") is not None:
        return None
    return make_issue(
        HOMEPAGE_H1,
        context,
        description="Homepage has no H1 heading. AI crawlers use it to understand your site's purpose.",
        remediation="Add a clear H1 heading to your homepage describing your site or business.",
        impact=12,
        evidence=["No H1 found on homepage"],
    )


def check_excessive_resources(context: RuleContext) -> Issue | None:
    total = len(context.soup.select("script[src], link[href], img[src], iframe[src]"))
    if total <= MAX_RESOURCES:
        return None
    return make_issue(
        EXCESSIVE_RESOURCES,
        context,
        description=(
            f"Page loads {total} external resources. This wastes crawl budget and slows down AI crawler processing."
        ),
        remediation="Consolidate resources, inline critical assets, and defer non-critical loads.",
        impact=10,
        evidence=[f"Total external resources: {total}"],
        confidence=0.8,
    )


def check_pagination(context: RuleContext) -> Issue | None:
    if find_link(context, "prev") is not None or find_link(context, "next") is not None:
        return None
    pagination_links = context.soup.select(
        'a[href*="page="], a[href*="?p="], a[aria-label*="next" i], a[aria-label*="previous" i]'
    )
    if not pagination_links:
        return None
    return make_issue(
        PAGINATION,
        context,
        description=(
            'Page appears to have pagination but lacks rel="prev"/rel="next" links. '
            "These help AI crawlers understand page sequences."
        ),
        remediation='Add <link rel="prev" href="..."> and <link rel="next" href="..."> tags for paginated content.',
        impact=8,
        evidence=[f"Pagination links found: {len(pagination_links)}"],
        confidence=0.7,
        snippet=text_of(pagination_links[0])[:100] or None,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(HTTP_STATUS, check_http_status)
    registry.register(SOFT_404, check_soft_404)
    registry.register(MISSING_CANONICAL, check_missing_canonical)
    registry.register(CANONICAL_ELSEWHERE, check_canonical_target)
    registry.register(INVALID_CANONICAL, check_canonical_format)
    registry.register(CANONICAL_NOINDEX, check_canonical_noindex)
    registry.register(NO_SITEMAP, check_sitemap)
    registry.register(NOINDEX, check_noindex)
    registry.register(NOFOLLOW, check_nofollow)
    registry.register(HREFLANG_SELF, check_hreflang_self_reference)
    registry.register(HREFLANG_SYNTAX, check_hreflang_syntax)
    registry.register(META_REFRESH, check_meta_refresh)
    registry.register(HOMEPAGE_H1, check_homepage_h1)
    registry.register(EXCESSIVE_RESOURCES, check_excessive_resources)
    registry.register(PAGINATION, check_pagination)
