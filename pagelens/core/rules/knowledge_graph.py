"""
Knowledge Graph Rules — Schema.org JSON-LD presence, validity and fit to page type.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from pagelens.core.document import json_ld_types
from pagelens.core.rules.common import make_issue
from pagelens.core.rule_engine import RuleRegistry
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.rule_models import RuleContext, RuleMeta

MAIN_ENTITY_TYPES = {
    "Organization",
    "Person",
    "Article",
    "NewsArticle",
    "BlogPosting",
    "WebPage",
    "WebSite",
    "Product",
    "Event",
    "LocalBusiness",
    "Corporation",
}

PRODUCT_SIGNAL_SELECTOR = (
    '[class*="product"], [itemtype*="Product"], [data-product], .price, .add-to-cart, .buy-now'
)
MIN_PRODUCT_SIGNALS = 4


def _meta(rule_id: str, title: str, severity: Severity, tags: list[str]) -> RuleMeta:
    return RuleMeta(
        id=rule_id, title=title, category=Category.KG, default_severity=severity, tags=tags, priority=10
    )


NO_JSON_LD = _meta("KG-001", "No Schema.org structured data", Severity.HIGH, ["schema", "json-ld", "knowledge-graph"])
INVALID_JSON_LD = _meta("KG-002", "Invalid JSON-LD blocks detected", Severity.MEDIUM, ["schema", "validation", "json-ld"])
NO_MAIN_ENTITY = _meta(
    "KG-003", "Schema.org data lacks main entity", Severity.MEDIUM, ["schema", "entities", "knowledge-graph"]
)
NO_ORGANIZATION = _meta("KG-004", "Missing Organization schema", Severity.MEDIUM, ["schema", "organization", "identity"])
NO_BREADCRUMBS = _meta("KG-005", "Breadcrumbs lack structured data", Severity.LOW, ["breadcrumbs", "schema", "hierarchy"])
NO_ARTICLE = _meta("KG-006", "Article content lacks Article schema", Severity.MEDIUM, ["article", "schema", "content"])
NO_PRODUCT = _meta("KG-007", "Product page lacks Product schema", Severity.MEDIUM, ["product", "schema", "ecommerce"])


def _all_types(context: RuleContext) -> list[str]:
    types: list[str] = []
    for item in context.document.json_ld():
        for t in json_ld_types(item):
            if t not in types:
                types.append(t)
    return types


def _json_ld_scripts(context: RuleContext):
    return context.soup.find_all("script", attrs={"type": "application/ld+json"})


def check_missing_json_ld(context: RuleContext) -> Issue | None:
    if _json_ld_scripts(context):
        return None
    return make_issue(
        NO_JSON_LD,
        context,
        description=(
            "The page lacks Schema.org structured data in JSON-LD format. This prevents AI "
            "from building knowledge graphs from your content."
        ),
        remediation=(
            "Add Schema.org structured data using JSON-LD. Consider Organization, Person, "
            "Article, Product, or other relevant schemas."
        ),
        impact=30,
        evidence=["No JSON-LD structured data found"],
    )


def check_invalid_json_ld(context: RuleContext) -> Issue | None:
    errors = context.document.json_ld_errors()
    if not errors:
        return None
    return make_issue(
        INVALID_JSON_LD,
        context,
        description=(
            f"Found {len(errors)} JSON-LD script(s) with parsing errors. "
            "Invalid structured data is ignored by AI crawlers."
        ),
        remediation="Validate your JSON-LD with a schema.org validator.",
        impact=18,
        evidence=errors[:5],
    )


def check_main_entity(context: RuleContext) -> Issue | None:
    items = context.document.json_ld()
    if not items:
        return None
    types = _all_types(context)
    if MAIN_ENTITY_TYPES.intersection(types):
        return None
    return make_issue(
        NO_MAIN_ENTITY,
        context,
        description=(
            f"Found {len(items)} Schema.org object(s) but no main entity type "
            "(Organization, Person, Article, WebPage, etc.)."
        ),
        remediation="Add a primary Schema.org type that describes the main content or purpose of the page.",
        impact=20,
        evidence=[f"Schema types found: {', '.join(types) or 'none'}"],
        confidence=0.9,
    )


def check_organization(context: RuleContext) -> Issue | None:
    if urlsplit(context.url).path not in ("", "/"):
        return None
    if any("Organization" in t for t in _all_types(context)):
        return None
    return make_issue(
        NO_ORGANIZATION,
        context,
        description=(
            "Home page lacks Organization schema. This helps AI agents understand your "
            "business identity and contact information."
        ),
        remediation="Add Organization schema with name, logo, url, and social media profiles using JSON-LD.",
        impact=18,
        evidence=["No Organization schema found"],
        confidence=0.8,
    )


def check_breadcrumbs(context: RuleContext) -> Issue | None:
    depth = len([p for p in urlsplit(context.url).path.split("/") if p])
    if depth <= 1 or "BreadcrumbList" in _all_types(context):
        return None
    if not context.soup.select('[itemtype*="BreadcrumbList"], nav[aria-label*="breadcrumb" i]'):
        return None
    return make_issue(
        NO_BREADCRUMBS,
        context,
        description=(
            "Page has breadcrumb navigation but no BreadcrumbList schema. "
            "Structured breadcrumbs help AI understand site hierarchy."
        ),
        remediation="Add BreadcrumbList structured data to complement your breadcrumb navigation.",
        impact=8,
        evidence=[f"URL depth: {depth}", "No BreadcrumbList schema"],
        confidence=0.9,
    )


def check_article(context: RuleContext) -> Issue | None:
    if any(k in t for t in _all_types(context) for k in ("Article", "BlogPosting")):
        return None
    looks_like_article = context.soup.find("article") is not None or bool(
        context.soup.select('[class*="blog"], [class*="post"], [class*="article"]')
    )
    if not looks_like_article:
        return None
    return make_issue(
        NO_ARTICLE,
        context,
        description=(
            "Page appears to contain article content but lacks Article schema. "
            "This helps AI understand authorship, dates, and content type."
        ),
        remediation="Add Article, BlogPosting, or NewsArticle schema with headline, author, datePublished and image.",
        impact=15,
        evidence=["Article content detected but no Article schema found"],
        confidence=0.75,
    )


def check_product(context: RuleContext) -> Issue | None:
    if any("Product" in t for t in _all_types(context)):
        return None
    if len(context.soup.select(PRODUCT_SIGNAL_SELECTOR)) < MIN_PRODUCT_SIGNALS:
        return None
    return make_issue(
        NO_PRODUCT,
        context,
        description=(
            "Page appears to be a product page but lacks Product schema. "
            "This helps AI understand pricing, availability, and reviews."
        ),
        remediation="Add Product schema with name, image, description, price, and availability properties.",
        impact=18,
        evidence=["Product page detected but no Product schema found"],
        confidence=0.7,
    )


def register(registry: RuleRegistry) -> None:
    registry.register(NO_JSON_LD, check_missing_json_ld)
    registry.register(INVALID_JSON_LD, check_invalid_json_ld)
    registry.register(NO_MAIN_ENTITY, check_main_entity)
    registry.register(NO_ORGANIZATION, check_organization)
    registry.register(NO_BREADCRUMBS, check_breadcrumbs)
    registry.register(NO_ARTICLE, check_article)
    registry.register(NO_PRODUCT, check_product)
