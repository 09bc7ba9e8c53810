"""
Document Model — Fetches a page and exposes its parsed tree and transport metadata.

Fetching goes through an injectable ``Fetcher`` so hosts and tests can supply
their own transport. Transport failures never raise: they come back on
``FetchResult.error`` and the scan continues with whatever HTML was retrieved.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator

import httpx
from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from bs4.element import CData

from pagelens.models.rule_models import ResponseMeta

logger = logging.getLogger("pagelens.document")

DEFAULT_USER_AGENT = "PageLens/1.0 (+https://github.com/pagelens/pagelens)"

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


@dataclass
class FetchResult:
    url: str
    html: str = ""
    response: ResponseMeta | None = None
    error: Exception | None = None


Fetcher = Callable[[str, float, str], Awaitable[FetchResult]]


async def fetch_page(url: str, timeout: float, user_agent: str = DEFAULT_USER_AGENT) -> FetchResult:
    """GET ``url`` with httpx, following redirects, honoring ``timeout`` seconds."""
    start = time.monotonic()
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, headers={"User-Agent": user_agent}
        ) as client:
            response = await client.get(url)
    except httpx.HTTPError as e:
        logger.warning(f"Fetch failed for {url}: {type(e).__name__}: {e}")
        return FetchResult(url=url, error=e)

    elapsed = (time.monotonic() - start) * 1000
    meta = ResponseMeta(
        status_code=response.status_code,
        headers={k.lower(): v for k, v in response.headers.items()},
        final_url=str(response.url),
        content_type=response.headers.get("content-type", ""),
        redirect_count=len(response.history),
        elapsed_ms=round(elapsed, 2),
    )
    return FetchResult(url=url, html=response.text, response=meta)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def is_content_string(node: Any) -> bool:
    """True for visible text nodes (not comments, scripts, styles or doctype)."""
    if not isinstance(node, NavigableString):
        return False
    if type(node) not in (NavigableString, CData):
        return False
    if isinstance(node, Comment):
        return False
    parent = node.parent
    while parent is not None:
        if parent.name in NON_CONTENT_TAGS:
            return False
        parent = parent.parent
    return True


def iter_strings(element: Tag) -> Iterator[NavigableString]:
    for node in element.descendants:
        if is_content_string(node):
            yield node


def element_text(element: Tag | None, separator: str = " ") -> str:
    """Visible text of ``element``, whitespace-collapsed."""
    if element is None:
        return ""
    parts = [s.strip() for s in iter_strings(element)]
    return separator.join(p for p in parts if p)


def heading_level(tag: Tag) -> int | None:
    if tag.name in HEADING_TAGS:
        return int(tag.name[1])
    return None


class Document:
    """Parsed page plus transport metadata, shared read-only by the pipeline."""

    def __init__(self, url: str, html: str, response: ResponseMeta | None = None) -> None:
        self.url = url
        self.html = html or ""
        self.response = response
        self.soup = parse_html(self.html)
        self._json_ld: list[dict[str, Any]] | None = None

    @classmethod
    def from_fetch(cls, fetched: FetchResult) -> Document:
        return cls(fetched.url, fetched.html, fetched.response)

    # ── regions ──

    def main_container(self) -> Tag:
        """First present of main, article, body; the whole tree as a last resort."""
        for name in ("main", "article", "body"):
            found = self.soup.find(name)
            if found is not None:
                return found
        return self.soup

    def main_text(self) -> str:
        """Whitespace-collapsed text of the first non-empty main / article / body region."""
        for name in ("main", "article", "body"):
            found = self.soup.find(name)
            if found is not None:
                text = element_text(found)
                if text:
                    return text
        return element_text(self.soup)

    def title(self) -> str:
        tag = self.soup.find("title")
        return element_text(tag) if tag else ""

    def first_h1(self) -> str:
        tag = self.soup.find("h1")
        return element_text(tag) if tag else ""

    # ── meta ──

    def meta_content(self, name: str | None = None, property: str | None = None) -> str | None:
        attrs = {"name": name} if name else {"property": property}
        tag = self.soup.find("meta", attrs=attrs)
        if tag is None:
            return None
        content = tag.get("content")
        return content.strip() if isinstance(content, str) else None

    # ── structured data ──

    def json_ld(self) -> list[dict[str, Any]]:
        """Every JSON-LD item on the page, arrays and @graph containers flattened."""
        if self._json_ld is not None:
            return self._json_ld
        items: list[dict[str, Any]] = []
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.string or script.get_text() or ""
            try:
                data = json.loads(raw)
            except ValueError:
                continue
            items.extend(_flatten_json_ld(data))
        self._json_ld = items
        return items

    def json_ld_errors(self) -> list[str]:
        errors: list[str] = []
        for index, script in enumerate(self.soup.find_all("script", attrs={"type": "application/ld+json"})):
            raw = script.string or script.get_text() or ""
            try:
                json.loads(raw)
            except ValueError as e:
                errors.append(f"block {index + 1}: {e}")
        return errors


def json_ld_types(item: dict[str, Any]) -> list[str]:
    value = item.get("@type")
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)] if value else []


def _flatten_json_ld(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        out: list[dict[str, Any]] = []
        for entry in data:
            out.extend(_flatten_json_ld(entry))
        return out
    if isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            return [data] + _flatten_json_ld(graph)
        return [data]
    return []
