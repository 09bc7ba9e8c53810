"""
Prompt Content — Cleaned main-content text handed to enrichment prompts.

The parsed document is shared by concurrent tasks, so nothing here removes
nodes from the tree: excluded regions are skipped while walking text nodes.
"""

from __future__ import annotations

from bs4 import Tag

from pagelens.core.document import Document, iter_strings
from pagelens.core.text import normalize_whitespace, truncate

# Never visible as page prose
EMBEDDED_TAGS = frozenset({"svg", "iframe"})

# Site chrome around the main content
CHROME_TAGS = frozenset({"nav", "header", "footer", "aside"})

MAIN_REGION_SELECTOR = 'main, article, [role="main"]'


def _inside(node, root: Tag, names: frozenset[str]) -> bool:
    for parent in node.parents:
        if parent is root:
            return False
        if parent.name in names:
            return True
    return False


def clean_text(element: Tag | None, exclude: frozenset[str] = EMBEDDED_TAGS) -> str:
    """Visible text of ``element`` without text inside any ``exclude`` tag."""
    if element is None:
        return ""
    parts: list[str] = []
    for node in iter_strings(element):
        if _inside(node, element, exclude):
            continue
        text = node.strip()
        if text:
            parts.append(text)
    return normalize_whitespace(" ".join(parts))


def main_content_text(document: Document, max_length: int | None = None) -> str:
    """
    Text of the first present main / article / body region, embedded media skipped.

    With ``max_length`` the text is cut there and marked with a trailing "...".
    """
    container = None
    for name in ("main", "article", "body"):
        container = document.soup.find(name)
        if container is not None:
            break
    text = clean_text(container if container is not None else document.soup)
    if max_length is not None:
        text = truncate(text, max_length, "...")
    return text


def page_prose(document: Document, exclude_chrome: frozenset[str] = CHROME_TAGS) -> str:
    """Main-region text with site chrome (``exclude_chrome``) and embedded media removed."""
    exclude = EMBEDDED_TAGS | exclude_chrome
    region = document.soup.select_one(MAIN_REGION_SELECTOR)
    if region is None:
        region = document.soup.find("body") or document.soup
    return clean_text(region, exclude)
