"""Content filtering, the first conversion stage."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag
from soupsieve import SelectorSyntaxError

from ..models import ContentFilters

_HIDDEN_STYLE_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


def content_root(soup: BeautifulSoup) -> Tag:
    return soup.body if soup.body is not None else soup


def select_safely(root: Tag, selector: str, warnings: list[str]) -> list[Tag]:
    try:
        return list(root.select(selector))
    except (SelectorSyntaxError, ValueError, NotImplementedError):
        warnings.append(f"INVALID_SELECTOR:{selector}")
        return []


def _is_hidden(element: Tag) -> bool:
    if element.has_attr("hidden"):
        return True
    if str(element.get("aria-hidden", "")).lower() == "true":
        return True
    return bool(_HIDDEN_STYLE_RE.search(str(element.get("style", ""))))


def _retain_included(root: Tag, selectors: tuple[str, ...], warnings: list[str]) -> None:
    matched: list[Tag] = []
    for selector in selectors:
        matched.extend(select_safely(root, selector, warnings))
    keep: set[int] = set()
    ancestors: set[int] = set()
    for element in matched:
        keep.add(id(element))
        for parent in element.parents:
            if parent is root:
                break
            ancestors.add(id(parent))
    if not keep:
        # Nothing matched: keep the whole page.
        warnings.append("INCLUDE_SELECTORS_UNMATCHED")
        return

    def prune(node: Tag) -> None:
        for child in list(node.children):
            if isinstance(child, Tag):
                if id(child) in keep:
                    continue
                if id(child) in ancestors:
                    prune(child)
                    continue
            child.extract()

    prune(root)


def apply_content_filters(soup: BeautifulSoup, filters: ContentFilters) -> list[str]:
    """Reduce *soup* in place to the content the profile wants; return warnings."""

    warnings: list[str] = []
    root = content_root(soup)

    if filters.include_css:
        _retain_included(root, filters.include_css, warnings)

    for selector in filters.exclude_css:
        for element in select_safely(root, selector, warnings):
            if not element.decomposed:
                element.decompose()

    if not filters.include_hidden:
        for element in root.find_all(_is_hidden):
            if not element.decomposed:
                element.decompose()

    if not filters.include_comments:
        for comment in root.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

    if not filters.include_scripts:
        for element in root.find_all(["script", "noscript"]):
            element.decompose()

    if not filters.include_iframes:
        for element in root.find_all("iframe"):
            element.decompose()

    return warnings


def text_length(soup: BeautifulSoup) -> int:
    return len(" ".join(content_root(soup).get_text(" ").split()))


__all__ = ["apply_content_filters", "content_root", "select_safely", "text_length"]
