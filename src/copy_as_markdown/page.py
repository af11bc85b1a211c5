"""Metadata and matching context read from raw page HTML."""

from __future__ import annotations

import json

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from .models import PageContext, PageMetadata
from .urls import extract_hostname

_ARTICLE_TYPES = {"Article", "BlogPosting", "NewsArticle"}


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def meta_tags(soup: BeautifulSoup) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = tag.get("name") or tag.get("property")
        content = tag.get("content")
        if key and content is not None and key not in tags:
            tags[str(key)] = str(content)
    return tags


def _json_ld_article(soup: BeautifulSoup) -> dict[str, object]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if isinstance(candidate, dict) and candidate.get("@type") in _ARTICLE_TYPES:
                return candidate
    return {}


def _canonical_url(soup: BeautifulSoup, tags: dict[str, str]) -> str:
    link = soup.find("link", rel="canonical", href=True)
    if link is not None:
        return str(link["href"])
    return tags.get("og:url", "")


def extract_page_metadata(html: str, url: str = "", title: str = "") -> PageMetadata:
    soup = parse_html(html)
    tags = meta_tags(soup)
    article = _json_ld_article(soup)
    author = tags.get("author")
    if not author and isinstance(article.get("author"), dict):
        author = article["author"].get("name")
    published = tags.get("article:published_time") or article.get("datePublished")
    page_title = (
        title
        or (soup.title.get_text(strip=True) if soup.title else "")
        or tags.get("og:title")
        or tags.get("twitter:title")
        or ""
    )
    return PageMetadata(
        title=page_title,
        url=url or _canonical_url(soup, tags),
        author=author or None,
        description=tags.get("description") or tags.get("og:description"),
        publish_date=str(published) if published else None,
    )


def build_page_context(html: str, url: str, title: str = "") -> PageContext:
    soup = parse_html(html)

    def has_selector(selector: str) -> bool:
        try:
            return soup.select_one(selector) is not None
        except (SelectorSyntaxError, ValueError, NotImplementedError):
            return False

    page_title = title or (soup.title.get_text(strip=True) if soup.title else "")
    return PageContext(
        url=url,
        title=page_title,
        domain=extract_hostname(url),
        meta_tags=meta_tags(soup),
        has_selector=has_selector,
    )


__all__ = ["build_page_context", "extract_page_metadata", "meta_tags", "parse_html"]
