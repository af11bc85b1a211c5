from __future__ import annotations

from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from ..models import LinkHandling, LinkStyle
from ..urls import strip_tracking_params
from .filters import content_root


def clean_href(href: str, handling: LinkHandling, base_url: str | None, warnings: list[str]) -> str:
    """Rewrite one href; malformed URLs come back unchanged with a warning."""

    cleaned = href
    try:
        urlsplit(cleaned)
        if handling.remove_tracking_params:
            cleaned = strip_tracking_params(cleaned)
        if (
            base_url
            and handling.style is not LinkStyle.RELATIVE
            and handling.convert_relative_urls
            and not cleaned.startswith("#")
        ):
            cleaned = urljoin(base_url, cleaned)
    except ValueError:
        warnings.append(f"MALFORMED_URL:{href}")
        return href
    return cleaned


def apply_link_policy(
    soup: BeautifulSoup, handling: LinkHandling, base_url: str | None = None
) -> tuple[int, list[str]]:
    """Apply the link style in place. Returns the kept link count and warnings."""

    warnings: list[str] = []
    anchors = content_root(soup).find_all("a")
    if handling.style is LinkStyle.REMOVE:
        for anchor in anchors:
            anchor.unwrap()
        return 0, warnings

    kept = 0
    for anchor in anchors:
        href = anchor.get("href")
        if not href:
            continue
        anchor["href"] = clean_href(str(href).strip(), handling, base_url, warnings)
        kept += 1
    return kept, warnings


__all__ = ["apply_link_policy", "clean_href"]
