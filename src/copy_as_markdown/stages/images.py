from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from ..models import ImageHandling, ImageStrategy
from .filters import content_root

LAZY_SOURCE_ATTRS = ("data-src", "data-lazy-src", "data-original")
LAZY_SRCSET_ATTRS = ("srcset", "data-srcset")


def _lazy_source(image: Tag) -> str | None:
    for attr in LAZY_SOURCE_ATTRS:
        value = image.get(attr)
        if value:
            return str(value).strip()
    for attr in LAZY_SRCSET_ATTRS:
        value = image.get(attr)
        if value:
            first = str(value).split(",")[0].strip().split(" ")[0]
            if first:
                return first
    return None


def _needs_lazy_source(src: str) -> bool:
    return not src or src.startswith("data:")


def _drop_image(image: Tag) -> None:
    parent = image.parent
    previous = image.previous_sibling
    following = image.next_sibling
    image.decompose()
    # Avoid a doubled space where the image used to sit between two words.
    if isinstance(previous, NavigableString) and isinstance(following, NavigableString):
        if previous.endswith(" ") and following.startswith(" "):
            following.replace_with(following.lstrip(" "))
    if parent is not None:
        parent.smooth()


def apply_image_policy(
    soup: BeautifulSoup, handling: ImageHandling, base_url: str | None = None
) -> int:
    """Apply the image strategy in place and return the number of images kept."""

    images = content_root(soup).find_all("img")
    if handling.strategy is ImageStrategy.SKIP:
        for image in images:
            _drop_image(image)
        return 0

    for image in images:
        src = str(image.get("src") or "").strip()
        if handling.lazy_load_handling and _needs_lazy_source(src):
            src = _lazy_source(image) or src
        if src and base_url and not src.startswith("data:"):
            src = urljoin(base_url, src)
        image["src"] = src
        alt = str(image.get("alt") or "").strip()
        image["alt"] = alt or handling.fallback_alt_text or "Image"
    return len(images)


__all__ = ["apply_image_policy"]
