from __future__ import annotations

from bs4 import BeautifulSoup

from .filters import content_root

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


def clamp_level(level: int) -> int:
    return max(1, min(int(level), 6))


def normalize_headings(soup: BeautifulSoup, max_level: int) -> int:
    """Demote headings deeper than *max_level* to bold paragraphs.

    The heading keeps its text and position. Returns the number of demoted headings.
    """

    threshold = clamp_level(max_level)
    demoted = 0
    for heading in content_root(soup).find_all(HEADING_TAGS):
        level = clamp_level(int(heading.name[1]))
        if level <= threshold:
            continue
        strong = soup.new_tag("strong")
        for child in list(heading.contents):
            strong.append(child.extract())
        paragraph = soup.new_tag("p")
        paragraph.append(strong)
        heading.replace_with(paragraph)
        demoted += 1
    return demoted


__all__ = ["HEADING_TAGS", "clamp_level", "normalize_headings"]
