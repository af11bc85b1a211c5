from __future__ import annotations

import re

import yaml

from ..models import DocumentMetadata

FRONT_MATTER_DELIMITER = "---"

_ATX_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_SETEXT_UNDERLINE_RE = re.compile(r"^\s{0,3}(=+|-+)\s*$")
_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})")
_SLUG_STRIP_RE = re.compile(r"[^\w\- ]")
_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_ESCAPE_RE = re.compile(r"\\(.)")
_EMPHASIS_RE = re.compile(r"[*`~]")


def render_front_matter(metadata: DocumentMetadata) -> str:
    fields: dict[str, str] = {"title": metadata.title, "url": metadata.url}
    if metadata.author:
        fields["author"] = metadata.author
    if metadata.description:
        fields["description"] = metadata.description
    if metadata.publish_date:
        fields["published"] = metadata.publish_date
    fields["converted"] = metadata.converted_at
    fields["profile"] = metadata.profile
    body = yaml.safe_dump(
        fields,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    return f"{FRONT_MATTER_DELIMITER}\n{body}{FRONT_MATTER_DELIMITER}\n"


def plain_heading(text: str) -> str:
    text = _LINK_RE.sub(lambda m: m.group(1), text)
    text = _ESCAPE_RE.sub(r"\1", text)
    return _EMPHASIS_RE.sub("", text).strip()


def heading_slug(text: str, seen: dict[str, int]) -> str:
    slug = _SLUG_STRIP_RE.sub("", plain_heading(text).lower()).replace(" ", "-")
    count = seen.get(slug, 0)
    seen[slug] = count + 1
    return slug if count == 0 else f"{slug}-{count}"


def add_table_of_contents(markdown: str, bullet: str = "-") -> str:
    """Prepend a linked list of the document's ATX and setext headings."""

    entries: list[str] = []
    seen: dict[str, int] = {}
    fence: str | None = None
    lines = markdown.split("\n")
    for index, line in enumerate(lines):
        marker = _FENCE_RE.match(line)
        if fence is not None:
            if marker and marker.group(1)[0] == fence[0]:
                fence = None
            continue
        if marker:
            fence = marker.group(1)
            continue
        heading = _ATX_HEADING_RE.match(line)
        if heading:
            level, title = len(heading.group(1)), heading.group(2)
        else:
            following = lines[index + 1] if index + 1 < len(lines) else ""
            underline = _SETEXT_UNDERLINE_RE.match(following)
            previous = lines[index - 1] if index else ""
            if not underline or not line.strip() or previous.strip():
                continue
            level, title = (1 if underline.group(1)[0] == "=" else 2), line.strip()
        indent = "  " * (level - 1)
        entries.append(f"{indent}{bullet} [{plain_heading(title)}](#{heading_slug(title, seen)})")
    if not entries:
        return markdown
    toc = "## Table of Contents\n\n" + "\n".join(entries)
    return f"{toc}\n\n{markdown}"


__all__ = [
    "FRONT_MATTER_DELIMITER",
    "add_table_of_contents",
    "heading_slug",
    "render_front_matter",
]
