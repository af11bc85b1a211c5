"""Line wrapping and whitespace tidying for emitted Markdown."""

from __future__ import annotations

import re
import textwrap

_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})")
_LIST_ITEM_RE = re.compile(r"^(\s*)([-*+]|\d+[.)])(\s+)")
_QUOTE_RE = re.compile(r"^((?:>\s?)+)")
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}(\s|$)")
_SETEXT_RE = re.compile(r"^\s{0,3}(=+|-+)\s*$")
_RULE_RE = re.compile(r"^\s{0,3}([-*_])(\s*\1){2,}\s*$")
_REFERENCE_RE = re.compile(r"^\s{0,3}\[[^\]]+\]:\s")
_BLOCK_START_RE = re.compile(r"^(?:[-*_=]+|[+>]|#{1,6}|\d+[.)])(?=\s|$)")


def _is_verbatim(line: str) -> bool:
    return (
        not line.strip()
        or line.lstrip().startswith("|")
        or line.startswith("    ")
        or line.startswith("\t")
        or bool(_HEADING_RE.match(line))
        or bool(_SETEXT_RE.match(line))
        or bool(_RULE_RE.match(line))
        or bool(_REFERENCE_RE.match(line))
    )


def _is_hard_break(line: str) -> bool:
    return line.endswith("  ") or line.endswith("\\")


def _fill(text: str, width: int, first: str, rest: str) -> list[str]:
    lines = textwrap.wrap(
        text,
        width=width,
        initial_indent=first,
        subsequent_indent=rest,
        break_long_words=False,
        break_on_hyphens=False,
    ) or [first.rstrip()]
    # a continuation line may not open a list item, heading, quote or rule
    output = [lines[0]]
    for line in lines[1:]:
        body = line[len(rest):]
        while _BLOCK_START_RE.match(body):
            token, _, body = body.partition(" ")
            output[-1] += f" {token}"
        if body:
            output.append(rest + body)
    return output


def _wrap_paragraph(lines: list[str], width: int) -> list[str]:
    first = lines[0]
    quote = _QUOTE_RE.match(first)
    prefix = quote.group(1) if quote else ""
    body_lines = [line[len(prefix):] if line.startswith(prefix) else line for line in lines]
    item = _LIST_ITEM_RE.match(body_lines[0])
    if item:
        marker = item.group(0)
        lead = prefix + marker
        rest = prefix + " " * len(marker)
        body_lines[0] = body_lines[0][len(marker):]
    else:
        indent = re.match(r"^\s*", body_lines[0]).group(0)
        lead = prefix + indent
        rest = lead
    text = " ".join(line.strip() for line in body_lines)
    return _fill(text, width, lead, rest)


def wrap_markdown(markdown: str, width: int) -> str:
    """Wrap prose paragraphs to *width* columns.

    Fenced code, table rows, ATX and setext headings, rules and reference
    definitions are emitted untouched. Lines ending in a hard break close their
    paragraph. Continuation lines never start with a block marker.
    """

    if width <= 0:
        return markdown
    output: list[str] = []
    paragraph: list[str] = []
    fence: str | None = None

    def flush() -> None:
        if paragraph:
            output.extend(_wrap_paragraph(paragraph, width))
            paragraph.clear()

    lines = markdown.split("\n")
    for index, line in enumerate(lines):
        marker = _FENCE_RE.match(line)
        if fence is not None:
            output.append(line)
            if marker and marker.group(1)[0] == fence[0] and len(marker.group(1)) >= len(fence):
                fence = None
            continue
        if marker:
            flush()
            fence = marker.group(1)
            output.append(line)
            continue
        following = lines[index + 1] if index + 1 < len(lines) else ""
        if _is_verbatim(line) or _SETEXT_RE.match(following):
            flush()
            output.append(line)
            continue
        if paragraph and _LIST_ITEM_RE.match(line):
            flush()
        if _is_hard_break(line):
            marker_text = "  " if line.endswith("  ") else "\\"
            paragraph.append(line[: -len(marker_text)])
            flush()
            output[-1] += marker_text
            continue
        paragraph.append(line)
    flush()
    return "\n".join(output)


def tidy_markdown(markdown: str) -> str:
    """Collapse runs of blank lines outside code fences and trim the ends.

    A thematic break drawn with dashes on the first line is rewritten as
    ``***``.
    """

    output: list[str] = []
    fence: str | None = None
    blank = 0
    for line in markdown.split("\n"):
        marker = _FENCE_RE.match(line)
        if fence is not None:
            output.append(line)
            if marker and marker.group(1)[0] == fence[0] and len(marker.group(1)) >= len(fence):
                fence = None
            continue
        if marker:
            fence = marker.group(1)
        if not line.strip():
            blank += 1
            if blank > 1:
                continue
            output.append("")
            continue
        blank = 0
        output.append(line)
    tidied = "\n".join(output).strip("\n")
    # a leading dash rule would read as a front-matter delimiter
    head, newline, tail = tidied.partition("\n")
    rule = _RULE_RE.match(head)
    if rule and rule.group(1) == "-":
        return f"***{newline}{tail}"
    return tidied


__all__ = ["tidy_markdown", "wrap_markdown"]
