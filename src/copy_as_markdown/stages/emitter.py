"""Structural emission: turn the filtered tree into Markdown text.

Emission is a thin subclass of :class:`markdownify.MarkdownConverter` whose
hooks honour the profile's flavor and style knobs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, NavigableString, Tag
from markdownify import MarkdownConverter

from ..models import (
    CodeBlockStyle,
    ConversionProfile,
    HeadingStyle,
    LinkStyle,
    MarkdownFlavor,
)
from .filters import content_root

_EDGE_WHITESPACE_RE = re.compile(r"^(\s*)(.*?)(\s*)$", re.DOTALL)
_RULE_RUN_RE = re.compile(r"-(?=--)")
_LANGUAGE_CLASS_RE = re.compile(r"^(?:language|lang)-(.+)$")


@dataclass(frozen=True, slots=True)
class FlavorCapabilities:
    tables: bool
    strikethrough: bool
    front_matter: bool = True


_CAPABILITIES: dict[MarkdownFlavor, FlavorCapabilities] = {
    MarkdownFlavor.COMMONMARK: FlavorCapabilities(tables=False, strikethrough=False),
    MarkdownFlavor.GFM: FlavorCapabilities(tables=True, strikethrough=True),
    MarkdownFlavor.GITHUB: FlavorCapabilities(tables=True, strikethrough=True),
    MarkdownFlavor.GITLAB: FlavorCapabilities(tables=True, strikethrough=True),
    MarkdownFlavor.REDDIT: FlavorCapabilities(tables=True, strikethrough=True),
    MarkdownFlavor.DISCORD: FlavorCapabilities(tables=False, strikethrough=True),
    MarkdownFlavor.MINIMAL: FlavorCapabilities(
        tables=False, strikethrough=False, front_matter=False
    ),
}


def capabilities_for(flavor: MarkdownFlavor) -> FlavorCapabilities:
    return _CAPABILITIES[flavor]


def _split_edges(text: str) -> tuple[str, str, str]:
    prefix, body, suffix = _EDGE_WHITESPACE_RE.match(text).groups()
    return (" " if prefix else "", body, " " if suffix else "")


class ProfileMarkdownConverter(MarkdownConverter):
    """markdownify converter driven by a :class:`ConversionProfile`."""

    def __init__(self, profile: ConversionProfile) -> None:
        emission = profile.emission
        super().__init__(
            heading_style="underlined" if emission.heading_style is HeadingStyle.SETEXT else "atx",
            bullets=emission.bullet_list_marker or "-",
            newline_style="spaces",
        )
        self.profile = profile
        self.capabilities = capabilities_for(profile.markdown_flavor)
        self.reference_links = (
            profile.link_handling.style is LinkStyle.REFERENCE
            or emission.link_style == "referenced"
        )
        self.references: list[str] = []

    # inline formatting

    def _inline(self, text: str, markup: str, parent_tags) -> str:
        if "_noformat" in parent_tags:
            return text
        prefix, body, suffix = _split_edges(text)
        if not body:
            return ""
        return f"{prefix}{markup}{body}{markup}{suffix}"

    def convert_strong(self, el, text, parent_tags):
        return self._inline(text, self.profile.emission.strong_delimiter, parent_tags)

    convert_b = convert_strong

    def convert_em(self, el, text, parent_tags):
        return self._inline(text, self.profile.emission.em_delimiter, parent_tags)

    convert_i = convert_em

    def convert_del(self, el, text, parent_tags):
        if not self.capabilities.strikethrough:
            return text
        return self._inline(text, "~~", parent_tags)

    convert_s = convert_del
    convert_strike = convert_del

    def escape(self, text, parent_tags):
        text = super().escape(text, parent_tags)
        # A run of dashes must never read as a rule or front matter delimiter.
        return _RULE_RUN_RE.sub(r"\\-", text) if "---" in text else text

    # links and media

    def convert_a(self, el, text, parent_tags):
        if "_noformat" in parent_tags:
            return text
        prefix, body, suffix = _split_edges(text)
        href = el.get("href")
        if not body:
            return ""
        if not href:
            return f"{prefix}{body}{suffix}"
        if self.reference_links:
            return f"{prefix}[{body}][{self._reference(href)}]{suffix}"
        return f"{prefix}[{body}]({self._destination(href, el.get('title'))}){suffix}"

    def _reference(self, href: str) -> int:
        if href not in self.references:
            self.references.append(href)
        return self.references.index(href) + 1

    @staticmethod
    def _destination(href: str, title: str | None) -> str:
        target = f"<{href}>" if " " in href else href
        if title:
            escaped = title.replace('"', '\\"')
            return f'{target} "{escaped}"'
        return target

    def convert_img(self, el, text, parent_tags):
        alt = str(el.get("alt") or "")
        src = str(el.get("src") or "")
        if not src:
            return alt
        return f"![{alt}]({self._destination(src, el.get('title'))})"

    def convert_iframe(self, el, text, parent_tags):
        src = el.get("src")
        if not src:
            return ""
        label = el.get("title") or "Embedded content"
        return f"\n\n[{label}]({self._destination(str(src), None)})\n\n"

    def render_references(self) -> str:
        return "\n".join(f"[{number}]: {href}" for number, href in enumerate(self.references, 1))

    # blocks

    def convert_hr(self, el, text, parent_tags):
        return f"\n\n{self.profile.formatting.hr_style or '---'}\n\n"

    def convert_pre(self, el, text, parent_tags):
        if not text:
            return ""
        code = text.strip("\n")
        if self.profile.emission.code_block_style is CodeBlockStyle.INDENTED:
            indented = "\n".join(f"    {line}" if line else "" for line in code.split("\n"))
            return f"\n\n{indented}\n\n"
        fence = self.profile.emission.fence or "```"
        language = self._code_language(el) if self.profile.formatting.code_block_syntax else ""
        return f"\n\n{fence}{language}\n{code}\n{fence}\n\n"

    @staticmethod
    def _code_language(el: Tag) -> str:
        candidates = [el]
        code = el.find("code")
        if isinstance(code, Tag):
            candidates.append(code)
        for candidate in candidates:
            for css_class in candidate.get("class") or ():
                match = _LANGUAGE_CLASS_RE.match(css_class)
                if match:
                    return match.group(1)
        return ""

    # tables degrade to plain rows when the flavor has none

    def convert_table(self, el, text, parent_tags):
        if self.capabilities.tables:
            return super().convert_table(el, text, parent_tags)
        return f"\n\n{text.strip()}\n\n"

    def convert_tr(self, el, text, parent_tags):
        if self.capabilities.tables:
            return super().convert_tr(el, text, parent_tags)
        row = " ".join(text.split())
        return f"{row}\n\n" if row else ""

    def convert_td(self, el, text, parent_tags):
        if self.capabilities.tables:
            return super().convert_td(el, text, parent_tags)
        return f" {text.strip()} "

    def convert_th(self, el, text, parent_tags):
        if self.capabilities.tables:
            return super().convert_th(el, text, parent_tags)
        return self._inline(f" {text.strip()} ", self.profile.emission.strong_delimiter, parent_tags)


def _escaped_literal(converter: ProfileMarkdownConverter, node) -> str:
    text = node.get_text(" ") if isinstance(node, Tag) else str(node)
    return converter.escape(" ".join(text.split()), set())


def emit_markdown(soup: BeautifulSoup, profile: ConversionProfile) -> tuple[str, list[str]]:
    """Emit Markdown for *soup*. Fragments that fail to convert become escaped text."""

    converter = ProfileMarkdownConverter(profile)
    warnings: list[str] = []
    root = content_root(soup)
    try:
        body = converter.convert_soup(root)
    except (RecursionError, ValueError, TypeError, AttributeError):
        converter.references.clear()
        parts: list[str] = []
        for child in list(root.children):
            if isinstance(child, NavigableString):
                parts.append(_escaped_literal(converter, child))
                continue
            try:
                parts.append(converter.convert_soup(child))
            except (RecursionError, ValueError, TypeError, AttributeError):
                warnings.append(f"FRAGMENT_ESCAPED:{child.name}")
                parts.append(_escaped_literal(converter, child))
        body = "\n\n".join(part.strip() for part in parts if part.strip())

    if converter.references:
        body = f"{body.rstrip()}\n\n{converter.render_references()}"
    return body, warnings


__all__ = [
    "FlavorCapabilities",
    "ProfileMarkdownConverter",
    "capabilities_for",
    "emit_markdown",
]
