"""Ordered conversion stages.

Each stage is independent and testable on its own; :mod:`copy_as_markdown.core`
runs them in this order: filters, headings, images, links, emitter,
wrapping, front matter.
"""

from .emitter import FlavorCapabilities, ProfileMarkdownConverter, capabilities_for, emit_markdown
from .filters import apply_content_filters, text_length
from .frontmatter import add_table_of_contents, render_front_matter
from .headings import normalize_headings
from .images import apply_image_policy
from .links import apply_link_policy
from .wrapping import tidy_markdown, wrap_markdown

__all__ = [
    "FlavorCapabilities",
    "ProfileMarkdownConverter",
    "add_table_of_contents",
    "apply_content_filters",
    "apply_image_policy",
    "apply_link_policy",
    "capabilities_for",
    "emit_markdown",
    "normalize_headings",
    "render_front_matter",
    "text_length",
    "tidy_markdown",
    "wrap_markdown",
]
