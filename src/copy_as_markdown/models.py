"""Domain models for page-to-Markdown conversion."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class MarkdownFlavor(str, Enum):
    COMMONMARK = "commonmark"
    GFM = "gfm"
    MINIMAL = "minimal"
    GITHUB = "github"
    GITLAB = "gitlab"
    REDDIT = "reddit"
    DISCORD = "discord"


class ImageStrategy(str, Enum):
    LINK = "link"
    SKIP = "skip"
    DOWNLOAD = "download"
    BASE64 = "base64"


class LinkStyle(str, Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    REFERENCE = "reference"
    REMOVE = "remove"


class HeadingStyle(str, Enum):
    ATX = "atx"
    SETEXT = "setext"


class CodeBlockStyle(str, Enum):
    FENCED = "fenced"
    INDENTED = "indented"


class MatchType(str, Enum):
    ANY = "any"
    ALL = "all"


class MatchMode(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"


class RuleType(str, Enum):
    DOMAIN = "domain"
    URL_PATTERN = "url_pattern"
    TITLE = "title"
    META_TAG = "meta_tag"
    SELECTOR = "selector"


class NamingPattern(str, Enum):
    TAB_TITLE = "tab_title"
    DOMAIN_TITLE = "domain_title"
    TIMESTAMP = "timestamp"
    CUSTOM_PREFIX = "custom_prefix"


class OrganizeBy(str, Enum):
    DOMAIN = "domain"
    DATE = "date"
    FLAT = "flat"


class IndexFormat(str, Enum):
    MARKDOWN = "markdown"
    HTML = "html"


class BatchMode(str, Enum):
    SEPARATE = "separate"
    COMBINED = "combined"
    ZIP = "zip"


@dataclass(frozen=True, slots=True)
class ImageHandling:
    strategy: ImageStrategy = ImageStrategy.LINK
    max_width: int | None = None
    lazy_load_handling: bool = True
    fallback_alt_text: str = "Image"


@dataclass(frozen=True, slots=True)
class LinkHandling:
    style: LinkStyle = LinkStyle.ABSOLUTE
    remove_tracking_params: bool = True
    convert_relative_urls: bool = True
    open_in_new_tab: bool = False
    follow_redirects: bool = False
    shorten_urls: bool = False


@dataclass(frozen=True, slots=True)
class ContentFilters:
    include_css: tuple[str, ...] = ()
    exclude_css: tuple[str, ...] = ("script", "style", "noscript")
    include_hidden: bool = False
    include_comments: bool = False
    include_scripts: bool = False
    include_iframes: bool = False
    max_heading_level: int = 6
    min_content_length: int = 0


@dataclass(frozen=True, slots=True)
class FormattingOptions:
    line_width: int | None = None
    bold_style: str = "**"
    italic_style: str = "*"
    hr_style: str = "---"
    list_indentation: int = 2
    code_block_syntax: bool = True
    table_alignment: bool = True


@dataclass(frozen=True, slots=True)
class EmissionOptions:
    """Emission knobs carried by every profile."""

    heading_style: HeadingStyle = HeadingStyle.ATX
    bullet_list_marker: str = "-"
    code_block_style: CodeBlockStyle = CodeBlockStyle.FENCED
    fence: str = "```"
    em_delimiter: str = "*"
    strong_delimiter: str = "**"
    link_style: str = "inlined"


@dataclass(frozen=True, slots=True)
class OutputFormat:
    add_metadata: bool = True
    add_table_of_contents: bool = False
    add_footnotes: bool = True
    wrap_line_length: int = 0
    preserve_newlines: bool = False


@dataclass(frozen=True, slots=True)
class ProfileMatchRule:
    type: RuleType
    pattern: str
    match_mode: MatchMode = MatchMode.CONTAINS


@dataclass(frozen=True, slots=True)
class ProfileMatchRules:
    enabled: bool = False
    priority: int = 0
    match_type: MatchType = MatchType.ANY
    rules: tuple[ProfileMatchRule, ...] = ()


@dataclass(frozen=True, slots=True)
class ConversionProfile:
    id: str
    name: str
    markdown_flavor: MarkdownFlavor = MarkdownFlavor.COMMONMARK
    image_handling: ImageHandling = field(default_factory=ImageHandling)
    link_handling: LinkHandling = field(default_factory=LinkHandling)
    content_filters: ContentFilters = field(default_factory=ContentFilters)
    formatting: FormattingOptions = field(default_factory=FormattingOptions)
    emission: EmissionOptions = field(default_factory=EmissionOptions)
    output_format: OutputFormat = field(default_factory=OutputFormat)
    match_rules: ProfileMatchRules | None = None
    is_default: bool = False
    is_built_in: bool = False
    created_at: int = 0
    updated_at: int = 0

    @property
    def effective_line_width(self) -> int:
        if self.formatting.line_width is not None:
            return max(0, self.formatting.line_width)
        return max(0, self.output_format.wrap_line_length)


@dataclass(frozen=True, slots=True)
class PageContext:
    """Read-only view of a page used for profile matching."""

    url: str
    title: str
    domain: str | None = None
    meta_tags: Mapping[str, str] = field(default_factory=dict)
    has_selector: Callable[[str], bool] | None = None


@dataclass(frozen=True, slots=True)
class PageMetadata:
    """Metadata supplied alongside extracted page HTML."""

    title: str = ""
    url: str = ""
    author: str | None = None
    description: str | None = None
    publish_date: str | None = None


@dataclass(frozen=True, slots=True)
class NamingPreferences:
    pattern: NamingPattern = NamingPattern.TAB_TITLE
    custom_template: str | None = None


@dataclass(frozen=True, slots=True)
class DocumentMetadata:
    title: str
    url: str
    converted_at: str
    profile: str
    converter_version: str
    author: str | None = None
    description: str | None = None
    publish_date: str | None = None
    word_count: int = 0
    image_count: int = 0
    link_count: int = 0
    image_max_width: int | None = None


@dataclass(frozen=True, slots=True)
class MarkdownDocument:
    content: str
    file_name: str
    size_bytes: int
    metadata: DocumentMetadata
    generated_at: float = field(default_factory=time.time)
    checksum: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BatchItem:
    """One page handed to a batch conversion."""

    id: str
    html: str
    metadata: PageMetadata


@dataclass(frozen=True, slots=True)
class BatchItemResult:
    id: str
    success: bool
    document: MarkdownDocument | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True, slots=True)
class BatchExportOptions:
    organize_by: OrganizeBy = OrganizeBy.DOMAIN
    include_index: bool = True
    index_format: IndexFormat = IndexFormat.MARKDOWN
    compression_level: int = 6


@dataclass(frozen=True, slots=True)
class BatchExportResult:
    archive_bytes: bytes
    file_count: int
    total_size: int
    index: str | None = None


@dataclass(slots=True)
class BatchConversionResult:
    """Aggregate results for a multi-page conversion."""

    mode: BatchMode
    results: list[BatchItemResult]
    success_count: int = 0
    failure_count: int = 0
    combined: MarkdownDocument | None = None
    archive: BatchExportResult | None = None


__all__ = [
    "BatchConversionResult",
    "BatchExportOptions",
    "BatchExportResult",
    "BatchItem",
    "BatchItemResult",
    "BatchMode",
    "CodeBlockStyle",
    "ContentFilters",
    "ConversionProfile",
    "DocumentMetadata",
    "EmissionOptions",
    "FormattingOptions",
    "HeadingStyle",
    "ImageHandling",
    "ImageStrategy",
    "IndexFormat",
    "LinkHandling",
    "LinkStyle",
    "MarkdownDocument",
    "MarkdownFlavor",
    "MatchMode",
    "MatchType",
    "NamingPattern",
    "NamingPreferences",
    "OrganizeBy",
    "OutputFormat",
    "PageContext",
    "PageMetadata",
    "ProfileMatchRule",
    "ProfileMatchRules",
    "RuleType",
]
