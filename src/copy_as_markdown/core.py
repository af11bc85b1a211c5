from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from . import __version__
from .config import AppConfig
from .errors import ERROR_CODES, ConversionError
from .logging import BatchSummary, HistoryEntry, HistoryLogger
from .matching import ProfileMatcher
from .models import (
    BatchConversionResult,
    BatchExportOptions,
    BatchItem,
    BatchItemResult,
    BatchMode,
    ConversionProfile,
    DocumentMetadata,
    LinkStyle,
    MarkdownDocument,
    NamingPattern,
    NamingPreferences,
    PageContext,
    PageMetadata,
)
from .naming import FileNameContext, generate_file_name, validate_template
from .packaging import BatchExporter
from .page import parse_html
from .profiles import ProfileCollection
from .stages import (
    add_table_of_contents,
    apply_content_filters,
    apply_image_policy,
    apply_link_policy,
    capabilities_for,
    emit_markdown,
    normalize_headings,
    render_front_matter,
    text_length,
    tidy_markdown,
    wrap_markdown,
)
from .stages.filters import content_root
from .urls import is_restricted_url
from .utils import content_checksum, normalize_newlines, utf8_size

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
FALLBACK_FILE_NAME = "document"
COMBINED_FILE_NAME = "combined-pages.md"
COMBINED_SEPARATOR = "\n\n---\n\n"

Clock = Callable[[], float]


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, timezone.utc).strftime(ISO_FORMAT)


@dataclass(slots=True)
class _PipelineState:
    profile: ConversionProfile
    metadata: PageMetadata
    timestamp: float
    warnings: list[str] = field(default_factory=list)
    word_count: int = 0
    image_count: int = 0
    link_count: int = 0


class ConversionService:
    """Runs the conversion pipeline for single pages and batches."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        history: HistoryLogger | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._config = config or AppConfig()
        self._history = history
        self._clock = clock
        self._matcher = ProfileMatcher()

    # profile selection

    def resolve_profile(self, profiles: ProfileCollection, profile_id: str | None) -> ConversionProfile:
        if profile_id is None:
            return profiles.default
        profile = profiles.get(profile_id)
        if profile is None:
            raise ConversionError("PROFILE_NOT_FOUND", f"Profile {profile_id} not found")
        return profile

    def select_profile(self, profiles: ProfileCollection, context: PageContext) -> ConversionProfile:
        return self._matcher.find_matching_profile(profiles.profiles, context) or profiles.default

    # single page

    def convert(
        self,
        html: str,
        profile: ConversionProfile,
        metadata: PageMetadata | None = None,
        *,
        naming: NamingPreferences | None = None,
    ) -> MarkdownDocument:
        metadata = metadata or PageMetadata()
        start = time.perf_counter()
        try:
            self._enforce_size_limit(html)
            document = self._run_pipeline(html, profile, metadata, naming or self._config.naming.preferences())
        except ConversionError as exc:
            self._record(metadata, profile, start, error=exc)
            raise
        except (ValueError, TypeError, AttributeError, KeyError, RecursionError) as exc:
            error = ConversionError("CONVERSION_FAILED", f"Conversion failed: {exc}")
            self._record(metadata, profile, start, error=error)
            raise error from exc
        self._record(metadata, profile, start, document=document)
        return document

    def _run_pipeline(
        self,
        html: str,
        profile: ConversionProfile,
        metadata: PageMetadata,
        naming: NamingPreferences,
    ) -> MarkdownDocument:
        state = _PipelineState(profile=profile, metadata=metadata, timestamp=self._clock())
        soup = parse_html(html)

        state.warnings.extend(apply_content_filters(soup, profile.content_filters))
        self._check_length(soup, state)
        normalize_headings(soup, profile.content_filters.max_heading_level)
        state.image_count = apply_image_policy(
            soup, profile.image_handling, self._image_base_url(profile, metadata)
        )
        state.link_count, link_warnings = apply_link_policy(
            soup, profile.link_handling, metadata.url or None
        )
        state.warnings.extend(link_warnings)
        state.word_count = len(content_root(soup).get_text(" ").split())

        body, emit_warnings = emit_markdown(soup, profile)
        state.warnings.extend(emit_warnings)
        body = tidy_markdown(body)
        body = wrap_markdown(body, profile.effective_line_width)
        if profile.output_format.add_table_of_contents:
            body = add_table_of_contents(body, profile.emission.bullet_list_marker or "-")

        document_metadata = self._document_metadata(state)
        content = body
        if profile.output_format.add_metadata and capabilities_for(profile.markdown_flavor).front_matter:
            front_matter = render_front_matter(document_metadata)
            content = f"{front_matter}\n{body}" if body else front_matter
        content = normalize_newlines(content)

        file_name = self._file_name(metadata, naming, state)
        return MarkdownDocument(
            content=content,
            file_name=file_name,
            size_bytes=utf8_size(content),
            metadata=document_metadata,
            generated_at=state.timestamp,
            checksum=content_checksum(content),
            warnings=tuple(state.warnings),
        )

    def _enforce_size_limit(self, html: str) -> None:
        limit = max(1, self._config.runtime.max_html_size_mb) * 1024 * 1024
        if utf8_size(html or "") > limit:
            raise ConversionError("SIZE_LIMIT", "Page HTML exceeds configured limit")

    @staticmethod
    def _check_length(soup, state: _PipelineState) -> None:
        minimum = state.profile.content_filters.min_content_length
        if minimum <= 0:
            return
        length = text_length(soup)
        if length < minimum:
            state.warnings.append(f"SHORT_CONTENT:{length}<{minimum}")

    @staticmethod
    def _image_base_url(profile: ConversionProfile, metadata: PageMetadata) -> str | None:
        links = profile.link_handling
        if metadata.url and links.convert_relative_urls and links.style is not LinkStyle.RELATIVE:
            return metadata.url
        return None

    def _document_metadata(self, state: _PipelineState) -> DocumentMetadata:
        metadata = state.metadata
        return DocumentMetadata(
            title=metadata.title,
            url=metadata.url,
            converted_at=_iso(state.timestamp),
            profile=state.profile.name,
            converter_version=__version__,
            author=metadata.author,
            description=metadata.description,
            publish_date=metadata.publish_date,
            word_count=state.word_count,
            image_count=state.image_count,
            link_count=state.link_count,
            image_max_width=state.profile.image_handling.max_width,
        )

    def _file_name(
        self, metadata: PageMetadata, naming: NamingPreferences, state: _PipelineState
    ) -> str:
        pattern = NamingPattern(naming.pattern)
        template = naming.custom_template
        if pattern is NamingPattern.CUSTOM_PREFIX and template:
            validation = validate_template(template)
            if not validation.valid:
                state.warnings.extend(f"INVALID_TEMPLATE:{error}" for error in validation.errors)
                template = None
        context = FileNameContext(title=metadata.title, url=metadata.url, timestamp=state.timestamp)
        name = generate_file_name(pattern, template, context)
        return f"{name or FALLBACK_FILE_NAME}.md"

    def _record(
        self,
        metadata: PageMetadata,
        profile: ConversionProfile,
        start: float,
        *,
        document: MarkdownDocument | None = None,
        error: ConversionError | None = None,
    ) -> None:
        if self._history is None:
            return
        self._history.append(
            HistoryEntry(
                id=uuid.uuid4().hex,
                url=metadata.url,
                title=metadata.title,
                timestamp=self._clock(),
                profile_used=profile.id,
                size_bytes=document.size_bytes if document else 0,
                duration_ms=(time.perf_counter() - start) * 1000,
                success=error is None,
                error_code=error.code if error else None,
                error_message=str(error) if error else None,
                warnings=list(document.warnings) if document else [],
            )
        )

    # batches

    def convert_batch(
        self,
        items: Sequence[BatchItem],
        profile: ConversionProfile,
        *,
        mode: BatchMode = BatchMode.SEPARATE,
        naming: NamingPreferences | None = None,
        export_options: BatchExportOptions | None = None,
    ) -> BatchConversionResult:
        if not items:
            raise ConversionError("NO_ITEMS", "No pages selected")
        naming = naming or self._config.naming.preferences()
        results = [self._convert_item(item, profile, naming) for item in items]
        documents = [result.document for result in results if result.document is not None]
        batch = BatchConversionResult(
            mode=mode,
            results=results,
            success_count=sum(1 for result in results if result.success),
            failure_count=sum(1 for result in results if not result.success),
        )
        if mode is BatchMode.COMBINED and documents:
            batch.combined = self.combine(documents)
        elif mode is BatchMode.ZIP and documents:
            exporter = BatchExporter(export_options or self._config.export.options())
            exporter.add_multiple_conversions(documents, naming)
            batch.archive = exporter.generate_zip()
        return batch

    def _convert_item(
        self, item: BatchItem, profile: ConversionProfile, naming: NamingPreferences
    ) -> BatchItemResult:
        restricted, reason = is_restricted_url(item.metadata.url)
        if restricted:
            return BatchItemResult(
                id=item.id,
                success=False,
                error_code="RESTRICTED_PAGE",
                error_message=reason or "Cannot convert restricted page",
            )
        try:
            document = self.convert(item.html, profile, item.metadata, naming=naming)
        except ConversionError as exc:
            return BatchItemResult(
                id=item.id, success=False, error_code=exc.code, error_message=str(exc)
            )
        return BatchItemResult(id=item.id, success=True, document=document)

    def combine(self, documents: Sequence[MarkdownDocument]) -> MarkdownDocument:
        if not documents:
            raise ConversionError("NO_ITEMS", "Nothing to combine")
        content = normalize_newlines(
            COMBINED_SEPARATOR.join(document.content.strip("\n") for document in documents)
        )
        first = documents[0]
        warnings = tuple(warning for document in documents for warning in document.warnings)
        return MarkdownDocument(
            content=content,
            file_name=COMBINED_FILE_NAME,
            size_bytes=utf8_size(content),
            metadata=DocumentMetadata(
                title="Combined pages",
                url="",
                converted_at=_iso(self._clock()),
                profile=first.metadata.profile,
                converter_version=__version__,
                word_count=sum(document.metadata.word_count for document in documents),
                image_count=sum(document.metadata.image_count for document in documents),
                link_count=sum(document.metadata.link_count for document in documents),
            ),
            generated_at=self._clock(),
            checksum=content_checksum(content),
            warnings=warnings,
        )


def summarize(result: BatchConversionResult) -> BatchSummary:
    summary = BatchSummary(
        total=len(result.results),
        successes=result.success_count,
        failures=result.failure_count,
    )
    for item in result.results:
        if item.document is not None:
            summary.add_warnings(item.document.warnings)
    return summary


__all__ = [
    "ConversionError",
    "ConversionService",
    "ERROR_CODES",
    "summarize",
]
