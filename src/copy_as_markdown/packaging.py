"""Batch packaging of converted documents into a single zip archive."""

from __future__ import annotations

import html
import time
import zipfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path

from .errors import PackagingError
from .models import (
    BatchExportOptions,
    BatchExportResult,
    IndexFormat,
    MarkdownDocument,
    NamingPreferences,
    OrganizeBy,
)
from .naming import FileNameContext, format_date, generate_file_name, sanitize_file_name, unique_file_name
from .urls import registrable_domain
from .utils import atomic_write_bytes

UNKNOWN_FOLDER = "unknown"
INDEX_TITLE = "Copy as Markdown - Batch Export"
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    path: str
    folder: str
    title: str
    url: str
    domain: str
    timestamp: float


def _zip_time(timestamp: float) -> tuple[int, int, int, int, int, int]:
    moment = datetime.fromtimestamp(timestamp)
    stamp = (moment.year, moment.month, moment.day, moment.hour, moment.minute, moment.second)
    return max(stamp, _ZIP_EPOCH)


def _markdown_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def _markdown_target(target: str) -> str:
    if any(char in target for char in " ()<>"):
        return f"<{target.replace('<', '%3C').replace('>', '%3E')}>"
    return target


class BatchExporter:
    """Accumulates converted documents and packs them into one archive.

    Documents are added with :meth:`add_conversion`; :meth:`generate_zip`
    finalizes the archive. Call :meth:`reset` to reuse the exporter for a
    new batch.
    """

    def __init__(
        self,
        options: BatchExportOptions | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._options = options or BatchExportOptions()
        self._clock = clock
        self._files: dict[str, str] = {}
        self._entries: list[ArchiveEntry] = []
        self._finalized = False

    @property
    def options(self) -> BatchExportOptions:
        return self._options

    @property
    def entries(self) -> list[ArchiveEntry]:
        return list(self._entries)

    def reset(self) -> None:
        self._files.clear()
        self._entries.clear()
        self._finalized = False

    def add_conversion(
        self,
        document: MarkdownDocument,
        naming: NamingPreferences | None = None,
        custom_filename: str | None = None,
    ) -> str:
        """Add one document and return its path inside the archive."""

        if self._finalized:
            raise PackagingError("Archive already generated; reset the exporter first")
        naming = naming or NamingPreferences()
        metadata = document.metadata
        timestamp = document.generated_at
        if custom_filename:
            name = sanitize_file_name(custom_filename)
        else:
            context = FileNameContext(title=metadata.title, url=metadata.url, timestamp=timestamp)
            name = generate_file_name(naming.pattern, naming.custom_template, context)
        name = name or "document"
        if not name.lower().endswith(".md"):
            name = f"{name}.md"

        folder = self._folder(metadata.url, timestamp)
        path = unique_file_name(f"{folder}/{name}" if folder else name, self._files)
        self._files[path] = document.content
        self._entries.append(
            ArchiveEntry(
                path=path,
                folder=folder,
                title=metadata.title or "Untitled",
                url=metadata.url,
                domain=registrable_domain(metadata.url) or UNKNOWN_FOLDER,
                timestamp=timestamp,
            )
        )
        return path

    def add_multiple_conversions(
        self,
        documents: Iterable[MarkdownDocument],
        naming: NamingPreferences | None = None,
    ) -> list[str]:
        return [self.add_conversion(document, naming) for document in documents]

    def _folder(self, url: str, timestamp: float) -> str:
        organize_by = self._options.organize_by
        if organize_by is OrganizeBy.DOMAIN:
            domain = registrable_domain(url)
            return sanitize_file_name(domain) if domain else UNKNOWN_FOLDER
        if organize_by is OrganizeBy.DATE:
            return format_date(datetime.fromtimestamp(timestamp))
        return ""

    # index

    def _groups(self) -> dict[str, list[ArchiveEntry]]:
        groups: dict[str, list[ArchiveEntry]] = {}
        for entry in self._entries:
            groups.setdefault(entry.folder, []).append(entry)
        return groups

    def _generated_label(self) -> str:
        return datetime.fromtimestamp(self._clock()).strftime("%Y-%m-%d %H:%M:%S")

    def render_markdown_index(self) -> str:
        lines = [
            f"# {INDEX_TITLE}",
            "",
            f"**Generated:** {self._generated_label()}",
            f"**Total Files:** {len(self._entries)}",
            "",
            "## Contents",
            "",
        ]
        flat = self._options.organize_by is OrganizeBy.FLAT
        for folder, entries in self._groups().items():
            if not flat:
                lines.extend([f"### {folder}", ""])
            for entry in entries:
                item = f"- [{_markdown_label(entry.title)}](./{_markdown_target(entry.path)})"
                if entry.url:
                    item += f" - [Original]({_markdown_target(entry.url)})"
                lines.append(item)
            lines.append("")
        return "\n".join(lines)

    def render_html_index(self) -> str:
        lines = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{html.escape(INDEX_TITLE)}</title>",
            "</head>",
            "<body>",
            f"<h1>{html.escape(INDEX_TITLE)}</h1>",
            f"<p><strong>Generated:</strong> {html.escape(self._generated_label())}</p>",
            f"<p><strong>Total Files:</strong> {len(self._entries)}</p>",
        ]
        flat = self._options.organize_by is OrganizeBy.FLAT
        for folder, entries in self._groups().items():
            if not flat:
                lines.append(f"<h2>{html.escape(folder)}</h2>")
            lines.append("<ul>")
            for entry in entries:
                item = f'<li><a href="./{html.escape(entry.path)}">{html.escape(entry.title)}</a>'
                if entry.url:
                    item += f' - <a href="{html.escape(entry.url)}" target="_blank">Original</a>'
                lines.append(item + "</li>")
            lines.append("</ul>")
        lines.extend(["</body>", "</html>", ""])
        return "\n".join(lines)

    # archive

    def generate_zip(self) -> BatchExportResult:
        options = self._options
        index: str | None = None
        index_name = "index.md"
        if options.include_index and self._entries:
            if options.index_format is IndexFormat.HTML:
                index, index_name = self.render_html_index(), "index.html"
            else:
                index = self.render_markdown_index()

        buffer = BytesIO()
        try:
            with zipfile.ZipFile(
                buffer,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=min(9, max(0, options.compression_level)),
            ) as archive:
                for entry in self._entries:
                    self._write(archive, entry.path, self._files[entry.path], entry.timestamp)
                if index is not None:
                    self._write(archive, index_name, index, self._clock())
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            raise PackagingError(f"Failed to build archive: {exc}") from exc

        self._finalized = True
        data = buffer.getvalue()
        return BatchExportResult(
            archive_bytes=data,
            file_count=len(self._entries),
            total_size=len(data),
            index=index,
        )

    @staticmethod
    def _write(archive: zipfile.ZipFile, name: str, content: str, timestamp: float) -> None:
        info = zipfile.ZipInfo(name, date_time=_zip_time(timestamp))
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        archive.writestr(info, content.encode("utf-8"), compresslevel=archive.compresslevel)

    def write_archive(self, path: Path) -> BatchExportResult:
        result = self.generate_zip()
        try:
            atomic_write_bytes(path, result.archive_bytes)
        except OSError as exc:
            raise PackagingError(f"Failed to write archive {path}: {exc}") from exc
        return result


__all__ = ["ArchiveEntry", "BatchExporter", "UNKNOWN_FOLDER"]
