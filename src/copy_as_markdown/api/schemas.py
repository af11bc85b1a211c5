from __future__ import annotations

from dataclasses import asdict

from pydantic import BaseModel, Field

from ..models import (
    BatchConversionResult,
    BatchExportOptions,
    BatchItem,
    BatchMode,
    IndexFormat,
    MarkdownDocument,
    NamingPattern,
    NamingPreferences,
    OrganizeBy,
    PageMetadata,
)


class HealthStatus(BaseModel):
    status: str
    version: str


class NamingRequest(BaseModel):
    pattern: NamingPattern = NamingPattern.TAB_TITLE
    custom_template: str | None = None

    def preferences(self) -> NamingPreferences:
        return NamingPreferences(pattern=self.pattern, custom_template=self.custom_template)


class PageRequest(BaseModel):
    html: str
    url: str = ""
    title: str = ""
    author: str | None = None
    description: str | None = None
    publish_date: str | None = None

    def metadata(self) -> PageMetadata:
        return PageMetadata(
            title=self.title,
            url=self.url,
            author=self.author,
            description=self.description,
            publish_date=self.publish_date,
        )


class ConvertRequest(PageRequest):
    profile_id: str | None = Field(default=None, description="Profile id; matched from the page when omitted")
    naming: NamingRequest | None = None


class MatchRequest(BaseModel):
    url: str
    html: str = ""
    title: str = ""


class MatchResponse(BaseModel):
    profile_id: str | None
    profile_name: str | None
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class BatchPage(PageRequest):
    id: str

    def item(self) -> BatchItem:
        return BatchItem(id=self.id, html=self.html, metadata=self.metadata())


class ExportRequest(BaseModel):
    organize_by: OrganizeBy = OrganizeBy.DOMAIN
    include_index: bool = True
    index_format: IndexFormat = IndexFormat.MARKDOWN
    compression_level: int = Field(default=6, ge=0, le=9)

    def options(self) -> BatchExportOptions:
        return BatchExportOptions(
            organize_by=self.organize_by,
            include_index=self.include_index,
            index_format=self.index_format,
            compression_level=self.compression_level,
        )


class BatchRequest(BaseModel):
    items: list[BatchPage]
    mode: BatchMode = BatchMode.SEPARATE
    profile_id: str | None = None
    naming: NamingRequest | None = None
    export: ExportRequest | None = None


class DocumentResponse(BaseModel):
    file_name: str
    content: str
    size_bytes: int
    checksum: str | None = None
    warnings: list[str] = Field(default_factory=list)
    metadata: dict[str, object] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: MarkdownDocument) -> "DocumentResponse":
        return cls(
            file_name=document.file_name,
            content=document.content,
            size_bytes=document.size_bytes,
            checksum=document.checksum,
            warnings=list(document.warnings),
            metadata=asdict(document.metadata),
        )


class BatchItemResponse(BaseModel):
    id: str
    success: bool
    document: DocumentResponse | None = None
    error_code: str | None = None
    error_message: str | None = None


class ArchiveSummary(BaseModel):
    file_count: int
    total_size: int
    index: str | None = None


class BatchResponse(BaseModel):
    mode: BatchMode
    success_count: int
    failure_count: int
    results: list[BatchItemResponse]
    combined: DocumentResponse | None = None
    archive: ArchiveSummary | None = None

    @classmethod
    def from_result(cls, result: BatchConversionResult) -> "BatchResponse":
        return cls(
            mode=result.mode,
            success_count=result.success_count,
            failure_count=result.failure_count,
            results=[
                BatchItemResponse(
                    id=item.id,
                    success=item.success,
                    document=DocumentResponse.from_document(item.document) if item.document else None,
                    error_code=item.error_code,
                    error_message=item.error_message,
                )
                for item in result.results
            ],
            combined=DocumentResponse.from_document(result.combined) if result.combined else None,
            archive=(
                ArchiveSummary(
                    file_count=result.archive.file_count,
                    total_size=result.archive.total_size,
                    index=result.archive.index,
                )
                if result.archive
                else None
            ),
        )


__all__ = [
    "ArchiveSummary",
    "BatchItemResponse",
    "BatchPage",
    "BatchRequest",
    "BatchResponse",
    "ConvertRequest",
    "DocumentResponse",
    "ExportRequest",
    "HealthStatus",
    "MatchRequest",
    "MatchResponse",
    "NamingRequest",
]
