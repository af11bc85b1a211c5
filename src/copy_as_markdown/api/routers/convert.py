from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.concurrency import run_in_threadpool

from ...core import ConversionError, ConversionService
from ...models import BatchConversionResult, BatchMode
from ...page import build_page_context
from ...profiles import ProfileCollection
from ...utils import generate_run_id
from ..dependencies import get_profiles, get_service, http_error
from ..schemas import BatchRequest, BatchResponse, ConvertRequest, DocumentResponse

router = APIRouter(tags=["conversion"])


@router.post("/convert", summary="Convert one page", response_model=DocumentResponse)
async def convert_page(
    request: ConvertRequest,
    service: ConversionService = Depends(get_service),
    profiles: ProfileCollection = Depends(get_profiles),
) -> DocumentResponse:
    try:
        if request.profile_id:
            profile = service.resolve_profile(profiles, request.profile_id)
        else:
            context = await run_in_threadpool(build_page_context, request.html, request.url, request.title)
            profile = service.select_profile(profiles, context)
        document = await run_in_threadpool(
            service.convert,
            request.html,
            profile,
            request.metadata(),
            naming=request.naming.preferences() if request.naming else None,
        )
    except ConversionError as exc:
        raise http_error(exc) from exc
    return DocumentResponse.from_document(document)


async def _run_batch(
    request: BatchRequest, service: ConversionService, profiles: ProfileCollection, mode: BatchMode
) -> BatchConversionResult:
    try:
        profile = service.resolve_profile(profiles, request.profile_id)
        return await run_in_threadpool(
            service.convert_batch,
            [page.item() for page in request.items],
            profile,
            mode=mode,
            naming=request.naming.preferences() if request.naming else None,
            export_options=request.export.options() if request.export else None,
        )
    except ConversionError as exc:
        raise http_error(exc) from exc


@router.post("/batch", summary="Convert several pages", response_model=BatchResponse)
async def convert_batch(
    request: BatchRequest,
    service: ConversionService = Depends(get_service),
    profiles: ProfileCollection = Depends(get_profiles),
) -> BatchResponse:
    result = await _run_batch(request, service, profiles, request.mode)
    return BatchResponse.from_result(result)


@router.post("/export", summary="Convert several pages into a zip archive")
async def export_archive(
    request: BatchRequest,
    service: ConversionService = Depends(get_service),
    profiles: ProfileCollection = Depends(get_profiles),
) -> Response:
    result = await _run_batch(request, service, profiles, BatchMode.ZIP)
    if result.archive is None:
        raise HTTPException(status_code=400, detail="NO_ITEMS")
    file_name = f"{generate_run_id('markdown-export')}.zip"
    return Response(
        content=result.archive.archive_bytes,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "X-Success-Count": str(result.success_count),
            "X-Failure-Count": str(result.failure_count),
        },
    )


__all__ = ["router"]
