"""FastAPI dependency providers for application services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..config import AppConfig
from ..core import ConversionError, ConversionService
from ..profiles import ProfileCollection

_STATUS_BY_CODE = {
    "SIZE_LIMIT": 413,
    "PROFILE_NOT_FOUND": 404,
}


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(status_code=503, detail="CONFIG_UNAVAILABLE")
    return config


def get_service(request: Request) -> ConversionService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SERVICE_UNAVAILABLE")
    return service


def get_profiles(request: Request) -> ProfileCollection:
    profiles = getattr(request.app.state, "profiles", None)
    if profiles is None:
        raise HTTPException(status_code=503, detail="PROFILES_UNAVAILABLE")
    return profiles


def http_error(exc: ConversionError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_CODE.get(exc.code, 400), detail=exc.code)


__all__ = ["get_config", "get_profiles", "get_service", "http_error"]
