from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from .. import __version__
from ..config import AppConfig, load_config
from ..core import ConversionService
from ..logging import HistoryLogger
from ..profiles import load_collection
from ..settings import Settings, get_settings
from .routers import convert, health, profiles


class LocalAPIDisabled(RuntimeError):
    """Raised when the local API is started while ``enable_local_api`` is off."""


def create_app(
    config_path: Path | None = None,
    *,
    require_enabled: bool = True,
    settings: Settings | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    config = _prepare_config(settings, config_path)
    if require_enabled and not config.runtime.enable_local_api:
        raise LocalAPIDisabled("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title="Copy as Markdown", version=__version__)
    app.state.config = config
    app.state.service = ConversionService(config, history=HistoryLogger(config.runtime.history_path))
    app.state.profiles = load_collection(config.runtime.profiles_file)

    app.include_router(health.router)
    app.include_router(convert.router)
    app.include_router(profiles.router)
    return app


def _prepare_config(settings: Settings, config_path: Path | None) -> AppConfig:
    config = load_config(config_path or settings.config_path)
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    return config


__all__ = ["create_app"]
