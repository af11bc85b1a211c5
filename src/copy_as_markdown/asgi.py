"""ASGI entry point: ``uvicorn copy_as_markdown.asgi:app``."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException

from . import __version__
from .api import LocalAPIDisabled, create_app
from .settings import Settings


def build_asgi_app(settings: Settings | None = None) -> FastAPI:
    try:
        return create_app(require_enabled=True, settings=settings)
    except LocalAPIDisabled:
        disabled = FastAPI(title="Copy as Markdown", version=__version__)

        @disabled.get("/")
        async def api_disabled() -> dict[str, str]:
            raise HTTPException(
                status_code=503,
                detail="Local API disabled. Set enable_local_api = true in config.toml or CAM_ENABLE_LOCAL_API=1",
            )

        return disabled


app = build_asgi_app()
