from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from projectproof.api.routes import router as api_router
from projectproof.config import get_settings
from projectproof.db.init import ensure_data_directories, init_database
from projectproof.llm.providers import ProviderPool
from projectproof.logging_config import configure_logging
from projectproof.storage.client import build_storage_client

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    ensure_data_directories()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Built once per process and shared by every run.
    app.state.storage = build_storage_client(settings)
    try:
        app.state.provider = ProviderPool(settings).default()
    except ValueError as exc:
        logger.warning("Analysis provider unavailable: %s", exc)
        app.state.provider = None

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "analysis_provider": settings.analysis_provider if app.state.provider else None,
                "storage_backend": settings.storage_backend,
            }
        )

    app.include_router(api_router)
    if settings.storage_backend == "local":
        app.mount("/media", StaticFiles(directory=str(settings.upload_dir)), name="media")
    return app
