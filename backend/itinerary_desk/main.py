from __future__ import annotations

import logging
import os
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from itinerary_desk.core.config import Settings, get_settings
from itinerary_desk.core.context import AppContext, Mailer, PdfRenderer
from itinerary_desk.core.db import build_engine, build_session_factory
from itinerary_desk.core.logging import init_logging
from itinerary_desk.integrations.pdf_renderer import PlaywrightPdfRenderer
from itinerary_desk.integrations.resend_mailer import build_mailer
from itinerary_desk.integrations.storage import LocalObjectStorage, ObjectStorage, build_storage
from itinerary_desk.routers.admin import router as admin_router
from itinerary_desk.routers.itineraries import router as itineraries_router
from itinerary_desk.routers.public import router as public_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    storage: ObjectStorage | None = None,
    mailer: Mailer | None = None,
    pdf_renderer: PdfRenderer | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    init_logging(settings.log_level)

    engine = build_engine(settings.database_url)
    context = AppContext(
        settings=settings,
        session_factory=build_session_factory(engine),
        storage=storage or build_storage(settings),
        mailer=mailer or build_mailer(settings),
        pdf_renderer=pdf_renderer or PlaywrightPdfRenderer(),
    )

    app = FastAPI(title=f"{settings.brand_name} API")
    app.state.context = context
    app.state.engine = engine
    app.include_router(public_router, prefix="/api", tags=["public"])
    app.include_router(itineraries_router, prefix="/api", tags=["itineraries"])
    app.include_router(admin_router, prefix="/api", tags=["admin"])

    if isinstance(context.storage, LocalObjectStorage):
        # Served at the path of LOCAL_STORAGE_BASE_URL.
        files_path = urlparse(settings.local_storage_base_url).path.rstrip("/") or "/files"
        os.makedirs(context.storage.root, exist_ok=True)
        app.mount(files_path, StaticFiles(directory=context.storage.root), name="files")

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    logger.info("Application ready: storage=%s", settings.storage_backend)
    return app
