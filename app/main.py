from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from app.realtime import router as realtime_router
from app.web import router as web_router
from logging_config import configure_logging
from services.monitor import build_monitor
from settings import Settings, get_settings


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    configure_logging()
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        monitor = build_monitor(settings)
        app.state.monitor = monitor
        await monitor.start()
        try:
            yield
        finally:
            await monitor.stop()

    app = FastAPI(
        title="Temperature Monitor",
        description="Watches a temperature file and streams dual-unit readings to clients.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.include_router(realtime_router)
    app.include_router(web_router)
    return app


app = create_app()
