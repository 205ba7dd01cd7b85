from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api.router import router
from app.core.config import settings
from app.core.database import db
from app.core.storage import storage
from app.repositories.cache.repository import CacheRepository
from app.workers.fetcher import close_http_client


def _configure_logging() -> None:
    """Configure the ``app`` logger namespace.

    ``logging.basicConfig`` is a no-op when the root logger already has
    handlers (uvicorn installs its own before the lifespan runs), so the
    ``app`` namespace gets its own handler and does not propagate.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    app_log = logging.getLogger("app")
    app_log.setLevel(level)
    if not app_log.handlers:
        app_log.addHandler(handler)
    app_log.propagate = False


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ── Startup ──────────────────────────────────────────────────────
    await db.connect()
    await CacheRepository.from_db(db).ensure_indexes()
    storage.connect()
    yield
    # ── Shutdown ─────────────────────────────────────────────────────
    await close_http_client()
    storage.disconnect()
    await db.disconnect()


app = FastAPI(
    title="URL Cache",
    description="Keeps a revalidated copy of remote HTTP resources in S3.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health", tags=["health"])
async def health() -> JSONResponse:
    """Liveness plus a metadata-store ping."""
    if await db.ping():
        return JSONResponse(status_code=200, content={"status": "ok"})
    return JSONResponse(status_code=503, content={"status": "degraded"})
