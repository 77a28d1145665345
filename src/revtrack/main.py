# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from revtrack.api.dependencies import get_registry
from revtrack.api.router import v1_router
from revtrack.config import get_settings
from revtrack.db.session import get_engine, get_session_factory
from revtrack.log import configure_logging
from revtrack.scm.base import AdapterError, AdapterUnavailable, EntryNotFound
from revtrack.services.scheduler import ChangesetFetchWorker
from revtrack.webhooks.forgejo import router as webhook_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown hooks."""
    settings = get_settings()
    configure_logging(settings)

    # Startup: auto-migrate in development mode
    if settings.environment == "development":
        import subprocess

        subprocess.run(["alembic", "upgrade", "head"], check=True)

    # Fail fast on enabled kinds without an adapter
    registry = get_registry()
    registry.validate_kinds(settings.enabled_scm)

    worker = None
    if settings.changeset_fetch_interval > 0:
        worker = ChangesetFetchWorker(
            get_session_factory(),
            registry,
            settings,
            settings.changeset_fetch_interval,
        )
        await worker.start()
    app.state.fetch_worker = worker

    yield

    # Shutdown: cleanup
    if worker is not None:
        await worker.stop()
    await get_engine().dispose()


app = FastAPI(
    title="Revtrack Repository Service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(v1_router, prefix="/v1")
app.include_router(webhook_router)


@app.exception_handler(AdapterError)
async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
    """Map adapter failures: missing path 404, unreachable SCM 503, else 502."""
    if isinstance(exc, EntryNotFound):
        status_code = 404
    elif isinstance(exc, AdapterUnavailable):
        status_code = 503
    else:
        status_code = 502
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe. Returns 200 if the process is running."""
    return {"status": "healthy"}


@app.get("/ready")
async def ready() -> dict[str, str]:
    """Readiness probe. Checks database connectivity."""
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return {"status": "ready"}
