"""
FastAPI application entry point for the voice match shell.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from voicematch.backend_client import NO_ROWS_CODE, BackendNotInitializedError
from voicematch.config import get_settings
from voicematch.dependencies import get_backend_client
from voicematch.routes import pages, router
from voicematch.shell import SessionShell

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client_factory = app.dependency_overrides.get(get_backend_client, get_backend_client)
    shell = SessionShell(client_factory())
    app.state.shell = shell
    await shell.mount()
    try:
        yield
    finally:
        await shell.teardown()


async def _not_initialized(request: Request, exc: BackendNotInitializedError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def _backend_error(request: Request, exc: APIError):
    status_code = 404 if exc.code == NO_ROWS_CODE else 502
    logger.warning("Backend request failed on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Voice Match", version="0.1.0", lifespan=lifespan)
    app.add_exception_handler(BackendNotInitializedError, _not_initialized)
    app.add_exception_handler(APIError, _backend_error)
    app.include_router(pages)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()


def main():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Voice Match on %s:%s", settings.host, settings.port)
    uvicorn.run("voicematch.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
