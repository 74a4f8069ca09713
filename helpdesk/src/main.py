"""
Helpdesk - Application Entry Point
===================================
FastAPI application factory.  Registers the API routes, opens CORS to
every origin, maps pipeline errors to JSON responses, and manages the
``RAGEngine`` over the application lifespan.

On startup (shared index mode) the index is built once so the first
request does not pay for it.  A startup build failure — e.g. the
embedding service being down — is logged and retried by the first
request instead of preventing the server from starting.

Run:
    helpdesk-server                       # console script
    python -m helpdesk.src.main           # same thing
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpdesk.config.settings import Settings, settings
from helpdesk.src.api.routes import router
from helpdesk.src.core.exceptions import HelpdeskError
from helpdesk.src.core.rag_engine import RAGEngine
from helpdesk.src.utils.logger import get_logger, quiet_third_party

logger = get_logger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Flatten FastAPI's error list into one readable sentence."""
    parts: list[str] = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        message = err.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def create_app(config: Settings | None = None, engine: RAGEngine | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    config
        Settings override.  Defaults to the module-level ``settings``.
    engine
        Pre-wired engine (tests inject one built on LangChain fakes).
        When omitted, the Gemini-backed engine is created at startup.
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = engine if engine is not None else RAGEngine.from_settings(config)
        try:
            await app.state.engine.warm_up()
        except HelpdeskError as exc:
            logger.warning("Startup index build failed (%s) — will retry on first request.", exc.detail)
        yield
        app.state.engine.close()

    app = FastAPI(title="Helpdesk RAG", lifespan=lifespan)
    app.state.settings = config
    if engine is not None:
        app.state.engine = engine

    app.add_middleware(CORSMiddleware, allow_origins=config.CORS_ALLOW_ORIGINS, allow_methods=["*"], allow_headers=["*"])
    app.include_router(router)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _describe_validation_error(exc)
        logger.info("Rejected request to %s: %s", request.url.path, message)
        return JSONResponse(status_code=400, content={"message": message})

    @app.exception_handler(HelpdeskError)
    async def _helpdesk_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
        if exc.status_code < 500:
            return JSONResponse(status_code=exc.status_code, content={"message": exc.message})
        logger.error("Request to %s failed: %s (%s)", request.url.path, exc.message, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "error": exc.detail})

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on ``settings.PORT``."""
    quiet_third_party()
    logger.info("Listening on %s:%d", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
