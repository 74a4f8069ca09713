"""
Helpdesk - API Routes
======================
Thin controllers: validate the request, delegate to ``RAGEngine``,
shape the response.  No pipeline logic lives here.

    POST /api/chat   → answer a question (200 / 400 / 500)
    GET  /health     → liveness + index size

Request lifecycle for ``/api/chat``::

    Validating → Building Index → Retrieving+Generating → Responding

The pipeline runs as its own task; if the client disconnects first the
task is cancelled, which cancels any in-flight embedding or model call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import APIRouter, Depends, Request

from helpdesk.config.settings import Settings
from helpdesk.src.api.schemas import ChatRequest, ChatResponse, ErrorResponse, HealthResponse
from helpdesk.src.core.exceptions import ClientDisconnected, HelpdeskError, InternalError, RequestValidationFailed
from helpdesk.src.core.rag_engine import RAGEngine
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

router = APIRouter()


def get_engine(request: Request) -> RAGEngine:
    return request.app.state.engine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def run_until_disconnected(request: Request, work: Awaitable[T], poll_interval: float) -> T:
    """Await *work*, cancelling it if the client disconnects meanwhile."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected — cancelling in-flight pipeline.")
                task.cancel()
                raise ClientDisconnected("Client disconnected before the answer was ready")
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["chat"],
)
async def chat(payload: ChatRequest, request: Request, engine: RAGEngine = Depends(get_engine), config: Settings = Depends(get_settings)) -> ChatResponse:
    if config.REQUIRE_NON_EMPTY_HISTORY and not payload.history:
        raise RequestValidationFailed("history must be a non-empty array")

    history = [turn.model_dump() for turn in payload.history]

    try:
        answer = await run_until_disconnected(request, engine.answer(payload.input_question, history), poll_interval=config.DISCONNECT_POLL_SECONDS)
    except HelpdeskError:
        raise
    except Exception as exc:
        logger.exception("Unexpected pipeline failure.")
        raise InternalError("Internal server error", detail=str(exc) or type(exc).__name__) from exc

    return ChatResponse(content=answer)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health(engine: RAGEngine = Depends(get_engine)) -> HealthResponse:
    snapshot = engine.index_manager.snapshot
    return HealthResponse(index_mode=engine.index_manager.mode, passages=snapshot.passages if snapshot else 0)
