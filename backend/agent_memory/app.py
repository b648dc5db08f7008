"""FastAPI application setup for agent memory."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agent_memory.api.dependencies import close_memory, get_app_settings
from agent_memory.api.routes_admin import router as admin_router
from agent_memory.api.routes_ingest import router as ingest_router
from agent_memory.api.routes_memories import router as memories_router
from agent_memory.api.routes_query import router as query_router
from agent_memory.core.errors import (
    AgentMemoryError,
    NotFoundError,
    ProviderError,
    StorageError,
    ValidationError,
)
from agent_memory.core.logging import configure_logging, get_logger
from agent_memory.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

ERROR_STATUS: dict[type[AgentMemoryError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    StorageError: 500,
    ProviderError: 502,
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_app_settings()
    configure_logging(settings.log_level, settings.log_json)
    yield
    await close_memory()


app = FastAPI(
    title="Agent Memory",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.include_router(ingest_router, prefix="", tags=["sessions"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(memories_router, prefix="", tags=["memories"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(AgentMemoryError)
async def handle_memory_error(_: Request, exc: AgentMemoryError) -> JSONResponse:
    status_code = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 500)
    if status_code >= 500:
        logger.error("Request failed: %s", exc)
    return JSONResponse(status_code=status_code, content=_encode(exc))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request", exc.errors())
    return JSONResponse(status_code=422, content=_encode(error))


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}


def _encode(exc: AgentMemoryError) -> dict:
    # pydantic error entries may carry the raised exception under "ctx".
    return jsonable_encoder(exc.to_dict(), custom_encoder={BaseException: str})
