"""FastAPI application entrypoint for the zoneWalk API."""
from __future__ import annotations

import os
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zoneWalk.api.models import err
from zoneWalk.api.routes import health, records, registration, zones
from zoneWalk.api.utils import state
from zoneWalk.logging_config import reset_request_id, set_request_id, setup_logging
from zoneWalk.resolver.errors import (
    DomainNotFound,
    QueryTimeout,
    RateLimited,
    TransportError,
    ZoneWalkError,
)

logger = setup_logging("api")

app = FastAPI(title="zonewalk-api", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next: Callable) -> Response:
    """Log all HTTP requests with timing and outcome."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)

    start_time = time.time()
    logger.info(
        "Incoming request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client_host": request.client.host if request.client else None,
        }
    )

    try:
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration": round(duration * 1000, 2),
                "outcome": "success" if response.status_code < 400 else "error",
            }
        )
        response.headers["X-Request-ID"] = request_id
        return response

    except Exception as exc:
        duration = time.time() - start_time
        logger.error(
            f"Request failed: {str(exc)}",
            exc_info=True,
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "duration": round(duration * 1000, 2),
                "outcome": "exception",
                "error_type": type(exc).__name__,
            }
        )
        raise
    finally:
        reset_request_id(token)


def _status_for(exc: ZoneWalkError) -> int:
    if isinstance(exc, DomainNotFound):
        return 404
    if isinstance(exc, RateLimited):
        return 429
    if isinstance(exc, QueryTimeout):
        return 504
    if isinstance(exc, TransportError):
        return 502
    return 500


@app.exception_handler(ZoneWalkError)
async def zonewalk_exception_handler(request: Request, exc: ZoneWalkError):
    status_code = _status_for(exc)
    headers = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after)
    logger.warning(
        f"Resolution failed: {exc.message}",
        extra={
            "path": request.url.path,
            "domain": exc.domain,
            "status_code": status_code,
            "outcome": "error",
            "error_type": type(exc).__name__,
        }
    )
    return JSONResponse(status_code=status_code, content=err(exc.message), headers=headers)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content=err(str(exc)))


app.include_router(zones.router)
app.include_router(records.router)
app.include_router(registration.router)
app.include_router(health.router)


@app.on_event("startup")
async def startup_event() -> None:
    logger.info("Starting zoneWalk API", extra={"component": "api", "state": "startup"})
    await state.init_resources()
    logger.info("API startup complete", extra={"component": "api", "state": "ready"})


@app.on_event("shutdown")
async def shutdown_event() -> None:
    logger.info("Shutting down zoneWalk API", extra={"component": "api", "state": "shutdown"})
    await state.close_resources()
    logger.info("API shutdown complete", extra={"component": "api", "state": "stopped"})


@app.get("/")
async def root():
    return {"status": "ok", "service": "zonewalk-api"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "zoneWalk.api.server:app",
        host=os.getenv("ZONEWALK_API_HOST", "0.0.0.0"),
        port=int(os.getenv("ZONEWALK_API_PORT", "8000")),
        reload=bool(os.getenv("ZONEWALK_API_RELOAD", "")),
    )
