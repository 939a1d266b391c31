from __future__ import annotations

import logging
import uuid

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException

from config.settings import settings
from models.errors import RelayError
from ops.structured_logger import setup_logging
from utils.request_context import clear_request_context, set_request_id

from app.routers.health import router as health_router
from app.routers.inbound import router as inbound_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="SMS Relay", version="1.0.0")
log = logging.getLogger("relay.api")


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    set_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    rid = _get_request_id(request)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    log.log(
        level,
        "relay_error",
        extra={
            "extra": {
                "event": "relay_error",
                "error_type": type(exc).__name__,
                "status_code": exc.status_code,
                "detail": exc.message,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    # Webhook senders read plain text; the message is the whole body.
    return PlainTextResponse(exc.message, status_code=exc.status_code)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    rid = _get_request_id(request)
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
    )
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _get_request_id(request)
    log.error(
        "internal_unhandled_exception",
        extra={
            "extra": {
                "event": "internal_unhandled_exception",
                "error_type": type(exc).__name__,
                "message": str(exc),
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
        exc_info=True,
    )
    return PlainTextResponse("Internal error", status_code=500, headers={"X-Request-Id": rid})


app.include_router(health_router, tags=["health"])
app.include_router(inbound_router, tags=["inbound"])


def main() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
