"""JSON error envelopes that always carry the request id."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from strivon.obs.logging import current_request_id


def request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or current_request_id()
        or request.headers.get("X-Request-Id")
        or "unknown"
    )


def _envelope(request: Request, detail, status_code: int, **extra) -> JSONResponse:
    body = {"detail": detail, "request_id": request_id_for(request), **extra}
    return JSONResponse(status_code=status_code, content=body)


async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _envelope(request, exc.detail, exc.status_code)
    for name, value in (getattr(exc, "headers", None) or {}).items():
        response.headers[name] = value
    return response


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = {"code": "invalid-argument", "message": "validation_error"}
    return _envelope(request, detail, 422, errors=jsonable_encoder(exc.errors()))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _on_http_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
