# app/api/error_handlers.py
"""
Render every failure as {"errors": [{"title", "detail", "code"}]}.
No stack traces or internal state cross the API boundary.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import RewardAnomalyError

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    401: ("Not Authenticated", "not_authenticated"),
    403: ("Permission Denied", "permission_denied"),
    404: ("Not Found", "not_found"),
}


def error_body(title: str, detail: str, code: str) -> dict:
    return {"errors": [{"title": title, "detail": detail, "code": code}]}


async def reward_anomaly_error_handler(request: Request, exc: RewardAnomalyError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"errors": [exc.to_error()]})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    title, code = _HTTP_CODES.get(exc.status_code, ("Request Failed", "http_error"))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(title, str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"errors": [
            {"title": "Invalid Request", "detail": err.get("msg", "Invalid value"), "code": "invalid_request"}
            for err in exc.errors()
        ]},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("Internal Error", "Unable to load anomaly data.", "internal_error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RewardAnomalyError, reward_anomaly_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
