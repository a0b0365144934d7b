"""HTTP exception handlers.

Maps typed studio exceptions to ``{"error": message, "code": code}`` responses.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studio.core.errors import (
    AudioIOError,
    DuplicateTrackError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    StudioError,
    UpstreamNotConfiguredError,
    UpstreamRequestError,
)
from studio.core.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = get_logger("http.errors")


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


async def _handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("not_found", path=request.url.path, error=str(exc))
    return _error_response(404, str(exc), exc.code)


async def _handle_invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    logger.warning(
        "invalid_state",
        path=request.url.path,
        operation=exc.operation,
        current_status=exc.current_status,
    )
    return _error_response(409, str(exc), exc.code)


async def _handle_invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
    logger.warning("invalid_request", path=request.url.path, field=exc.field, detail=exc.detail)
    return _error_response(400, str(exc), exc.code)


async def _handle_duplicate_track(request: Request, exc: DuplicateTrackError) -> JSONResponse:
    logger.warning(
        "duplicate_track",
        session_id=exc.session_id,
        speaker=exc.speaker,
        segment_number=exc.segment_number,
    )
    return _error_response(409, str(exc), exc.code)


async def _handle_audio_io(request: Request, exc: AudioIOError) -> JSONResponse:
    logger.error("audio_io_error", path=exc.path, reason=exc.reason)
    return _error_response(500, str(exc), exc.code)


async def _handle_upstream_not_configured(
    request: Request, exc: UpstreamNotConfiguredError
) -> JSONResponse:
    logger.warning("upstream_not_configured", credential=exc.credential)
    return _error_response(401, str(exc), exc.code)


async def _handle_upstream_request(request: Request, exc: UpstreamRequestError) -> JSONResponse:
    logger.error("upstream_request_failed", reason=exc.reason, status_code=exc.status_code)
    return _error_response(502, str(exc), exc.code)


async def _handle_studio_error(request: Request, exc: StudioError) -> JSONResponse:
    logger.error(
        "unhandled_studio_error",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return _error_response(500, "Internal server error", "internal_error")


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        # Drop the "body"/"query"/"path" prefix; keep the field path
        loc = [str(part) for part in err.get("loc", ())[1:]] or ["request"]
        problems.append(f"{'.'.join(loc)}: {err.get('msg', 'invalid')}")
    message = "Invalid request: " + "; ".join(problems)
    logger.warning("request_validation_failed", path=request.url.path, problems=problems)
    return _error_response(400, message, "invalid_request")


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "http_error"},
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unexpected_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )
    return _error_response(500, "Internal server error", "internal_error")


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""
    app.add_exception_handler(NotFoundError, _handle_not_found)
    app.add_exception_handler(InvalidStateError, _handle_invalid_state)
    app.add_exception_handler(InvalidRequestError, _handle_invalid_request)
    app.add_exception_handler(DuplicateTrackError, _handle_duplicate_track)
    app.add_exception_handler(AudioIOError, _handle_audio_io)
    app.add_exception_handler(UpstreamNotConfiguredError, _handle_upstream_not_configured)
    app.add_exception_handler(UpstreamRequestError, _handle_upstream_request)
    app.add_exception_handler(StudioError, _handle_studio_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
