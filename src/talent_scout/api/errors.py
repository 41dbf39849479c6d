"""
Unified error handling for consistent API error responses.

Every ScoutError raised by a route is rendered as:
{
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "detail": "Optional additional context"
    }
}
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from ..core.errors import ExhaustedRetriesError, ScoutError

logger = logging.getLogger(__name__)


def error_content(code: str, message: str, detail: str | None = None) -> dict:
    content = {"error": {"code": code, "message": message}}
    if detail:
        content["error"]["detail"] = detail
    return content


async def scout_error_handler(request: Request, exc: ScoutError) -> JSONResponse:
    """
    FastAPI exception handler for ScoutError.

    The error's class decides the HTTP status; its backend code, when it
    differs from the generic one, is reported as the detail.
    """
    detail = None
    if exc.code != exc.default_code:
        detail = f"Backend code: {exc.code}"
    if isinstance(exc, ExhaustedRetriesError) and exc.original is not None:
        detail = f"Last error: {exc.original.message}"

    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.default_code, exc.message, detail),
    )
