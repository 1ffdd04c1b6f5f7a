"""RFC 7807 Problem Details error handling."""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from issuance.services.results import DocumentError, error_message

logger = logging.getLogger(__name__)

ERROR_TYPE_PREFIX = "urn:issuance:error:"

# HTTP status per business error code
ERROR_STATUS: dict[DocumentError, int] = {
    DocumentError.ALREADY_LOCKED: 409,
    DocumentError.NOT_INITIALIZED: 422,
    DocumentError.NOT_LOCKED: 422,
    DocumentError.SEQUENCE_NOT_FOUND: 404,
    DocumentError.INVALID_STARTING_NUMBER: 422,
    DocumentError.DOCUMENT_NOT_FOUND: 404,
    DocumentError.NOT_A_DRAFT: 409,
    DocumentError.NOT_FINAL: 409,
    DocumentError.FINALIZE_CONFLICT: 409,
}


class ProblemDetailError(Exception):
    """Raise for RFC 7807 problem+json responses."""

    def __init__(
        self,
        status: int,
        title: str,
        detail: str,
        error_type: str | None = None,
    ):
        self.status = status
        self.title = title
        self.detail = detail
        self.error_type = error_type or "about:blank"

    @classmethod
    def from_error(cls, error: DocumentError) -> "ProblemDetailError":
        """Build the problem document for a business error code."""
        return cls(
            status=ERROR_STATUS[error],
            title=error.value.replace("_", " ").capitalize(),
            detail=error_message(error),
            error_type=f"{ERROR_TYPE_PREFIX}{error.value}",
        )


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status,
        content={
            "type": exc.error_type,
            "title": exc.title,
            "status": exc.status,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": "about:blank",
            "title": exc.detail if isinstance(exc.detail, str) else "Error",
            "status": exc.status_code,
            "detail": exc.detail,
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "type": "about:blank",
            "title": "Validation Error",
            "status": 422,
            "detail": jsonable_encoder(exc.errors()),
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Storage faults and other surprises: log with traceback, answer generically."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "The request could not be completed. Please try again.",
            "instance": str(request.url.path),
        },
        media_type="application/problem+json",
    )

