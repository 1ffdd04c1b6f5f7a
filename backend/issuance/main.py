"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from issuance.api.v1.router import api_v1_router
from issuance.core.config import APP_VERSION
from issuance.core.exceptions import (
    ProblemDetailError,
    http_exception_handler,
    problem_detail_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from issuance.core.logging import configure_logging
from issuance.core.middleware.cors import get_cors_config
from issuance.core.middleware.request_id import RequestIdMiddleware

configure_logging()

app = FastAPI(
    title="Document Issuance API",
    version=APP_VERSION,
    docs_url="/docs",
    openapi_url="/openapi.json",
)

# Middleware (last added = first executed)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(CORSMiddleware, **get_cors_config())

# Exception handlers (RFC 7807)
app.add_exception_handler(ProblemDetailError, problem_detail_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Routes
app.include_router(api_v1_router, prefix="/api/v1")
