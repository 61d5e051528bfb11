from __future__ import annotations

import time
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from contractlens.apps.api.errors import (
    http_exception_handler,
    report_deadline_exception_handler,
    report_source_exception_handler,
    report_window_exception_handler,
    starlette_http_exception_handler,
    tenant_predicate_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from contractlens.apps.api.response import API_VERSION
from contractlens.apps.api.routes.health import router as health_router
from contractlens.apps.api.routes.reports import router as reports_router
from contractlens.core.errors import ReportDeadlineError, ReportSourceError, ReportWindowError
from contractlens.core.logging import configure_logging
from contractlens.persistence.guards import TenantPredicateError


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="ContractLens Reporting API", version=API_VERSION)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        response.headers.setdefault("X-Request-Id", request_id)
        response.headers["X-Response-Time-Ms"] = f"{(time.monotonic() - start) * 1000.0:.1f}"
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await starlette_http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(ReportWindowError)
    async def _report_window_exception_handler(request: Request, exc: ReportWindowError):
        return await report_window_exception_handler(request, exc)

    @app.exception_handler(ReportSourceError)
    async def _report_source_exception_handler(request: Request, exc: ReportSourceError):
        return await report_source_exception_handler(request, exc)

    @app.exception_handler(ReportDeadlineError)
    async def _report_deadline_exception_handler(request: Request, exc: ReportDeadlineError):
        return await report_deadline_exception_handler(request, exc)

    @app.exception_handler(TenantPredicateError)
    async def _tenant_predicate_exception_handler(request: Request, exc: TenantPredicateError):
        return await tenant_predicate_exception_handler(request, exc)

    app.include_router(health_router, prefix=f"/{API_VERSION}")
    app.include_router(reports_router, prefix=f"/{API_VERSION}")

    return app


app = create_app()
