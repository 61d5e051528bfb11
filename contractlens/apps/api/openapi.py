from __future__ import annotations

from typing import Any

from contractlens.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, code: str, message: str) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": _error_example(code=code, message=message)}},
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: _response("Bad request", "BAD_REQUEST", "Bad request"),
    401: _response("Unauthorized", "AUTH_UNAUTHORIZED", "Missing tenant identity"),
    422: _response("Validation error", "REPORT_WINDOW_INVALID", "Report window start is after end"),
    500: _response("Internal error", "INTERNAL_ERROR", "Internal server error"),
    503: _response("Source unavailable", "REPORT_SOURCE_UNAVAILABLE", "Required report source failed"),
    504: _response("Deadline exceeded", "REPORT_DEADLINE_EXCEEDED", "Report assembly exceeded its deadline"),
}
