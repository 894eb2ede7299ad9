from __future__ import annotations

import re
from typing import Any, Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    TransportError,
    ValidationError,
)

INVALID_RESPONSE = "INVALID_RESPONSE"

_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthError,
    403: PermissionError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}

_NON_WORD_RE = re.compile(r"[^A-Za-z0-9]+")


def _error_class(status_code: int) -> type[ApiError]:
    if status_code in _STATUS_ERRORS:
        return _STATUS_ERRORS[status_code]
    return ServerError if status_code >= 500 else ApiError


def _error_code(payload: Mapping[str, Any], status_code: int) -> str:
    # Store services send either a machine code or a servlet-style reason ("Bad Request").
    raw = payload.get("code") or payload.get("errorCode") or payload.get("error")
    if not raw:
        return f"HTTP_{status_code}"
    return _NON_WORD_RE.sub("_", str(raw)).strip("_").upper() or f"HTTP_{status_code}"


def _error_details(payload: Mapping[str, Any]) -> Any:
    if payload.get("details") is not None:
        return payload["details"]
    field_errors = payload.get("errors")
    if isinstance(field_errors, list) and field_errors:
        return field_errors
    if payload.get("path"):
        return {"path": payload["path"]}
    return None


def map_error(status_code: int, payload: Mapping[str, Any] | None, trace_id: str | None) -> ApiError:
    """Turn a non-2xx store answer into the matching ApiError subclass."""
    body = payload or {}
    message = body.get("message") or body.get("error") or "Request failed"
    reported_trace = body.get("trace_id") or body.get("traceId")
    return _error_class(status_code)(
        code=_error_code(body, status_code),
        message=str(message),
        details=_error_details(body),
        trace_id=str(reported_trace) if reported_trace else trace_id,
        status_code=status_code,
        raw_payload=dict(body),
    )


def invalid_response(
    reason: str,
    *,
    operation: str,
    trace_id: str | None,
    status_code: int = 0,
    raw_payload: Any = None,
) -> TransportError:
    """A 2xx answer the SDK cannot read; treated like a transport failure so callers may retry."""
    return TransportError(
        code=INVALID_RESPONSE,
        message=f"Unreadable response from store for {operation}",
        details={"reason": reason},
        trace_id=trace_id,
        status_code=status_code,
        raw_payload=raw_payload,
    )
