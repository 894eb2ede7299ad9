from __future__ import annotations

from dataclasses import dataclass

from .exceptions import (
    ApiError,
    ClientValidationError,
    GatewayError,
    ReconciliationPartialFailure,
    TransportError,
)


@dataclass(frozen=True)
class UserFacingError:
    message: str
    details: str | None = None
    trace_id: str | None = None
    can_retry: bool = False

    @property
    def technical_details(self) -> str | None:
        if self.details:
            return self.details
        return None


def to_user_facing_error(exc: Exception) -> UserFacingError:
    if isinstance(exc, ClientValidationError):
        issue = exc.issues[0] if exc.issues else None
        return UserFacingError(
            message=issue.reason if issue else "Validation failed",
            details=f"{exc.code} ({issue.field})" if issue else exc.code,
        )
    if isinstance(exc, GatewayError):
        return UserFacingError(message=exc.message or "Payment was not completed", details=exc.code)
    if isinstance(exc, ReconciliationPartialFailure):
        return UserFacingError(message="Some products' stock could not be loaded", details=str(exc), can_retry=True)
    if isinstance(exc, ApiError):
        primary = exc.message.strip() or "Request failed"
        details = f"{exc.code} (HTTP {exc.status_code})"
        if exc.details:
            details = f"{details}: {exc.details}"
        retryable = isinstance(exc, TransportError) or exc.status_code >= 500
        return UserFacingError(message=primary, details=details, trace_id=exc.trace_id, can_retry=retryable)
    return UserFacingError(message=str(exc) or "Unexpected error", details=type(exc).__name__)
