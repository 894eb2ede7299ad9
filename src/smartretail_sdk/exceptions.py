from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    """Server-side rejection of a payload (400/422)."""


class AuthError(UnauthorizedError):
    """Authentication failed or session is invalid."""


class PermissionError(ForbiddenError):
    """Authorization denied for the current operator."""


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""


class MissingSaleIdError(ApiError):
    """Sale store acknowledged a sale without issuing an identifier."""


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str
    code: str = "INVALID"
    row_index: int | None = None


class ClientValidationError(ValueError):
    """Local, user-correctable validation failure."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(self._format_message())

    @property
    def code(self) -> str:
        return self.issues[0].code if self.issues else "INVALID"

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        issue = self.issues[0]
        location = f"row {issue.row_index}" if issue.row_index is not None else "payload"
        return f"{location} {issue.field}: {issue.reason}"


class PaymentValidationError(ClientValidationError):
    pass


class InvalidCardNumberError(PaymentValidationError):
    pass


class InvalidExpiryError(PaymentValidationError):
    pass


class CardExpiredError(PaymentValidationError):
    pass


class InvalidTransferHandleError(PaymentValidationError):
    pass


class GatewayPreconditionError(PaymentValidationError):
    pass


class InvalidOperatorIdError(ClientValidationError):
    pass


class EmptyCartError(ClientValidationError):
    pass


class DiscountExceedsTotalError(ClientValidationError):
    pass


class CartStateError(RuntimeError):
    """Transition requested from a state that does not allow it."""


class NotFoundOrEmptyError(LookupError):
    """Server query produced no rows; triggers fallback, never surfaced."""


@dataclass
class GatewayError(Exception):
    code: str
    message: str
    order_id: str | None = None

    def __str__(self) -> str:
        order = f" order_id={self.order_id}" if self.order_id else ""
        return f"{self.code}: {self.message}{order}"


@dataclass(frozen=True)
class ProductFetchFailure:
    product_id: str
    product_name: str | None
    error_code: str
    message: str


class ReconciliationPartialFailure(Exception):
    def __init__(self, failures: list[ProductFetchFailure]) -> None:
        self.failures = failures
        names = ", ".join(failure.product_name or failure.product_id for failure in failures)
        super().__init__(f"Stock batches failed to load for {len(failures)} product(s): {names}")
