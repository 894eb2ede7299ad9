from __future__ import annotations

from smartretail_sdk.exceptions import (
    ClientValidationError,
    GatewayError,
    ProductFetchFailure,
    ReconciliationPartialFailure,
    ValidationError,
    ValidationIssue,
)
from smartretail_sdk.ui_errors import to_user_facing_error

from fakes import server_error, transport_error


def test_validation_error_uses_first_issue() -> None:
    exc = ClientValidationError([ValidationIssue(field="expiry", reason="card expired", code="CARD_EXPIRED")])
    error = to_user_facing_error(exc)
    assert error.message == "card expired"
    assert error.details == "CARD_EXPIRED (expiry)"
    assert error.can_retry is False


def test_transport_and_server_errors_are_retryable() -> None:
    transport = to_user_facing_error(transport_error())
    server = to_user_facing_error(server_error())
    assert transport.can_retry is True
    assert transport.trace_id == "trace-1"
    assert server.can_retry is True
    assert server.details == "SERVER_ERROR (HTTP 500)"


def test_api_validation_error_is_not_retryable() -> None:
    exc = ValidationError(
        code="VALIDATION_ERROR",
        message="quantity must be positive",
        details={"field": "quantity"},
        trace_id="trace-422",
        status_code=422,
    )
    error = to_user_facing_error(exc)
    assert error.message == "quantity must be positive"
    assert error.can_retry is False
    assert "quantity" in error.technical_details


def test_gateway_and_partial_failures() -> None:
    gateway = to_user_facing_error(GatewayError(code="PAYMENT_CANCELLED", message="cancelled by customer"))
    assert gateway.message == "cancelled by customer"
    partial = to_user_facing_error(
        ReconciliationPartialFailure(
            [ProductFetchFailure(product_id="2", product_name="Oil", error_code="TRANSPORT_ERROR", message="down")]
        )
    )
    assert partial.can_retry is True
    assert "Oil" in partial.details


def test_unexpected_errors_fall_back_to_type_name() -> None:
    error = to_user_facing_error(RuntimeError(""))
    assert error.message == "Unexpected error"
    assert error.details == "RuntimeError"
