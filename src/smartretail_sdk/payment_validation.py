from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from urllib.parse import quote

from .exceptions import (
    CardExpiredError,
    GatewayPreconditionError,
    InvalidCardNumberError,
    InvalidExpiryError,
    InvalidOperatorIdError,
    InvalidTransferHandleError,
    PaymentValidationError,
    ValidationIssue,
)
from .models_payment import CardPayment, CashPayment, GatewayPayment, TransferPayment
from .money import format_amount

INVALID_CARD_NUMBER = "INVALID_CARD_NUMBER"
INVALID_EXPIRY = "INVALID_EXPIRY"
CARD_EXPIRED = "CARD_EXPIRED"
INVALID_TRANSFER_HANDLE = "INVALID_TRANSFER_HANDLE"
INVALID_OPERATOR_ID = "INVALID_OPERATOR_ID"
GATEWAY_PRECONDITION = "GATEWAY_PRECONDITION"

_ISSUE_ERRORS: dict[str, type[PaymentValidationError]] = {
    INVALID_CARD_NUMBER: InvalidCardNumberError,
    INVALID_EXPIRY: InvalidExpiryError,
    CARD_EXPIRED: CardExpiredError,
    INVALID_TRANSFER_HANDLE: InvalidTransferHandleError,
    GATEWAY_PRECONDITION: GatewayPreconditionError,
}

_NON_DIGITS_RE = re.compile(r"\D")
_EXPIRY_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{2}|\d{4})$")
_EXPIRY_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})$")
_URI_SAFE = "-_.!~*'()"
_MIN_PAN_DIGITS = 12
_FULL_MASK = "**** **** **** ****"


@dataclass(frozen=True)
class PaymentContext:
    amount: Decimal
    operator_id: int | None = None
    merchant_name: str = "SmartRetails"
    currency: str = "INR"
    now: datetime | None = None

    def current_time(self) -> datetime:
        return self.now or datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentValidationResult:
    ok: bool
    method: str
    payload: dict[str, Any] | None = None
    issues: list[ValidationIssue] = field(default_factory=list)

    def raise_for_issues(self) -> None:
        if self.ok:
            return
        error_type = _ISSUE_ERRORS.get(self.issues[0].code, PaymentValidationError)
        raise error_type(list(self.issues))


def _failed(method: str, field_name: str, code: str, reason: str) -> PaymentValidationResult:
    return PaymentValidationResult(
        ok=False,
        method=method,
        issues=[ValidationIssue(field=field_name, reason=reason, code=code)],
    )


def digits_only(value: str | None) -> str:
    return _NON_DIGITS_RE.sub("", value or "")


def luhn_check(card_number: str) -> bool:
    digits = digits_only(card_number)
    if not digits:
        return False
    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def mask_card_number(card_number: str) -> str:
    """Show the last four digits only for numbers long enough to be a real PAN."""
    digits = digits_only(card_number)
    if len(digits) < _MIN_PAN_DIGITS:
        return _FULL_MASK
    return "**** **** **** " + digits[-4:]


def parse_expiry(value: str) -> tuple[int, int]:
    """Parse ``MM/YY``, ``MM/YYYY`` or ``YYYY-MM`` into (year, month)."""
    text = (value or "").replace(" ", "")
    slash = _EXPIRY_SLASH_RE.match(text)
    iso = _EXPIRY_ISO_RE.match(text)
    if slash:
        month, year = int(slash.group(1)), slash.group(2)
        year_value = int("20" + year) if len(year) == 2 else int(year)
    elif iso:
        year_value, month = int(iso.group(1)), int(iso.group(2))
    else:
        raise ValueError("expiry must look like MM/YY, MM/YYYY or YYYY-MM")
    if not 1 <= month <= 12:
        raise ValueError("expiry month must be between 1 and 12")
    if year_value < 1:
        raise ValueError("expiry year is out of range")
    return year_value, month


def expiry_deadline(year: int, month: int, tzinfo: Any = None) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, tzinfo=tzinfo)


def parse_operator_id(value: Any) -> int | None:
    """Return the operator id when it is a positive integer, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, (float, Decimal)):
        try:
            as_int = int(value)
        except (ValueError, OverflowError):
            return None
        return as_int if as_int == value and as_int > 0 else None
    text = str(value).strip()
    if not text.isdigit():
        return None
    parsed = int(text)
    return parsed if parsed > 0 else None


def require_operator_id(value: Any) -> int:
    parsed = parse_operator_id(value)
    if parsed is None:
        raise InvalidOperatorIdError(
            [
                ValidationIssue(
                    field="operator_id",
                    reason="operator id must be a positive integer",
                    code=INVALID_OPERATOR_ID,
                )
            ]
        )
    return parsed


def validate_card(card: CardPayment, context: PaymentContext) -> PaymentValidationResult:
    if not luhn_check(card.number):
        return _failed("CARD", "number", INVALID_CARD_NUMBER, "card number failed the Luhn check")
    try:
        year, month = parse_expiry(card.expiry)
    except ValueError as exc:
        return _failed("CARD", "expiry", INVALID_EXPIRY, str(exc))
    now = context.current_time()
    if expiry_deadline(year, month, now.tzinfo) < now:
        return _failed("CARD", "expiry", CARD_EXPIRED, "card expired")
    return PaymentValidationResult(
        ok=True,
        method="CARD",
        payload={
            "cardMasked": mask_card_number(card.number),
            "cardHolder": card.holder.strip(),
            "expiry": card.expiry.strip(),
        },
    )


def is_valid_transfer_handle(handle: str | None) -> bool:
    text = (handle or "").strip()
    if len(text) < 3:
        return False
    if "@" in text:
        return True
    return 10 <= len(digits_only(text)) <= 20


def build_transfer_request_uri(handle: str, amount: Decimal, *, merchant_name: str, currency: str) -> str:
    """Canonical payment request string; the only input for QR or deep-link rendering."""
    payee = quote(handle.strip(), safe=_URI_SAFE)
    name = quote(merchant_name, safe=_URI_SAFE)
    value = quote(format_amount(amount), safe=_URI_SAFE)
    return f"upi://pay?pa={payee}&pn={name}&am={value}&cu={currency}"


def validate_transfer(transfer: TransferPayment, context: PaymentContext) -> PaymentValidationResult:
    if not is_valid_transfer_handle(transfer.handle):
        return _failed(
            "UPI",
            "handle",
            INVALID_TRANSFER_HANDLE,
            "handle must look like name@bank or contain 10-20 digits",
        )
    handle = transfer.handle.strip()
    return PaymentValidationResult(
        ok=True,
        method="UPI",
        payload={
            "upiId": handle,
            "paymentUri": build_transfer_request_uri(
                handle,
                context.amount,
                merchant_name=context.merchant_name,
                currency=context.currency,
            ),
        },
    )


def validate_gateway_precondition(context: PaymentContext) -> PaymentValidationResult:
    if parse_operator_id(context.operator_id) is None:
        return _failed(
            "GATEWAY",
            "operator_id",
            GATEWAY_PRECONDITION,
            "a valid operator id is required before starting a gateway payment",
        )
    return PaymentValidationResult(ok=True, method="GATEWAY", payload={})


def validate_payment(
    method: CashPayment | CardPayment | TransferPayment | GatewayPayment,
    context: PaymentContext,
) -> PaymentValidationResult:
    if isinstance(method, CashPayment):
        return PaymentValidationResult(ok=True, method="CASH", payload={})
    if isinstance(method, CardPayment):
        return validate_card(method, context)
    if isinstance(method, TransferPayment):
        return validate_transfer(method, context)
    if isinstance(method, GatewayPayment):
        return validate_gateway_precondition(context)
    raise TypeError(f"Unsupported payment method: {type(method).__name__}")
