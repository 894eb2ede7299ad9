from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    ApiError,
    CartStateError,
    ClientValidationError,
    DiscountExceedsTotalError,
    EmptyCartError,
    GatewayError,
    InvalidOperatorIdError,
    ValidationIssue,
)
from .idempotency import new_transaction_id
from .models_cart import NO_DISCOUNT, CartLine, Discount, DiscountPolicy
from .models_payment import (
    CardPayment,
    CashPayment,
    GatewayCancelled,
    GatewayFailure,
    GatewayPayment,
    GatewaySuccess,
    TransferPayment,
)
from .models_products import Product, ProductId
from .models_sales import FinalizedSale, SaleDraft, SaleItem
from .money import round2, to_decimal
from .normalization import normalize_product
from .payment_validation import (
    INVALID_OPERATOR_ID,
    PaymentContext,
    build_transfer_request_uri,
    is_valid_transfer_handle,
    parse_operator_id,
    validate_payment,
)
from .pricing import CartTotals, compute_totals
from .stores import PaymentGateway, SaleStore

logger = logging.getLogger(__name__)

PaymentSelection = CashPayment | CardPayment | TransferPayment | GatewayPayment


class CartState(str, Enum):
    EMPTY = "EMPTY"
    BUILDING = "BUILDING"
    VALIDATING_PAYMENT = "VALIDATING_PAYMENT"
    FINALIZING = "FINALIZING"
    FINALIZED = "FINALIZED"


_IN_FLIGHT = frozenset({CartState.VALIDATING_PAYMENT, CartState.FINALIZING})


@dataclass(frozen=True)
class FinalizeResult:
    ok: bool
    state: CartState
    sale: FinalizedSale | None = None
    issues: list[ValidationIssue] = field(default_factory=list)
    error: Exception | None = None
    stale: bool = False

    @property
    def message(self) -> str | None:
        if self.ok:
            return None
        if self.issues:
            return self.issues[0].reason
        if self.error is not None:
            return getattr(self.error, "message", None) or str(self.error)
        if self.stale:
            return "payment attempt was superseded"
        return None


def coerce_quantity(raw: Any) -> int:
    """Quantities are whole numbers >= 1; anything else collapses to 1."""
    try:
        value = to_decimal(raw, default=Decimal(1))
    except (TypeError, ValueError):
        return 1
    return max(1, math.floor(value))



class Cart:
    """Pending sale owned by one POS session.

    Totals are derived on every read. Mutations are only accepted while the
    cart is EMPTY, BUILDING or FINALIZED (the latter starts a new sale).

    A transaction id is minted on the first finalize attempt and reused by
    every retry until the cart contents change, so the store can recognise a
    resubmitted sale. A verified gateway payment is kept alongside it and is
    not charged again on retry.
    """

    def __init__(
        self,
        *,
        merchant_name: str = "SmartRetails",
        currency: str = "INR",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.merchant_name = merchant_name
        self.currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lines: list[CartLine] = []
        self._discount: Discount = NO_DISCOUNT
        self._payment: PaymentSelection = CashPayment()
        self._operator_id: Any = None
        self._state = CartState.EMPTY
        self._attempt = 0
        self._gateway_waiter: asyncio.Future[Any] | None = None
        self._transaction_id: str | None = None
        self._paid: GatewaySuccess | None = None

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def discount(self) -> Discount:
        return self._discount

    @property
    def payment(self) -> PaymentSelection:
        return self._payment

    @property
    def operator_id(self) -> Any:
        return self._operator_id

    @property
    def attempt_token(self) -> int:
        return self._attempt

    @property
    def transaction_id(self) -> str | None:
        return self._transaction_id

    @property
    def totals(self) -> CartTotals:
        return compute_totals(self._lines, self._discount)

    def _ensure_mutable(self, action: str) -> None:
        if self._state in _IN_FLIGHT:
            raise CartStateError(f"cannot {action} while cart is {self._state.value}")
        if self._state is CartState.FINALIZED:
            self._state = CartState.EMPTY

    def _settle(self) -> None:
        self._state = CartState.BUILDING if self._lines else CartState.EMPTY

    def _edited(self) -> None:
        if self._paid is not None:
            logger.warning(
                "gateway_payment_released",
                extra={"order_id": self._paid.order_id, "transaction_id": self._transaction_id},
            )
        self._transaction_id = None
        self._paid = None
        self._settle()

    def _index_of(self, product_id: ProductId) -> int | None:
        for index, line in enumerate(self._lines):
            if line.product_id == product_id:
                return index
        return None

    def add_product(self, product: Product | Mapping[str, Any]) -> CartLine:
        self._ensure_mutable("add products")
        item = product if isinstance(product, Product) else normalize_product(product)
        index = self._index_of(item.id)
        if index is not None:
            line = self._lines[index]
            updated = line.model_copy(update={"quantity": line.quantity + 1})
            self._lines[index] = updated
        else:
            updated = CartLine(
                product_id=item.id,
                name=item.name,
                quantity=1,
                unit_price=item.unit_price,
                tax_rate_percent=item.tax_rate,
            )
            self._lines.append(updated)
        self._edited()
        return updated

    def remove_line(self, product_id: ProductId) -> bool:
        self._ensure_mutable("remove lines")
        index = self._index_of(product_id)
        if index is None:
            self._settle()
            return False
        self._lines.pop(index)
        self._edited()
        return True

    def change_quantity(self, product_id: ProductId, quantity: Any) -> CartLine | None:
        self._ensure_mutable("change quantities")
        index = self._index_of(product_id)
        if index is None:
            self._settle()
            return None
        updated = self._lines[index].model_copy(update={"quantity": coerce_quantity(quantity)})
        self._lines[index] = updated
        self._edited()
        return updated

    def set_discount(self, value: Any, policy: DiscountPolicy | str = DiscountPolicy.FLAT) -> Discount:
        self._ensure_mutable("change the discount")
        try:
            resolved = policy if isinstance(policy, DiscountPolicy) else DiscountPolicy(str(policy).strip().upper())
            discount = Discount(policy=resolved, value=to_decimal(value))
        except (PydanticValidationError, ValueError, TypeError) as exc:
            raise ClientValidationError(
                [ValidationIssue(field="discount", reason=_first_error(exc), code="INVALID_DISCOUNT")]
            ) from exc
        self._discount = discount
        self._edited()
        return discount

    def select_payment(self, method: PaymentSelection) -> None:
        self._ensure_mutable("change the payment method")
        self._payment = method
        self._edited()

    def set_operator_id(self, value: Any) -> None:
        self._ensure_mutable("change the operator")
        self._operator_id = value
        self._edited()

    def payment_context(self, amount: Decimal | None = None) -> PaymentContext:
        return PaymentContext(
            amount=self.totals.total if amount is None else amount,
            operator_id=parse_operator_id(self._operator_id),
            merchant_name=self.merchant_name,
            currency=self.currency,
            now=self._clock(),
        )

    def transfer_request_uri(self) -> str | None:
        """Payment request for the current handle and total; recomputed on every call."""
        if not isinstance(self._payment, TransferPayment) or not is_valid_transfer_handle(self._payment.handle):
            return None
        return build_transfer_request_uri(
            self._payment.handle,
            self.totals.total,
            merchant_name=self.merchant_name,
            currency=self.currency,
        )

    def cancel(self) -> None:
        if self._state is CartState.FINALIZING:
            raise CartStateError("cannot cancel while the sale is being submitted")
        self._attempt += 1
        waiter = self._gateway_waiter
        if waiter is not None and not waiter.done():
            waiter.cancel()
        self._gateway_waiter = None
        self._clear()
        self._state = CartState.EMPTY
        logger.info("cart_cancelled", extra={"attempt": self._attempt})

    def start_new_sale(self) -> None:
        if self._state is not CartState.FINALIZED:
            raise CartStateError(f"no finalized sale to move on from (state {self._state.value})")
        self._state = CartState.EMPTY

    def _clear(self) -> None:
        self._lines = []
        self._discount = NO_DISCOUNT
        self._payment = CashPayment()
        self._transaction_id = None
        self._paid = None

    def _precheck(self, totals: CartTotals) -> int:
        """Return the operator id, or raise for the first reason the cart cannot be sold."""
        operator_id = parse_operator_id(self._operator_id)
        if operator_id is None:
            raise InvalidOperatorIdError(
                [
                    ValidationIssue(
                        field="operator_id",
                        reason="enter a valid numeric operator id (positive integer)",
                        code=INVALID_OPERATOR_ID,
                    )
                ]
            )
        if not self._lines:
            raise EmptyCartError(
                [ValidationIssue(field="lines", reason="add at least one product to the cart", code="EMPTY_CART")]
            )
        if totals.warnings:
            warning = totals.warnings[0]
            raise DiscountExceedsTotalError(
                [ValidationIssue(field="discount", reason=warning.message, code=warning.code)]
            )
        return operator_id

    def _reject(self, error: ClientValidationError) -> FinalizeResult:
        self._settle()
        logger.warning("sale_finalize_rejected", extra={"code": error.code})
        return FinalizeResult(ok=False, state=self._state, issues=list(error.issues), error=error)

    def _fail(self, error: Exception) -> FinalizeResult:
        self._settle()
        logger.warning(
            "sale_finalize_failed",
            extra={
                "code": getattr(error, "code", type(error).__name__),
                "trace_id": getattr(error, "trace_id", None),
                "transaction_id": self._transaction_id,
            },
        )
        return FinalizeResult(ok=False, state=self._state, error=error)

    def _stale(self) -> FinalizeResult:
        logger.info("gateway_outcome_stale", extra={"attempt": self._attempt})
        return FinalizeResult(ok=False, state=self._state, stale=True)

    def build_draft(
        self,
        totals: CartTotals,
        operator_id: int,
        payment_mode: str,
        payment_details: dict[str, Any] | None,
    ) -> SaleDraft:
        return SaleDraft(
            transaction_id=self._transaction_id,
            operator_id=operator_id,
            items=[
                SaleItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate_percent,
                )
                for line in self._lines
            ],
            subtotal=round2(totals.subtotal),
            tax_total=round2(totals.tax_total),
            discount_total=round2(totals.discount_total),
            discount_policy=self._discount.policy.value,
            total=totals.total,
            payment_mode=payment_mode,
            payment_details=payment_details or None,
            created_at=self._clock(),
        )

    async def finalize(self, sale_store: SaleStore, gateway: PaymentGateway | None = None) -> FinalizeResult:
        self._ensure_mutable("finalize")
        if isinstance(self._payment, GatewayPayment) and gateway is None:
            raise ValueError("a payment gateway is required for GATEWAY payments")
        self._attempt += 1
        token = self._attempt
        self._state = CartState.VALIDATING_PAYMENT
        logger.info("sale_finalize_attempt", extra={"attempt": token, "payment_mode": self._payment.method})
        try:
            return await self._finalize(sale_store, gateway, token)
        except BaseException:
            # Whatever escapes, the cart goes back to an editable state with its contents.
            if token == self._attempt and self._state in _IN_FLIGHT:
                self._settle()
            raise

    async def _finalize(
        self,
        sale_store: SaleStore,
        gateway: PaymentGateway | None,
        token: int,
    ) -> FinalizeResult:
        totals = self.totals
        try:
            operator_id = self._precheck(totals)
            validation = validate_payment(self._payment, self.payment_context(totals.total))
            validation.raise_for_issues()
        except ClientValidationError as exc:
            return self._reject(exc)
        details = dict(validation.payload or {})

        if isinstance(self._payment, GatewayPayment) and gateway is not None:
            paid = self._paid
            if paid is None:
                outcome = await self._run_gateway(gateway, totals.total, token)
                if outcome is None:
                    return self._stale()
                if isinstance(outcome, Exception):
                    return self._fail(outcome)
                paid = self._paid = outcome
            details.update({"gatewayOrderId": paid.order_id, "gatewayPaymentId": paid.payment_id})

        if self._transaction_id is None:
            self._transaction_id = new_transaction_id()
        draft = self.build_draft(totals, operator_id, validation.method, details)
        self._state = CartState.FINALIZING
        try:
            sale = await sale_store.create_sale(draft)
        except (ApiError, PydanticValidationError) as exc:
            # Contents and transaction id are kept so an explicit retry replays the same sale.
            return self._fail(exc)

        self._attempt += 1
        self._clear()
        self._state = CartState.FINALIZED
        logger.info(
            "sale_finalize_success",
            extra={"sale_id": sale.id, "total": str(draft.total), "transaction_id": draft.transaction_id},
        )
        return FinalizeResult(ok=True, state=self._state, sale=sale)

    async def _run_gateway(
        self,
        gateway: PaymentGateway,
        amount: Decimal,
        token: int,
    ) -> GatewaySuccess | Exception | None:
        """Drive one gateway round trip; None means the attempt went stale."""
        try:
            order = await gateway.create_order(amount)
        except ApiError as exc:
            return exc
        if token != self._attempt:
            return None

        waiter = asyncio.ensure_future(gateway.await_outcome(order))
        self._gateway_waiter = waiter
        try:
            outcome = await waiter
        except asyncio.CancelledError:
            if token != self._attempt:
                return None
            raise
        finally:
            if self._gateway_waiter is waiter:
                self._gateway_waiter = None
        if token != self._attempt:
            return None

        if isinstance(outcome, GatewayCancelled):
            return GatewayError(code="PAYMENT_CANCELLED", message=outcome.reason, order_id=order.order_id)
        if isinstance(outcome, GatewayFailure):
            return GatewayError(code=outcome.code, message=outcome.reason, order_id=order.order_id)

        try:
            verified = await gateway.verify_payment(outcome)
        except ApiError as exc:
            return exc
        if token != self._attempt:
            return None
        if not verified:
            return GatewayError(
                code="VERIFICATION_FAILED",
                message="payment verification failed",
                order_id=order.order_id,
            )
        return outcome


def _first_error(exc: Exception) -> str:
    if isinstance(exc, PydanticValidationError):
        errors = exc.errors()
        if errors:
            return str(errors[0].get("msg", "invalid discount"))
    return str(exc) or "invalid discount"
