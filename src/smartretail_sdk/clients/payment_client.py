from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..models_payment import GatewayOrder, GatewaySuccess
from ..money import format_amount
from ..normalization import unwrap_envelope
from .base import BaseClient


def _order(data: Any) -> GatewayOrder:
    body = unwrap_envelope(data)
    if not isinstance(body, dict) or not body.get("orderId"):
        raise ValueError("payment gateway answered without an orderId")
    return GatewayOrder.model_validate(body)


def _verified(data: Any) -> bool:
    body = unwrap_envelope(data)
    if not isinstance(body, dict):
        return False
    status = str(body.get("status") or "").strip().lower()
    return status == "success" or body.get("verified") is True


@dataclass
class PaymentClient(BaseClient):
    module: str = "payment"

    def create_order(self, amount: Decimal) -> GatewayOrder:
        return self._call(
            "POST",
            "/api/payment/create-order",
            _order,
            json_body={"amount": format_amount(amount)},
            operation="create_order",
        )

    def verify_payment(self, success: GatewaySuccess) -> bool:
        return self._call(
            "POST",
            "/api/payment/verify",
            _verified,
            json_body={
                "razorpay_order_id": success.order_id,
                "razorpay_payment_id": success.payment_id,
                "razorpay_signature": success.signature,
            },
            operation="verify_payment",
        )
