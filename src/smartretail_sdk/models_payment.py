from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class CashPayment(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["CASH"] = "CASH"


class CardPayment(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["CARD"] = "CARD"
    number: str = Field(default="", repr=False)
    holder: str = ""
    expiry: str = ""


class TransferPayment(BaseModel):
    """Handle-based instant transfer (VPA or phone-number style)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["UPI"] = "UPI"
    handle: str = ""


class GatewayPayment(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["GATEWAY"] = "GATEWAY"


PaymentMethod = Annotated[
    Union[CashPayment, CardPayment, TransferPayment, GatewayPayment],
    Field(discriminator="method"),
]

_payment_adapter: TypeAdapter[Any] = TypeAdapter(PaymentMethod)


def parse_payment_method(value: Mapping[str, Any]) -> CashPayment | CardPayment | TransferPayment | GatewayPayment:
    data = dict(value)
    data["method"] = str(data.get("method") or "CASH").upper()
    return _payment_adapter.validate_python(data)


class GatewayOrder(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    order_id: str = Field(alias="orderId")
    key: str | None = None
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class GatewaySuccess:
    order_id: str
    payment_id: str
    signature: str


@dataclass(frozen=True)
class GatewayFailure:
    reason: str
    code: str = "PAYMENT_FAILED"


@dataclass(frozen=True)
class GatewayCancelled:
    reason: str = "cancelled by customer"


GatewayOutcome = Union[GatewaySuccess, GatewayFailure, GatewayCancelled]
