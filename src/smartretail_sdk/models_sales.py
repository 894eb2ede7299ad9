from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .models_products import ProductId


class SaleItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    product_id: ProductId = Field(alias="productId")
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(alias="unitPrice")
    tax_rate: Decimal = Field(default=Decimal("0"), alias="taxRate")


class SaleDraft(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    transaction_id: str | None = Field(default=None, alias="transactionId")
    operator_id: int = Field(alias="cashierId")
    items: list[SaleItem]
    subtotal: Decimal
    tax_total: Decimal = Field(alias="taxTotal")
    discount_total: Decimal = Field(alias="discountTotal")
    discount_policy: str = Field(alias="discountPolicy")
    total: Decimal
    payment_mode: str = Field(alias="paymentMode")
    payment_details: dict[str, Any] | None = Field(default=None, alias="paymentDetails")
    created_at: datetime = Field(alias="createdAt")


class FinalizedSale(BaseModel):
    """A sale the store has acknowledged; `id` is always store-issued."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | str
    operator_id: int | None = Field(default=None, alias="cashierId")
    items: list[SaleItem] = Field(default_factory=list)
    subtotal: Decimal | None = None
    tax_total: Decimal | None = Field(default=None, alias="taxTotal")
    discount_total: Decimal | None = Field(default=None, alias="discountTotal")
    total: Decimal | None = None
    payment_mode: str | None = Field(default=None, alias="paymentMode")
    payment_details: dict[str, Any] | None = Field(default=None, alias="paymentDetails")
    created_at: datetime | None = Field(default=None, alias="createdAt")


class SalesSummary(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    from_date: date | datetime | str | None = Field(default=None, alias="from")
    to_date: date | datetime | str | None = Field(default=None, alias="to")
    transactions: int = 0
    gross_total: Decimal = Field(default=Decimal("0"), alias="grossTotal")
    tax_total: Decimal = Field(default=Decimal("0"), alias="taxTotal")
    discount_total: Decimal = Field(default=Decimal("0"), alias="discountTotal")
    net_total: Decimal = Field(default=Decimal("0"), alias="netTotal")
