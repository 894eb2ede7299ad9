from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models_products import ProductId


class DiscountPolicy(str, Enum):
    FLAT = "FLAT"
    PERCENT = "PERCENT"


class Discount(BaseModel):
    model_config = ConfigDict(frozen=True)

    policy: DiscountPolicy = DiscountPolicy.FLAT
    value: Decimal = Field(default=Decimal("0"), ge=0)

    @model_validator(mode="after")
    def _percent_within_range(self) -> "Discount":
        if self.policy is DiscountPolicy.PERCENT and self.value > 100:
            raise ValueError("percent discount must be between 0 and 100")
        return self


NO_DISCOUNT = Discount()


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: ProductId
    name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(ge=0)
    tax_rate_percent: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_tax(self) -> Decimal:
        return self.line_subtotal * self.tax_rate_percent / 100
