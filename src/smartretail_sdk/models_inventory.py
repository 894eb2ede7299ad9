from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .models_products import ProductId


class StockBatchRaw(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | str | None = None
    product_id: ProductId = Field(alias="productId")
    batch_number: str | None = Field(default=None, alias="batchNumber")
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, alias="costPrice")
    expiry_date: date | None = Field(default=None, alias="expiryDate")
    location: str | None = None


class StockBatchPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | str | None = None
    product_id: ProductId | None = Field(default=None, alias="productId")
    quantity: Decimal = Decimal("0")
    cost_price: Decimal = Field(default=Decimal("0"), alias="costPrice")
    expiry_date: date | None = Field(default=None, alias="expiryDate")
    location: str = ""
    batch_number: str = Field(default="", alias="batchNumber")
