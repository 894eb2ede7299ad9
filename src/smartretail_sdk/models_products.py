from __future__ import annotations

from decimal import Decimal
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

ProductId = int | str


class Page(BaseModel, Generic[T]):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content: list[T] = Field(default_factory=list)
    page: int = 0
    size: int = 0
    total_elements: int = Field(default=0, alias="totalElements")
    total_pages: int = Field(default=0, alias="totalPages")

    @property
    def is_empty(self) -> bool:
        return not self.content


class Product(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: ProductId
    name: str = "Item"
    sku: str | None = None
    category: str | None = None
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, alias="unitPrice")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, alias="taxRate")
