from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from ..models_products import Page, Product
from ..normalization import normalize_page, normalize_product
from .base import BaseClient


@dataclass
class ProductsClient(BaseClient):
    module: str = "products"

    def list_products(self, page: int = 0, size: int = 50) -> Page[Product]:
        return self._call(
            "GET",
            "/api/products",
            partial(normalize_page, item=normalize_product, page=page, size=size),
            params={"page": page, "size": size},
            operation="list_products",
        )

    def search_products(self, query: str, page: int = 0, size: int = 50) -> Page[Product]:
        term = query.strip()
        # The store matches either field; one term serves both.
        return self._call(
            "GET",
            "/api/products/search",
            partial(normalize_page, item=normalize_product, page=page, size=size),
            params={"name": term, "sku": term, "page": page, "size": size},
            operation="search_products",
        )
