from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ApiError, NotFoundOrEmptyError
from .models_products import Page, Product
from .normalization import build_page
from .stores import ProductStore

logger = logging.getLogger(__name__)

SearchSource = Literal["list", "server", "fallback"]

SEARCH_FIELDS = ("name", "sku", "category")


@dataclass(frozen=True)
class SearchResult:
    page: Page[Product]
    source: SearchSource

    @property
    def products(self) -> list[Product]:
        return list(self.page.content)


def matches_product(product: Product, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    return any(needle in str(getattr(product, name) or "").lower() for name in SEARCH_FIELDS)


def filter_products(products: Iterable[Product], query: str) -> list[Product]:
    return [product for product in products if matches_product(product, query)]


def paginate(items: list[Product], page: int, size: int) -> Page[Product]:
    start = page * size
    return build_page(items[start : start + size], page=page, size=size, total_elements=len(items))


@dataclass
class SearchResolver:
    """Server-side search first, client-side substring filter as a fallback."""

    store: ProductStore
    page_size: int = 5
    fallback_size: int = 1000

    async def search(self, query: str | None, page: int = 0, size: int | None = None) -> SearchResult:
        page_size = size or self.page_size
        term = (query or "").strip()
        if not term:
            listing = await self.store.list_products(page, page_size)
            return SearchResult(page=listing, source="list")
        try:
            return SearchResult(page=await self._server_search(term, page, page_size), source="server")
        except NotFoundOrEmptyError:
            logger.info("product_search_empty_fallback", extra={"query_length": len(term)})
        except (ApiError, PydanticValidationError) as exc:
            logger.warning(
                "product_search_failed_fallback",
                extra={"code": getattr(exc, "code", type(exc).__name__)},
            )
        return SearchResult(page=await self._fallback(term, page, page_size), source="fallback")

    async def _server_search(self, term: str, page: int, size: int) -> Page[Product]:
        result = await self.store.search_products(term, page, size)
        if result.is_empty:
            raise NotFoundOrEmptyError(term)
        return result

    async def _fallback(self, term: str, page: int, size: int) -> Page[Product]:
        superset = await self.store.list_products(0, self.fallback_size)
        return paginate(filter_products(superset.content, term), page, size)
