"""Single adapter between the store wire shapes and the canonical SDK models.

The backend answers with several envelopes (a bare list, ``{content: [...]}``,
``{data: [...]}``, ``{data: {content: [...]}}`` and the ``{success, message,
data}`` wrapper). Everything above the store boundary sees only ``Page`` and
the typed entities produced here.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Mapping, TypeVar

from .models_inventory import StockBatchRaw
from .models_products import Page, Product, ProductId
from .models_sales import FinalizedSale

T = TypeVar("T")

_LIST_KEYS = ("content", "rows", "items")


def unwrap_envelope(payload: Any) -> Any:
    """Strip ``{success, message, data}`` style wrappers, however deep."""
    current = payload
    while isinstance(current, Mapping) and "data" in current and not _has_list_key(current):
        inner = current.get("data")
        if inner is None:
            return None
        current = inner
    return current


def _has_list_key(payload: Mapping[str, Any]) -> bool:
    return any(isinstance(payload.get(key), list) for key in _LIST_KEYS)


def _extract_rows(payload: Any) -> tuple[list[Any], Mapping[str, Any]]:
    body = unwrap_envelope(payload)
    if body is None:
        return [], {}
    if isinstance(body, list):
        return body, {}
    if isinstance(body, Mapping):
        for key in _LIST_KEYS:
            rows = body.get(key)
            if isinstance(rows, list):
                return rows, body
        return [], body
    raise ValueError(f"Unexpected page payload type: {type(body).__name__}")


def _meta_int(meta: Mapping[str, Any], *keys: str) -> int | None:
    for key in keys:
        value = meta.get(key)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def build_page(content: list[T], *, page: int, size: int, total_elements: int | None = None) -> Page[T]:
    total = len(content) if total_elements is None else total_elements
    total_pages = max(1, math.ceil(total / size)) if size > 0 else 1
    return Page(content=content, page=page, size=size, total_elements=total, total_pages=total_pages)


def normalize_page(
    payload: Any,
    item: Callable[[Mapping[str, Any]], T],
    *,
    page: int,
    size: int,
) -> Page[T]:
    rows, meta = _extract_rows(payload)
    content = [item(row) for row in rows if isinstance(row, Mapping)]
    resolved_page = _meta_int(meta, "page", "number")
    resolved_size = _meta_int(meta, "size", "pageSize", "page_size")
    total = _meta_int(meta, "totalElements", "total_elements", "total")
    resolved = build_page(
        content,
        page=page if resolved_page is None else resolved_page,
        size=size if resolved_size is None else resolved_size,
        total_elements=total,
    )
    total_pages = _meta_int(meta, "totalPages", "total_pages")
    if total_pages is not None:
        resolved = resolved.model_copy(update={"total_pages": total_pages})
    return resolved


def normalize_list(payload: Any, item: Callable[[Mapping[str, Any]], T]) -> list[T]:
    rows, _ = _extract_rows(payload)
    return [item(row) for row in rows if isinstance(row, Mapping)]


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def normalize_product(raw: Mapping[str, Any]) -> Product:
    data = dict(raw)
    data["id"] = _first(raw, "id", "productId")
    data["name"] = _first(raw, "name", "title") or "Item"
    data["unitPrice"] = _first(raw, "unitPrice", "unit_price", "price", "mrp") or 0
    data["taxRate"] = _first(raw, "taxRate", "tax_rate", "tax") or 0
    for key in ("productId", "title", "unit_price", "price", "mrp", "tax_rate", "tax"):
        data.pop(key, None)
    return Product.model_validate(data)


def _date_part(value: Any) -> Any:
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


def normalize_batch(raw: Mapping[str, Any], product_id: ProductId | None = None) -> StockBatchRaw:
    nested = raw.get("product") if isinstance(raw.get("product"), Mapping) else {}
    batch_number = _first(raw, "batchNumber", "batch_number", "batch")
    data = dict(raw)
    data.pop("product", None)
    data["productId"] = _first(raw, "productId", "product_id") or nested.get("id") or product_id
    data["batchNumber"] = None if batch_number is None else str(batch_number)
    data["costPrice"] = _first(raw, "costPrice", "cost_price") or 0
    data["quantity"] = _first(raw, "quantity", "qty") or 0
    data["expiryDate"] = _date_part(_first(raw, "expiryDate", "expiry_date", "expiry"))
    for key in ("product_id", "batch_number", "batch", "cost_price", "qty", "expiry_date", "expiry"):
        data.pop(key, None)
    return StockBatchRaw.model_validate(data)


def extract_entity_id(payload: Any) -> int | str | None:
    if not isinstance(payload, Mapping):
        return None
    for key in ("id", "saleId"):
        value = payload.get(key)
        if value is not None:
            return value
    data = payload.get("data")
    if isinstance(data, Mapping):
        return extract_entity_id(data)
    return None


def normalize_sale(payload: Any) -> FinalizedSale | None:
    """Return the acknowledged sale, or None when the store issued no id."""
    sale_id = extract_entity_id(payload)
    if sale_id is None:
        return None
    body = unwrap_envelope(payload)
    data = dict(body) if isinstance(body, Mapping) else {}
    data.pop("saleId", None)
    data["id"] = sale_id
    return FinalizedSale.model_validate(data)
