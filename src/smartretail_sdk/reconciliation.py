"""Merge per-product stock batches into one row per (product, batch number).

Folding is commutative and associative: rows carry the exact stock value
(sum of cost * quantity) next to the quantity, and the weighted cost is
derived from the two, so the merged output does not depend on the order in
which batch fetches complete.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ApiError, ProductFetchFailure, ReconciliationPartialFailure
from .models_inventory import StockBatchRaw
from .models_products import Product, ProductId
from .money import ZERO, round2
from .stores import InventoryStore, ProductStore

logger = logging.getLogger(__name__)

NO_BATCH = "NO_BATCH"


def normalize_batch_number(batch_number: str | None) -> str | None:
    if batch_number is None:
        return None
    trimmed = str(batch_number).strip()
    return trimmed or None


def batch_key(product_id: ProductId, batch_number: str | None) -> str:
    return f"{product_id}::{normalize_batch_number(batch_number) or NO_BATCH}"


@dataclass(frozen=True)
class MergedStockRow:
    key: str
    product_id: ProductId
    product_name: str
    batch_number: str | None
    quantity: Decimal
    cost_price: Decimal
    total_cost: Decimal
    expiry_date: date | None
    locations: tuple[str, ...]
    merged_count: int
    cost_value: Decimal = field(default=ZERO, repr=False)
    peak_cost: Decimal = field(default=ZERO, repr=False)

    @property
    def location_label(self) -> str | None:
        return ", ".join(self.locations) if self.locations else None


def _build_row(
    *,
    key: str,
    product_id: ProductId,
    product_name: str,
    batch_number: str | None,
    quantity: Decimal,
    cost_value: Decimal,
    peak_cost: Decimal,
    expiry_date: date | None,
    locations: Iterable[str],
    merged_count: int,
) -> MergedStockRow:
    # A bucket holding only zero-quantity batches has no weight to average by.
    cost_price = cost_value / quantity if quantity > 0 else peak_cost
    return MergedStockRow(
        key=key,
        product_id=product_id,
        product_name=product_name,
        batch_number=batch_number,
        quantity=quantity,
        cost_price=cost_price,
        total_cost=round2(quantity * cost_price),
        expiry_date=expiry_date,
        locations=tuple(sorted(set(locations))),
        merged_count=merged_count,
        cost_value=cost_value,
        peak_cost=peak_cost,
    )


def row_from_batch(
    batch: StockBatchRaw,
    *,
    product_id: ProductId | None = None,
    product_name: str = "-",
) -> MergedStockRow:
    owner = batch.product_id if product_id is None else product_id
    batch_number = normalize_batch_number(batch.batch_number)
    location = (batch.location or "").strip()
    return _build_row(
        key=batch_key(owner, batch_number),
        product_id=owner,
        product_name=product_name,
        batch_number=batch_number,
        quantity=batch.quantity,
        cost_value=batch.cost_price * batch.quantity,
        peak_cost=batch.cost_price,
        expiry_date=batch.expiry_date,
        locations=[location] if location else [],
        merged_count=1,
    )


def _earliest(left: date | None, right: date | None) -> date | None:
    if left is None:
        return right
    if right is None:
        return left
    return min(left, right)


def merge_rows(left: MergedStockRow, right: MergedStockRow) -> MergedStockRow:
    if left.key != right.key:
        raise ValueError(f"cannot merge rows with different keys: {left.key!r} != {right.key!r}")
    return _build_row(
        key=left.key,
        product_id=left.product_id,
        product_name=left.product_name if left.product_name != "-" else right.product_name,
        batch_number=left.batch_number,
        quantity=left.quantity + right.quantity,
        cost_value=left.cost_value + right.cost_value,
        peak_cost=max(left.peak_cost, right.peak_cost),
        expiry_date=_earliest(left.expiry_date, right.expiry_date),
        locations=(*left.locations, *right.locations),
        merged_count=left.merged_count + right.merged_count,
    )


def merge_batch(
    row: MergedStockRow | None,
    batch: StockBatchRaw,
    *,
    product_id: ProductId | None = None,
    product_name: str = "-",
) -> MergedStockRow:
    incoming = row_from_batch(batch, product_id=product_id, product_name=product_name)
    if row is None:
        return incoming
    return merge_rows(row, incoming)


def reconcile_batches(
    products: Iterable[Product],
    batches_by_product: Mapping[ProductId, Sequence[StockBatchRaw]],
) -> list[MergedStockRow]:
    merged: dict[str, MergedStockRow] = {}
    for product in products:
        for batch in batches_by_product.get(product.id, ()):
            incoming = row_from_batch(batch, product_id=product.id, product_name=product.name)
            existing = merged.get(incoming.key)
            merged[incoming.key] = incoming if existing is None else merge_rows(existing, incoming)
    return [merged[key] for key in sorted(merged)]


def filter_rows(rows: Iterable[MergedStockRow], query: str | None) -> list[MergedStockRow]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(rows)
    return [
        row
        for row in rows
        if needle in row.product_name.lower() or needle in (row.batch_number or "").lower()
    ]


@dataclass(frozen=True)
class ReconciliationResult:
    rows: list[MergedStockRow]
    failures: list[ProductFetchFailure] = field(default_factory=list)
    products_total: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def raise_for_partial_failure(self) -> None:
        if self.failures:
            raise ReconciliationPartialFailure(list(self.failures))


@dataclass
class StockReconciler:
    products: ProductStore
    inventory: InventoryStore
    max_concurrency: int = 10

    async def reconcile(self, page: int = 0, size: int = 100) -> ReconciliationResult:
        product_page = await self.products.list_products(page, size)
        products = list(product_page.content)
        semaphore = asyncio.Semaphore(max(1, self.max_concurrency))
        fetched = await asyncio.gather(*(self._fetch(product, semaphore) for product in products))

        batches_by_product: dict[ProductId, list[StockBatchRaw]] = {}
        failures: list[ProductFetchFailure] = []
        for product, batches, failure in fetched:
            batches_by_product.setdefault(product.id, []).extend(batches)
            if failure is not None:
                failures.append(failure)

        rows = reconcile_batches(products, batches_by_product)
        logger.info(
            "stock_reconciled",
            extra={"products": len(products), "rows": len(rows), "failed_products": len(failures)},
        )
        return ReconciliationResult(rows=rows, failures=failures, products_total=len(products))

    async def _fetch(
        self,
        product: Product,
        semaphore: asyncio.Semaphore,
    ) -> tuple[Product, list[StockBatchRaw], ProductFetchFailure | None]:
        async with semaphore:
            try:
                batches = await self.inventory.list_batches(product.id)
            except ApiError as exc:
                logger.warning(
                    "stock_batches_fetch_failed",
                    extra={"product_id": str(product.id), "code": exc.code, "trace_id": exc.trace_id},
                )
                return product, [], ProductFetchFailure(
                    product_id=str(product.id),
                    product_name=product.name,
                    error_code=exc.code,
                    message=exc.message,
                )
            except PydanticValidationError as exc:
                logger.warning(
                    "stock_batches_payload_invalid",
                    extra={"product_id": str(product.id), "errors": exc.error_count()},
                )
                return product, [], ProductFetchFailure(
                    product_id=str(product.id),
                    product_name=product.name,
                    error_code="INVALID_PAYLOAD",
                    message=str(exc),
                )
        return product, list(batches), None
