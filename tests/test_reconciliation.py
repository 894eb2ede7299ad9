from __future__ import annotations

import asyncio
import itertools
from datetime import date
from decimal import Decimal

import pytest

from fakes import FakeInventoryStore, FakeProductStore
from smartretail_sdk.exceptions import ReconciliationPartialFailure
from smartretail_sdk.models_inventory import StockBatchRaw
from smartretail_sdk.models_products import Product
from smartretail_sdk.reconciliation import (
    NO_BATCH,
    StockReconciler,
    batch_key,
    filter_rows,
    merge_batch,
    merge_rows,
    reconcile_batches,
    row_from_batch,
)

RICE = Product(id=1, name="Basmati Rice")
OIL = Product(id=2, name="Sunflower Oil")


def _batch(
    product_id: int = 1,
    batch_number: str | None = "B1",
    quantity: str = "10",
    cost: str = "5",
    expiry: date | None = None,
    location: str | None = None,
) -> StockBatchRaw:
    return StockBatchRaw(
        product_id=product_id,
        batch_number=batch_number,
        quantity=Decimal(quantity),
        cost_price=Decimal(cost),
        expiry_date=expiry,
        location=location,
    )


def test_same_batch_number_merges_with_weighted_cost() -> None:
    rows = reconcile_batches([RICE], {1: [_batch(quantity="10", cost="5"), _batch(quantity="10", cost="7")]})
    assert len(rows) == 1
    row = rows[0]
    assert row.key == "1::B1"
    assert row.quantity == Decimal("20")
    assert row.cost_price == Decimal("6.00")
    assert row.total_cost == Decimal("120.00")
    assert row.merged_count == 2
    assert row.product_name == "Basmati Rice"


def test_merge_is_independent_of_arrival_order() -> None:
    batches = [
        _batch(quantity="3", cost="10", expiry=date(2027, 5, 1), location="A"),
        _batch(quantity="7", cost="4.5", expiry=date(2026, 12, 1), location="B"),
        _batch(quantity="0", cost="99", location="A"),
        _batch(quantity="5", cost="8.25", expiry=None, location="C"),
    ]
    results = {
        tuple(reconcile_batches([RICE], {1: list(order)})) for order in itertools.permutations(batches)
    }
    assert len(results) == 1
    row = results.pop()[0]
    assert row.quantity == Decimal("15")
    assert row.expiry_date == date(2026, 12, 1)
    assert row.locations == ("A", "B", "C")
    assert row.location_label == "A, B, C"


def test_merge_rows_is_associative() -> None:
    a, b, c = (
        row_from_batch(_batch(quantity="1", cost="3")),
        row_from_batch(_batch(quantity="2", cost="5")),
        row_from_batch(_batch(quantity="4", cost="11")),
    )
    assert merge_rows(merge_rows(a, b), c) == merge_rows(a, merge_rows(b, c))


@pytest.mark.parametrize("missing", [None, "", "   "])
def test_missing_batch_numbers_share_a_bucket(missing: str | None) -> None:
    rows = reconcile_batches([RICE], {1: [_batch(batch_number=missing), _batch(batch_number=None, quantity="2")]})
    assert len(rows) == 1
    assert rows[0].key == f"1::{NO_BATCH}"
    assert rows[0].batch_number is None
    assert rows[0].quantity == Decimal("12")


def test_batch_numbers_are_trimmed_before_keying() -> None:
    assert batch_key(1, " B7 ") == batch_key(1, "B7") == "1::B7"
    rows = reconcile_batches([RICE], {1: [_batch(batch_number="B7 "), _batch(batch_number="B7")]})
    assert [row.batch_number for row in rows] == ["B7"]


def test_zero_quantity_bucket_keeps_highest_cost_seen() -> None:
    forward = reconcile_batches([RICE], {1: [_batch(quantity="0", cost="4"), _batch(quantity="0", cost="9")]})
    backward = reconcile_batches([RICE], {1: [_batch(quantity="0", cost="9"), _batch(quantity="0", cost="4")]})
    assert forward == backward
    assert forward[0].quantity == 0
    assert forward[0].cost_price == Decimal("9")
    assert forward[0].total_cost == Decimal("0.00")


def test_different_products_never_merge() -> None:
    rows = reconcile_batches([RICE, OIL], {1: [_batch(product_id=1)], 2: [_batch(product_id=2)]})
    assert [row.key for row in rows] == ["1::B1", "2::B1"]


def test_merge_batch_folds_into_existing_row() -> None:
    row = merge_batch(None, _batch(quantity="2", cost="10"))
    row = merge_batch(row, _batch(quantity="2", cost="20"))
    assert row.cost_price == Decimal("15")
    with pytest.raises(ValueError):
        merge_rows(row, row_from_batch(_batch(batch_number="OTHER")))


def test_filter_rows_matches_name_or_batch() -> None:
    rows = reconcile_batches(
        [RICE, OIL],
        {1: [_batch(product_id=1, batch_number="R-01")], 2: [_batch(product_id=2, batch_number="OIL-9")]},
    )
    assert [row.product_id for row in filter_rows(rows, "rice")] == [1]
    assert [row.product_id for row in filter_rows(rows, " oil-9 ")] == [2]
    assert filter_rows(rows, "  ") == rows
    assert filter_rows(rows, "ghee") == []


def test_reconciler_isolates_failing_products() -> None:
    products = [Product(id=index, name=f"P{index}") for index in range(1, 6)]
    inventory = FakeInventoryStore(
        {index: [_batch(product_id=index, quantity=str(index))] for index in range(1, 6)},
        failing={2, 4},
        delays={1: 0.03, 3: 0.01, 5: 0.02},
    )
    reconciler = StockReconciler(FakeProductStore(products), inventory, max_concurrency=2)

    result = asyncio.run(reconciler.reconcile())

    assert result.partial is True
    assert result.products_total == 5
    assert [row.product_id for row in result.rows] == [1, 3, 5]
    assert sorted(failure.product_id for failure in result.failures) == ["2", "4"]
    assert sorted(inventory.calls) == [1, 2, 3, 4, 5]
    with pytest.raises(ReconciliationPartialFailure) as exc_info:
        result.raise_for_partial_failure()
    assert len(exc_info.value.failures) == 2


def test_reconciler_without_failures_is_complete() -> None:
    inventory = FakeInventoryStore({1: [_batch(quantity="10", cost="5"), _batch(quantity="10", cost="7")]})
    result = asyncio.run(StockReconciler(FakeProductStore([RICE, OIL]), inventory).reconcile())
    assert result.partial is False
    result.raise_for_partial_failure()
    assert len(result.rows) == 1
    assert result.rows[0].cost_price == Decimal("6")
