from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
import responses

from smartretail_sdk.cart import Cart, CartState
from smartretail_sdk.clients import InventoryClient, ProductsClient, SalesClient
from smartretail_sdk.config import ClientConfig
from smartretail_sdk.error_mapper import INVALID_RESPONSE
from smartretail_sdk.exceptions import TransportError
from smartretail_sdk.http_client import HttpClient
from smartretail_sdk.models_products import Product
from smartretail_sdk.reconciliation import StockReconciler
from smartretail_sdk.search import SearchResolver
from smartretail_sdk.stores import HttpInventoryStore, HttpProductStore, HttpSaleStore
from smartretail_sdk.tracing import TraceContext

BASE = "https://pos.example.com"


def _http() -> HttpClient:
    cfg = ClientConfig(env_name="test", api_base_url=BASE, retries=0, retry_backoff_seconds=0)
    return HttpClient(cfg, trace=TraceContext(trace_id="trace-x"))


@responses.activate
def test_non_json_success_body_is_an_invalid_response() -> None:
    responses.add(responses.GET, f"{BASE}/api/products", body="<html>OK</html>", status=200)
    http = _http()
    with pytest.raises(TransportError) as exc_info:
        ProductsClient(http=http).list_products()
    assert exc_info.value.code == INVALID_RESPONSE
    assert exc_info.value.status_code == 200
    assert exc_info.value.trace_id == "trace-x"
    assert http.last_operation.result == "error"


@responses.activate
def test_scalar_json_body_is_an_invalid_response() -> None:
    responses.add(responses.GET, f"{BASE}/api/inventory/product/3", json="upstream busy", status=200)
    with pytest.raises(TransportError) as exc_info:
        InventoryClient(http=_http()).list_batches(3)
    assert exc_info.value.code == INVALID_RESPONSE


@responses.activate
def test_garbled_sale_acknowledgement_keeps_cart_for_retry() -> None:
    responses.add(responses.POST, f"{BASE}/api/sales", body="<html>OK</html>", status=201)
    responses.add(responses.POST, f"{BASE}/api/sales", json={"id": 77}, status=201)
    cart = Cart()
    cart.set_operator_id(9)
    cart.add_product(Product(id=1, name="Rice", unit_price=Decimal("50")))
    store = HttpSaleStore(SalesClient(http=_http()))

    failed = asyncio.run(cart.finalize(store))
    assert failed.ok is False
    assert failed.error.code == INVALID_RESPONSE
    assert cart.state is CartState.BUILDING
    assert len(cart.lines) == 1

    retried = asyncio.run(cart.finalize(store))
    assert retried.ok is True
    assert retried.sale.id == 77
    keys = [call.request.headers["Idempotency-Key"] for call in responses.calls]
    assert keys[0] == keys[1]


@responses.activate
def test_garbled_batches_fail_only_that_product() -> None:
    responses.add(
        responses.GET,
        f"{BASE}/api/products",
        json=[{"id": 1, "name": "Rice"}, {"id": 2, "name": "Oil"}],
        status=200,
    )
    responses.add(
        responses.GET,
        f"{BASE}/api/inventory/product/1",
        json=[{"batchNumber": "B1", "quantity": 4, "costPrice": 5}],
        status=200,
    )
    responses.add(responses.GET, f"{BASE}/api/inventory/product/2", body="upstream busy", status=200)
    http = _http()
    reconciler = StockReconciler(
        HttpProductStore(ProductsClient(http=http)),
        HttpInventoryStore(InventoryClient(http=http)),
        max_concurrency=1,
    )

    result = asyncio.run(reconciler.reconcile())

    assert [row.key for row in result.rows] == ["1::B1"]
    assert [(failure.product_id, failure.error_code) for failure in result.failures] == [("2", INVALID_RESPONSE)]


@responses.activate
def test_garbled_search_falls_back_to_listing() -> None:
    responses.add(responses.GET, f"{BASE}/api/products/search", body="oops", status=200)
    responses.add(
        responses.GET,
        f"{BASE}/api/products",
        json={"content": [{"id": 1, "name": "Rice"}, {"id": 2, "name": "Oil"}]},
        status=200,
    )
    resolver = SearchResolver(HttpProductStore(ProductsClient(http=_http())))

    result = asyncio.run(resolver.search("oil"))

    assert result.source == "fallback"
    assert [product.id for product in result.products] == [2]
