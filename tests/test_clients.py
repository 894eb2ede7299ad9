from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest
import requests
import responses

from smartretail_sdk.clients import InventoryClient, PaymentClient, ProductsClient, SalesClient
from smartretail_sdk.config import ClientConfig
from smartretail_sdk.exceptions import (
    ClientValidationError,
    MissingSaleIdError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from smartretail_sdk.http_client import HttpClient
from smartretail_sdk.idempotency import IDEMPOTENCY_HEADER, idempotency_key_for
from smartretail_sdk.models_payment import GatewaySuccess
from smartretail_sdk.models_sales import SaleDraft, SaleItem
from smartretail_sdk.tracing import TraceContext

BASE = "https://pos.example.com"


def _http() -> HttpClient:
    cfg = ClientConfig(env_name="test", api_base_url=BASE, retries=0, retry_backoff_seconds=0)
    return HttpClient(cfg, trace=TraceContext())


def _draft() -> SaleDraft:
    return SaleDraft(
        operator_id=42,
        items=[SaleItem(product_id=1, quantity=2, unit_price=Decimal("100"), tax_rate=Decimal("18"))],
        subtotal=Decimal("200.00"),
        tax_total=Decimal("36.00"),
        discount_total=Decimal("10.00"),
        discount_policy="FLAT",
        total=Decimal("226.00"),
        payment_mode="CASH",
        created_at="2026-10-18T12:00:00Z",
    )


@responses.activate
def test_list_products_unwraps_envelope() -> None:
    responses.add(
        responses.GET,
        f"{BASE}/api/products",
        json={
            "success": True,
            "message": "ok",
            "data": {
                "content": [
                    {"id": 1, "name": "Rice", "price": "52.50", "tax": 5},
                    {"productId": 2, "title": "Tea", "unitPrice": 120},
                ],
                "totalElements": 12,
                "totalPages": 3,
            },
        },
        status=200,
    )
    client = ProductsClient(http=_http(), access_token="token")
    page = client.list_products(page=0, size=5)

    assert [product.id for product in page.content] == [1, 2]
    assert page.content[0].unit_price == Decimal("52.50")
    assert page.content[0].tax_rate == Decimal("5")
    assert page.content[1].name == "Tea"
    assert page.total_elements == 12
    assert page.total_pages == 3
    request = responses.calls[0].request
    assert request.headers["Authorization"] == "Bearer token"
    assert "page=0" in request.url and "size=5" in request.url


@responses.activate
def test_search_products_sends_term_for_name_and_sku() -> None:
    responses.add(responses.GET, f"{BASE}/api/products/search", json=[{"id": 3, "name": "Oil"}], status=200)
    page = ProductsClient(http=_http()).search_products("  oil ", page=0, size=5)
    assert [product.id for product in page.content] == [3]
    assert page.total_pages == 1
    url = responses.calls[0].request.url
    assert "name=oil" in url and "sku=oil" in url


@responses.activate
def test_list_batches_normalizes_rows() -> None:
    responses.add(
        responses.GET,
        f"{BASE}/api/inventory/product/7",
        json={
            "data": [
                {"id": 1, "batch": "B1", "qty": 10, "cost_price": "5", "expiry": "2027-01-31T00:00:00Z"},
                {"id": 2, "product": {"id": 7}, "batchNumber": None, "quantity": 3, "costPrice": 2},
            ]
        },
        status=200,
    )
    batches = InventoryClient(http=_http()).list_batches(7)
    assert [batch.product_id for batch in batches] == [7, 7]
    assert batches[0].batch_number == "B1"
    assert batches[0].quantity == Decimal("10")
    assert batches[0].expiry_date == date(2027, 1, 31)
    assert batches[1].batch_number is None


@responses.activate
def test_create_and_update_batch() -> None:
    responses.add(responses.POST, f"{BASE}/api/inventory", json={"id": 11, "productId": 7, "quantity": 4}, status=201)
    responses.add(responses.PUT, f"{BASE}/api/inventory/11", json={}, status=200)
    client = InventoryClient(http=_http())

    created = client.create_batch(
        {"productId": 7, "quantity": "4", "costPrice": "2.5", "batchNumber": " B9 ", "location": " Rack 2 "}
    )
    assert created is not None and created.id == 11
    body = json.loads(responses.calls[0].request.body)
    assert body["batchNumber"] == "B9"
    assert body["location"] == "Rack 2"
    assert "id" not in body

    updated = client.update_batch({"id": 11, "productId": 7, "quantity": 5})
    assert updated is None
    assert json.loads(responses.calls[1].request.body)["id"] == 11


def test_batch_writes_are_validated_locally() -> None:
    client = InventoryClient(http=_http())
    with pytest.raises(ClientValidationError) as exc_info:
        client.create_batch({"quantity": -1})
    assert {issue.field for issue in exc_info.value.issues} == {"product_id", "quantity"}
    with pytest.raises(ClientValidationError):
        client.update_batch({"productId": 7})


@responses.activate
def test_create_sale_sends_idempotency_key() -> None:
    responses.add(responses.POST, f"{BASE}/api/sales", json={"data": {"id": 501, "total": "226.00"}}, status=201)
    sale = SalesClient(http=_http()).create_sale(_draft(), idempotency_key="idem-1")

    assert sale.id == 501
    assert sale.total == Decimal("226.00")
    request = responses.calls[0].request
    assert request.headers[IDEMPOTENCY_HEADER] == "idem-1"
    body = json.loads(request.body)
    assert body["cashierId"] == 42
    assert body["total"] == "226.00"
    assert body["transactionId"]
    assert body["items"][0]["productId"] == 1


@responses.activate
def test_create_sale_without_id_is_an_error() -> None:
    responses.add(responses.POST, f"{BASE}/api/sales", json={"success": True}, status=200)
    with pytest.raises(MissingSaleIdError):
        SalesClient(http=_http()).create_sale(_draft())


@responses.activate
def test_sale_rejection_maps_to_validation_error() -> None:
    responses.add(
        responses.POST,
        f"{BASE}/api/sales",
        json={"code": "OUT_OF_STOCK", "message": "Rice is out of stock", "trace_id": "trace-s"},
        status=422,
    )
    with pytest.raises(ValidationError) as exc_info:
        SalesClient(http=_http()).create_sale(_draft())
    assert exc_info.value.code == "OUT_OF_STOCK"
    assert exc_info.value.trace_id == "trace-s"
    assert len(responses.calls) == 1


@responses.activate
def test_get_sale_not_found() -> None:
    responses.add(responses.GET, f"{BASE}/api/sales/9", json={"message": "missing"}, status=404)
    with pytest.raises(NotFoundError):
        SalesClient(http=_http()).get_sale(9)


@responses.activate
def test_list_sales_page() -> None:
    responses.add(
        responses.GET,
        f"{BASE}/api/sales",
        json={"content": [{"id": 1}, {"saleId": 2}], "totalElements": 2},
        status=200,
    )
    page = SalesClient(http=_http()).list_sales(page=0, size=20)
    assert [sale.id for sale in page.content] == [1, 2]


@responses.activate
def test_sales_summary_window() -> None:
    responses.add(
        responses.GET,
        f"{BASE}/api/reports/sales",
        json={"data": {"transactions": 4, "grossTotal": "900.00", "netTotal": "880.00"}},
        status=200,
    )
    summary = SalesClient(http=_http()).sales_summary("2026-10-01", date(2026, 10, 18))
    assert summary is not None
    assert summary.transactions == 4
    assert summary.net_total == Decimal("880.00")
    assert summary.from_date == date(2026, 10, 1)
    url = responses.calls[0].request.url
    assert "from=2026-10-01T00%3A00%3A00" in url
    assert "to=2026-10-18T23%3A59%3A59" in url


@responses.activate
def test_sales_summary_empty_list_is_none() -> None:
    responses.add(responses.GET, f"{BASE}/api/reports/sales", json=[], status=200)
    assert SalesClient(http=_http()).sales_summary("2026-10-01", "2026-10-02") is None


def test_sales_summary_rejects_inverted_range() -> None:
    with pytest.raises(ClientValidationError) as exc_info:
        SalesClient(http=_http()).sales_summary("2026-10-05", "2026-10-01")
    assert exc_info.value.code == "INVALID_RANGE"


@responses.activate
def test_payment_order_and_verification() -> None:
    responses.add(
        responses.POST,
        f"{BASE}/api/payment/create-order",
        json={"orderId": "order_1", "key": "rzp_test", "amount": 22600, "currency": "INR"},
        status=200,
    )
    responses.add(responses.POST, f"{BASE}/api/payment/verify", json={"status": "success"}, status=200)
    client = PaymentClient(http=_http())

    order = client.create_order(Decimal("226"))
    assert order.order_id == "order_1"
    assert json.loads(responses.calls[0].request.body) == {"amount": "226.00"}

    assert client.verify_payment(GatewaySuccess("order_1", "pay_1", "sig")) is True
    assert json.loads(responses.calls[1].request.body) == {
        "razorpay_order_id": "order_1",
        "razorpay_payment_id": "pay_1",
        "razorpay_signature": "sig",
    }


@responses.activate
def test_payment_verification_failure_and_bad_order() -> None:
    responses.add(responses.POST, f"{BASE}/api/payment/create-order", json={"key": "rzp_test"}, status=200)
    responses.add(responses.POST, f"{BASE}/api/payment/verify", json={"status": "failed"}, status=200)
    client = PaymentClient(http=_http())
    with pytest.raises(TransportError) as exc_info:
        client.create_order(Decimal("10"))
    assert exc_info.value.code == "INVALID_RESPONSE"
    assert client.verify_payment(GatewaySuccess("order_1", "pay_1", "sig")) is False


@responses.activate
def test_resubmitted_draft_replays_the_same_key() -> None:
    responses.add(responses.POST, f"{BASE}/api/sales", body=requests.ConnectionError("timeout"))
    responses.add(responses.POST, f"{BASE}/api/sales", json={"id": 8}, status=201)
    client = SalesClient(http=_http())
    draft = _draft().model_copy(update={"transaction_id": "txn-abc"})

    with pytest.raises(TransportError):
        client.create_sale(draft)
    assert client.create_sale(draft).id == 8

    keys = [call.request.headers[IDEMPOTENCY_HEADER] for call in responses.calls]
    assert keys == [idempotency_key_for("txn-abc")] * 2
    assert json.loads(responses.calls[1].request.body)["transactionId"] == "txn-abc"
