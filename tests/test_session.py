from __future__ import annotations

from smartretail_sdk.config import ClientConfig
from smartretail_sdk.session import ApiSession


def _session() -> ApiSession:
    cfg = ClientConfig(
        env_name="test",
        api_base_url="https://pos.example.com",
        merchant_name="Corner Store",
        currency="USD",
        page_size=10,
        fallback_page_size=200,
        reconcile_concurrency=3,
    )
    return ApiSession(cfg, token="token")


def test_session_builds_engine_objects_from_config() -> None:
    session = _session()
    cart = session.new_cart()
    assert (cart.merchant_name, cart.currency) == ("Corner Store", "USD")

    resolver = session.search_resolver()
    assert (resolver.page_size, resolver.fallback_size) == (10, 200)

    reconciler = session.stock_reconciler()
    assert reconciler.max_concurrency == 3
    assert reconciler.inventory.client.access_token == "token"


def test_clients_share_the_session_trace() -> None:
    session = _session()
    products = session.products_client()
    sales = session.sales_client()
    assert products.http.trace is session.trace
    assert sales.http.trace is session.trace


def test_clear_drops_the_token() -> None:
    session = _session()
    session.clear()
    assert session.token is None
    assert session.payment_client().access_token is None
