from __future__ import annotations

from dataclasses import dataclass

from .cart import Cart
from .clients.inventory_client import InventoryClient
from .clients.payment_client import PaymentClient
from .clients.products_client import ProductsClient
from .clients.sales_client import SalesClient
from .config import ClientConfig
from .http_client import HttpClient
from .reconciliation import StockReconciler
from .search import SearchResolver
from .stores import HttpInventoryStore, HttpPaymentGateway, HttpProductStore, HttpSaleStore, RedirectHook
from .tracing import TraceContext


@dataclass
class ApiSession:
    """Factory for the clients, stores and engine objects of one POS session.

    The bearer token is provided by the caller; this SDK never stores or
    reads back credentials.
    """

    config: ClientConfig
    token: str | None = None
    trace: TraceContext | None = None

    def __post_init__(self) -> None:
        self.trace = self.trace or TraceContext()

    def _http(self) -> HttpClient:
        return HttpClient(config=self.config, trace=self.trace)

    def products_client(self) -> ProductsClient:
        return ProductsClient(http=self._http(), access_token=self.token)

    def inventory_client(self) -> InventoryClient:
        return InventoryClient(http=self._http(), access_token=self.token)

    def sales_client(self) -> SalesClient:
        return SalesClient(http=self._http(), access_token=self.token)

    def payment_client(self) -> PaymentClient:
        return PaymentClient(http=self._http(), access_token=self.token)

    def product_store(self) -> HttpProductStore:
        return HttpProductStore(self.products_client())

    def inventory_store(self) -> HttpInventoryStore:
        return HttpInventoryStore(self.inventory_client())

    def sale_store(self) -> HttpSaleStore:
        return HttpSaleStore(self.sales_client())

    def payment_gateway(self, redirect: RedirectHook) -> HttpPaymentGateway:
        return HttpPaymentGateway(client=self.payment_client(), redirect=redirect)

    def new_cart(self) -> Cart:
        return Cart(merchant_name=self.config.merchant_name, currency=self.config.currency)

    def search_resolver(self) -> SearchResolver:
        return SearchResolver(
            store=self.product_store(),
            page_size=self.config.page_size,
            fallback_size=self.config.fallback_page_size,
        )

    def stock_reconciler(self) -> StockReconciler:
        return StockReconciler(
            products=self.product_store(),
            inventory=self.inventory_store(),
            max_concurrency=self.config.reconcile_concurrency,
        )

    def clear(self) -> None:
        self.token = None
