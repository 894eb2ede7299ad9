"""Async store contracts consumed by the engine, and their HTTP-backed implementations.

The HTTP clients are blocking (``requests``); each call is pushed to a worker
thread so that every remote call is an await point for the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Mapping, Protocol

from .clients.inventory_client import InventoryClient
from .clients.payment_client import PaymentClient
from .clients.products_client import ProductsClient
from .clients.sales_client import SalesClient
from .models_inventory import StockBatchPayload, StockBatchRaw
from .models_payment import GatewayCancelled, GatewayOrder, GatewayOutcome, GatewaySuccess
from .models_products import Page, Product, ProductId
from .models_sales import FinalizedSale, SaleDraft

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    async def list_products(self, page: int, size: int) -> Page[Product]: ...

    async def search_products(self, query: str, page: int, size: int) -> Page[Product]: ...


class InventoryStore(Protocol):
    async def list_batches(self, product_id: ProductId) -> list[StockBatchRaw]: ...

    async def create_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None: ...

    async def update_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None: ...


class SaleStore(Protocol):
    async def create_sale(self, draft: SaleDraft) -> FinalizedSale: ...

    async def list_sales(self, page: int, size: int) -> Page[FinalizedSale]: ...

    async def get_sale(self, sale_id: int | str) -> FinalizedSale: ...


class PaymentGateway(Protocol):
    async def create_order(self, amount: Decimal) -> GatewayOrder: ...

    async def await_outcome(self, order: GatewayOrder) -> GatewayOutcome: ...

    async def verify_payment(self, success: GatewaySuccess) -> bool: ...


@dataclass
class HttpProductStore:
    client: ProductsClient

    async def list_products(self, page: int, size: int) -> Page[Product]:
        return await asyncio.to_thread(self.client.list_products, page, size)

    async def search_products(self, query: str, page: int, size: int) -> Page[Product]:
        return await asyncio.to_thread(self.client.search_products, query, page, size)


@dataclass
class HttpInventoryStore:
    client: InventoryClient

    async def list_batches(self, product_id: ProductId) -> list[StockBatchRaw]:
        return await asyncio.to_thread(self.client.list_batches, product_id)

    async def create_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None:
        return await asyncio.to_thread(self.client.create_batch, payload)

    async def update_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None:
        return await asyncio.to_thread(self.client.update_batch, payload)


@dataclass
class HttpSaleStore:
    client: SalesClient

    async def create_sale(self, draft: SaleDraft) -> FinalizedSale:
        return await asyncio.to_thread(self.client.create_sale, draft)

    async def list_sales(self, page: int, size: int) -> Page[FinalizedSale]:
        return await asyncio.to_thread(self.client.list_sales, page, size)

    async def get_sale(self, sale_id: int | str) -> FinalizedSale:
        return await asyncio.to_thread(self.client.get_sale, sale_id)


RedirectHook = Callable[[GatewayOrder], None]


@dataclass
class HttpPaymentGateway:
    """Gateway whose redirect/popup step is driven by the UI.

    ``redirect`` opens the checkout for an order; the UI then reports the
    result through ``deliver`` which resolves the pending ``await_outcome``.
    """

    client: PaymentClient
    redirect: RedirectHook
    _pending: dict[str, asyncio.Future[GatewayOutcome]] = field(default_factory=dict)

    async def create_order(self, amount: Decimal) -> GatewayOrder:
        return await asyncio.to_thread(self.client.create_order, amount)

    async def await_outcome(self, order: GatewayOrder) -> GatewayOutcome:
        future: asyncio.Future[GatewayOutcome] = asyncio.get_running_loop().create_future()
        self._pending[order.order_id] = future
        try:
            self.redirect(order)
            return await future
        finally:
            self._pending.pop(order.order_id, None)

    async def verify_payment(self, success: GatewaySuccess) -> bool:
        return await asyncio.to_thread(self.client.verify_payment, success)

    def deliver(self, order_id: str, outcome: GatewayOutcome) -> bool:
        """Resolve a pending order; returns False for unknown or already settled orders."""
        future = self._pending.get(order_id)
        if future is None or future.done():
            logger.info("gateway_callback_ignored", extra={"order_id": order_id})
            return False
        future.set_result(outcome)
        return True

    def abandon_all(self) -> None:
        for order_id, future in list(self._pending.items()):
            if not future.done():
                future.set_result(GatewayCancelled(reason="checkout abandoned"))
            self._pending.pop(order_id, None)
