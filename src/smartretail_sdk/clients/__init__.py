from .base import BaseClient
from .inventory_client import InventoryClient
from .payment_client import PaymentClient
from .products_client import ProductsClient
from .sales_client import SalesClient

__all__ = [
    "BaseClient",
    "InventoryClient",
    "PaymentClient",
    "ProductsClient",
    "SalesClient",
]
