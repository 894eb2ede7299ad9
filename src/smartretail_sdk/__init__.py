from .cart import Cart, CartState, FinalizeResult, coerce_quantity
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    ApiError,
    CardExpiredError,
    CartStateError,
    ClientValidationError,
    EmptyCartError,
    ForbiddenError,
    GatewayError,
    InvalidCardNumberError,
    InvalidExpiryError,
    InvalidOperatorIdError,
    InvalidTransferHandleError,
    NotFoundError,
    NotFoundOrEmptyError,
    ReconciliationPartialFailure,
    TransportError,
    UnauthorizedError,
    ValidationError,
    ValidationIssue,
)
from .http_client import HttpClient
from .idempotency import SaleKeys, sale_keys
from .models_cart import CartLine, Discount, DiscountPolicy
from .models_inventory import StockBatchPayload, StockBatchRaw
from .models_payment import (
    CardPayment,
    CashPayment,
    GatewayCancelled,
    GatewayFailure,
    GatewayOrder,
    GatewayPayment,
    GatewaySuccess,
    TransferPayment,
    parse_payment_method,
)
from .models_products import Page, Product
from .models_sales import FinalizedSale, SaleDraft, SaleItem, SalesSummary
from .payment_validation import (
    PaymentContext,
    PaymentValidationResult,
    build_transfer_request_uri,
    luhn_check,
    mask_card_number,
    validate_payment,
)
from .pricing import CartTotals, compute_totals
from .reconciliation import (
    MergedStockRow,
    ReconciliationResult,
    StockReconciler,
    batch_key,
    filter_rows,
    merge_batch,
    reconcile_batches,
)
from .search import SearchResolver, SearchResult
from .session import ApiSession
from .tracing import TraceContext
from .ui_errors import UserFacingError, to_user_facing_error

__all__ = [
    "ApiError",
    "ApiSession",
    "CardExpiredError",
    "CardPayment",
    "Cart",
    "CartLine",
    "CartState",
    "CartStateError",
    "CartTotals",
    "CashPayment",
    "ClientConfig",
    "ClientValidationError",
    "ConfigError",
    "Discount",
    "DiscountPolicy",
    "EmptyCartError",
    "FinalizeResult",
    "FinalizedSale",
    "ForbiddenError",
    "GatewayCancelled",
    "GatewayError",
    "GatewayFailure",
    "GatewayOrder",
    "GatewayPayment",
    "GatewaySuccess",
    "HttpClient",
    "InvalidCardNumberError",
    "InvalidExpiryError",
    "InvalidOperatorIdError",
    "InvalidTransferHandleError",
    "MergedStockRow",
    "NotFoundError",
    "NotFoundOrEmptyError",
    "Page",
    "PaymentContext",
    "PaymentValidationResult",
    "Product",
    "ReconciliationPartialFailure",
    "ReconciliationResult",
    "SaleDraft",
    "SaleKeys",
    "SaleItem",
    "SalesSummary",
    "SearchResolver",
    "SearchResult",
    "StockBatchPayload",
    "StockBatchRaw",
    "StockReconciler",
    "TraceContext",
    "TransferPayment",
    "TransportError",
    "UnauthorizedError",
    "UserFacingError",
    "ValidationError",
    "ValidationIssue",
    "batch_key",
    "build_transfer_request_uri",
    "coerce_quantity",
    "compute_totals",
    "filter_rows",
    "load_config",
    "luhn_check",
    "mask_card_number",
    "merge_batch",
    "parse_payment_method",
    "reconcile_batches",
    "sale_keys",
    "to_user_facing_error",
    "validate_payment",
]
