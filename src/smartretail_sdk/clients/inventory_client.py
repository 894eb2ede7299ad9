from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..inventory_validation import validate_batch_payload
from ..models_inventory import StockBatchPayload, StockBatchRaw
from ..models_products import ProductId
from ..normalization import normalize_batch, normalize_list, unwrap_envelope
from .base import BaseClient


def _written_batch(product_id: ProductId | None):
    def parse(data: Any) -> StockBatchRaw | None:
        body = unwrap_envelope(data)
        # Some store builds acknowledge writes with an empty body.
        if not isinstance(body, Mapping) or not body:
            return None
        return normalize_batch(body, product_id)

    return parse


@dataclass
class InventoryClient(BaseClient):
    module: str = "inventory"

    def list_batches(self, product_id: ProductId) -> list[StockBatchRaw]:
        return self._call(
            "GET",
            f"/api/inventory/product/{product_id}",
            lambda data: normalize_list(data, lambda row: normalize_batch(row, product_id)),
            operation="list_batches",
        )

    def create_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None:
        request = validate_batch_payload(payload)
        return self._call(
            "POST",
            "/api/inventory",
            _written_batch(request.product_id),
            json_body=request.model_dump(mode="json", by_alias=True, exclude={"id"}),
            operation="create_batch",
        )

    def update_batch(self, payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchRaw | None:
        request = validate_batch_payload(payload, require_id=True)
        return self._call(
            "PUT",
            f"/api/inventory/{request.id}",
            _written_batch(request.product_id),
            json_body=request.model_dump(mode="json", by_alias=True),
            operation="update_batch",
        )
