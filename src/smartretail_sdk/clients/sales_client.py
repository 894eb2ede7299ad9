from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from functools import partial
from typing import Any

from ..exceptions import MissingSaleIdError
from ..idempotency import sale_keys
from ..models_products import Page
from ..models_sales import FinalizedSale, SaleDraft, SalesSummary
from ..normalization import normalize_page, normalize_sale, unwrap_envelope
from ..report_validation import validate_report_range
from .base import BaseClient


def _sale_row(row: Any) -> FinalizedSale:
    sale = normalize_sale(row)
    if sale is None:
        raise ValueError("sale row without an id in list response")
    return sale


def _summary(start: datetime, end: datetime):
    def parse(data: Any) -> SalesSummary | None:
        body = unwrap_envelope(data)
        # An empty list means the store has no summary for the window.
        if not isinstance(body, dict):
            return None
        summary = SalesSummary.model_validate(body)
        return summary.model_copy(
            update={
                "from_date": summary.from_date or start.date(),
                "to_date": summary.to_date or end.date(),
            }
        )

    return parse


@dataclass
class SalesClient(BaseClient):
    module: str = "sales"

    def create_sale(self, draft: SaleDraft, idempotency_key: str | None = None) -> FinalizedSale:
        """Submit a sale once.

        The Idempotency-Key follows the draft's transaction id, so resubmitting
        the same draft after a timeout cannot book the sale twice.
        """
        keys = sale_keys(draft.transaction_id, idempotency_key)
        request = draft.model_copy(update={"transaction_id": keys.transaction_id})

        def acknowledged(data: Any) -> FinalizedSale:
            sale = normalize_sale(data)
            if sale is None:
                raise MissingSaleIdError(
                    code="MISSING_SALE_ID",
                    message="Sale store acknowledged the sale without an id",
                    details={"transaction_id": keys.transaction_id},
                    trace_id=self.http.trace.trace_id if self.http.trace else None,
                    status_code=0,
                    raw_payload=data,
                )
            return sale

        return self._call(
            "POST",
            "/api/sales",
            acknowledged,
            json_body=request.model_dump(mode="json", by_alias=True, exclude_none=True),
            headers=keys.headers(),
            operation="create_sale",
        )

    def list_sales(self, page: int = 0, size: int = 20) -> Page[FinalizedSale]:
        return self._call(
            "GET",
            "/api/sales",
            partial(normalize_page, item=_sale_row, page=page, size=size),
            params={"page": page, "size": size},
            operation="list_sales",
        )

    def get_sale(self, sale_id: int | str) -> FinalizedSale:
        return self._call("GET", f"/api/sales/{sale_id}", _sale_row, operation="get_sale")

    def sales_summary(self, from_date: date | str | None, to_date: date | str | None) -> SalesSummary | None:
        start, end = validate_report_range(from_date, to_date)
        return self._call(
            "GET",
            "/api/reports/sales",
            _summary(start, end),
            params={"from": start.isoformat(), "to": end.isoformat()},
            operation="sales_summary",
        )
