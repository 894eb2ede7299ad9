from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ClientValidationError, ValidationIssue
from .models_inventory import StockBatchPayload


def validate_batch_payload(
    payload: StockBatchPayload | Mapping[str, Any],
    *,
    require_id: bool = False,
) -> StockBatchPayload:
    data = _coerce_payload(payload)
    issues: list[ValidationIssue] = []
    if data.product_id is None or (isinstance(data.product_id, str) and not data.product_id.strip()):
        issues.append(ValidationIssue(field="product_id", reason="select a product", code="REQUIRED"))
    if require_id and data.id is None:
        issues.append(ValidationIssue(field="id", reason="batch id is required for updates", code="REQUIRED"))
    if data.quantity < 0:
        issues.append(ValidationIssue(field="quantity", reason="must be >= 0", code="OUT_OF_RANGE"))
    if data.cost_price < 0:
        issues.append(ValidationIssue(field="cost_price", reason="must be >= 0", code="OUT_OF_RANGE"))
    if issues:
        raise ClientValidationError(issues)
    return data.model_copy(
        update={
            "batch_number": data.batch_number.strip(),
            "location": data.location.strip(),
        }
    )


def _coerce_payload(payload: StockBatchPayload | Mapping[str, Any]) -> StockBatchPayload:
    if isinstance(payload, StockBatchPayload):
        return payload
    try:
        return StockBatchPayload.model_validate(payload)
    except PydanticValidationError as exc:
        errors = exc.errors()
        issue = errors[0] if errors else {"loc": ("payload",), "msg": "Invalid payload"}
        field = ".".join(str(part) for part in issue.get("loc", ("payload",)))
        raise ClientValidationError(
            [ValidationIssue(field=field, reason=str(issue.get("msg", "Invalid payload")), code="INVALID")]
        ) from exc
