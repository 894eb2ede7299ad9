"""Keys that make a sale submission safe to repeat.

A sale is identified by its transaction id, minted once per set of cart
contents. The Idempotency-Key header is derived from it, so a retry of the
same cart always replays the same key and the store can answer with the sale
it already committed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

IDEMPOTENCY_HEADER = "Idempotency-Key"

_SALE_KEY_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "smartretail:sales")


@dataclass(frozen=True)
class SaleKeys:
    transaction_id: str
    idempotency_key: str

    def headers(self) -> dict[str, str]:
        return {IDEMPOTENCY_HEADER: self.idempotency_key}


def new_transaction_id() -> str:
    return f"txn-{uuid.uuid4().hex}"


def idempotency_key_for(transaction_id: str) -> str:
    return str(uuid.uuid5(_SALE_KEY_NAMESPACE, transaction_id))


def sale_keys(transaction_id: str | None = None, idempotency_key: str | None = None) -> SaleKeys:
    resolved = transaction_id or new_transaction_id()
    return SaleKeys(transaction_id=resolved, idempotency_key=idempotency_key or idempotency_key_for(resolved))
