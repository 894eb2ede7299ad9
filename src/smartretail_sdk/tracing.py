from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Mapping

TRACE_HEADER = "X-Trace-ID"

# The store answers with its own request id under different names depending
# on which service handled the call.
_RESPONSE_HEADERS = (TRACE_HEADER, "X-Request-ID")
_BODY_FIELDS = ("trace_id", "traceId", "requestId")


def _first_text(values: Any) -> str | None:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


@dataclass
class TraceContext:
    """Correlation id shared by every call a POS session makes."""

    trace_id: str | None = None

    def ensure(self) -> str:
        if not self.trace_id:
            self.trace_id = uuid.uuid4().hex
        return self.trace_id

    def adopt(self, headers: Mapping[str, str] | None = None, body: Any = None) -> str | None:
        """Switch to the id the store reported; a body id wins over a header id."""
        from_body = None
        if isinstance(body, Mapping):
            from_body = _first_text(body.get(name) for name in _BODY_FIELDS)
        from_headers = _first_text((headers or {}).get(name) for name in _RESPONSE_HEADERS)
        reported = from_body or from_headers
        if reported:
            self.trace_id = reported
        return self.trace_id
