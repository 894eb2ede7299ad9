from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..error_mapper import invalid_response
from ..http_client import HttpClient, JsonBody

T = TypeVar("T")


@dataclass
class BaseClient:
    """Bearer-authenticated access to one store resource.

    Every call names a ``parse`` step that turns the decoded body into SDK
    models. A body the parser cannot make sense of is reported as an
    ``INVALID_RESPONSE`` transport error, never as a bare ``ValueError``.
    """

    http: HttpClient
    access_token: str | None = None
    module: str = "store"

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _call(
        self,
        method: str,
        path: str,
        parse: Callable[[JsonBody], T],
        *,
        operation: str,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> T:
        data = self.http.request(
            method,
            path,
            headers=self._headers(headers),
            json_body=json_body,
            params=params,
            module=self.module,
            operation=operation,
        )
        try:
            return parse(data)
        except ValueError as exc:
            # pydantic's ValidationError is a ValueError too.
            raise invalid_response(
                str(exc),
                operation=operation,
                trace_id=self.http.trace.trace_id if self.http.trace else None,
                raw_payload=data,
            ) from exc
