from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import invalid_response, map_error
from .exceptions import ApiError, TransportError
from .tracing import TRACE_HEADER, TraceContext

logger = logging.getLogger(__name__)

# Reads only. Sale submission, batch writes and gateway calls go out once and
# are retried by the operator, never silently.
RETRYABLE_METHODS = frozenset({"GET", "HEAD"})

JsonBody = dict[str, Any] | list[Any] | None


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


def pooled_session(config: ClientConfig) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=config.max_connections, pool_maxsize=config.max_connections)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _error_body(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text}
    return body if isinstance(body, dict) else {"message": response.text}


@dataclass
class HttpClient:
    """Blocking JSON transport to the SmartRetails store API."""

    config: ClientConfig
    trace: TraceContext | None = None
    session: requests.Session | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = pooled_session(self.config)

    def url_for(self, path: str) -> str:
        return urljoin(self.config.api_base_url.rstrip("/") + "/", path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> JsonBody:
        trace = self.trace or TraceContext()
        verb = method.upper()
        outgoing = {"Accept": "application/json", **(headers or {}), TRACE_HEADER: trace.ensure()}
        started = time.monotonic()
        try:
            response = self._send(verb, self.url_for(path), outgoing, json_body, params, operation, trace)
            body = self._read(response, operation, trace)
        except ApiError:
            self._record(module, operation, started, "error", trace.trace_id)
            raise
        self._record(module, operation, started, "success", trace.trace_id)
        return body

    def _send(
        self,
        verb: str,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any] | None,
        params: dict[str, Any] | None,
        operation: str,
        trace: TraceContext,
    ) -> requests.Response:
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        attempts = self.config.retries + 1 if verb in RETRYABLE_METHODS else 1
        for attempt in range(1, attempts + 1):
            last = attempt == attempts
            try:
                response = self.session.request(
                    method=verb,
                    url=url,
                    headers=headers,
                    json=json_body,
                    params=params,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if last:
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc),
                        details={"type": type(exc).__name__},
                        trace_id=trace.trace_id,
                        status_code=0,
                    ) from exc
                logger.warning(
                    "http_transport_retry",
                    extra={"operation": operation, "attempt": attempt, "error_type": type(exc).__name__},
                )
            else:
                if response.status_code < 500 or last:
                    return response
                logger.warning(
                    "http_server_error_retry",
                    extra={"operation": operation, "attempt": attempt, "status_code": response.status_code},
                )
            time.sleep(self.config.retry_backoff_seconds * (2 ** (attempt - 1)))
        raise RuntimeError("retry loop ended without a response")

    def _read(self, response: requests.Response, operation: str, trace: TraceContext) -> JsonBody:
        if not response.ok:
            body = _error_body(response)
            trace.adopt(response.headers, body)
            raise map_error(response.status_code, body, trace.trace_id)
        trace.adopt(response.headers)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(
                "http_invalid_response",
                extra={"operation": operation, "status_code": response.status_code},
            )
            raise invalid_response(
                str(exc),
                operation=operation,
                trace_id=trace.trace_id,
                status_code=response.status_code,
                raw_payload=response.text[:200],
            ) from exc

    def _record(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )
