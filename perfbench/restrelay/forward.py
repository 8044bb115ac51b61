"""The ``forward`` family of actions: relay the request to the next server."""

from __future__ import annotations

import http.client
import threading
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import urlsplit

from .helpers import ActionError, RequestWrapper, parse_file_size

MAX_IDLE_CONNS_PER_HOST = 100

_Key = tuple[str, str, int]


class _HTTPPool:
    """Keeps idle keep-alive connections per host for reuse."""

    def __init__(self, max_idle_per_host: int) -> None:
        self._max_idle = max_idle_per_host
        self._lock = threading.Lock()
        self._idle: dict[_Key, list[http.client.HTTPConnection]] = {}

    def _acquire(self, key: _Key) -> tuple[http.client.HTTPConnection, bool]:
        with self._lock:
            idle = self._idle.get(key)
            if idle:
                return idle.pop(), True
        scheme, host, port = key
        cls = http.client.HTTPSConnection if scheme == "https" else http.client.HTTPConnection
        return cls(host, port), False

    def _release(self, key: _Key, conn: http.client.HTTPConnection) -> None:
        with self._lock:
            idle = self._idle.setdefault(key, [])
            if len(idle) < self._max_idle:
                idle.append(conn)
                return
        conn.close()

    def get(self, url: str, headers: dict[str, str], body: bytes | None) -> bytes:
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ActionError(f'Get "{url}": unsupported protocol scheme "{parts.scheme}"')
        try:
            port = parts.port or (443 if parts.scheme == "https" else 80)
        except ValueError as exc:
            raise ActionError(f'Get "{url}": {exc}') from exc
        key = (parts.scheme, parts.hostname, port)
        target = (parts.path or "/") + (f"?{parts.query}" if parts.query else "")

        for attempt in range(2):
            conn, reused = self._acquire(key)
            try:
                conn.request("GET", target, body=body, headers=headers)
                response = conn.getresponse()
                data = response.read()
            except (http.client.HTTPException, OSError) as exc:
                conn.close()
                if reused and attempt == 0:
                    continue
                raise ActionError(f'Get "{url}": {exc}') from exc
            if response.will_close:
                conn.close()
            else:
                self._release(key, conn)
            return data
        raise ActionError(f'Get "{url}": request failed')


_pool = _HTTPPool(MAX_IDLE_CONNS_PER_HOST)


def parse_optional_connection_header(args: Mapping[str, object]) -> str:
    """Return the single ``connection`` query value if it is keep-alive or close, else ''."""
    values = list(args.get("connection") or ())
    if len(values) != 1 or values[0] not in ("keep-alive", "close"):
        return ""
    return values[0]


def forward(
    base_url: str,
    parent_request: RequestWrapper,
    correlation_id: str,
    req_body: bytes | None = None,
) -> bytes:
    """GET ``base_url`` plus the parent request's URI and return the response body."""
    if not base_url:
        raise ActionError("base URL is empty, Forward failed")
    headers: dict[str, str] = {}
    connection = parse_optional_connection_header(parent_request.args) or parent_request.connection_header
    if connection:
        headers["Connection"] = connection
    headers["X-Correlation-ID"] = correlation_id
    return _pool.get(base_url + parent_request.uri, headers, req_body)


@dataclass
class ForwardDataAction:
    """Carries the requested size of the body sent with ``forwarddata``."""

    size: int = 0

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``size`` parameter, e.g. ``4KB``."""
        raw = params.get("size")
        if raw is None:
            raise ActionError("size parameter is missing")
        try:
            self.size = parse_file_size(raw)
        except ActionError as exc:
            raise ActionError(
                f"failed conversion string to int in ForwardDataArguments with: {exc}"
            ) from exc