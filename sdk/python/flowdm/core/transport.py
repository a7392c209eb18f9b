"""
HTTP transport to the local agent's object-store API.

Uses ``http.client`` with persistent connection pooling (HTTP/1.1 keep-alive)
so the many small reads and writes of a provisioning attempt reuse one socket.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
import socket
import threading
import time
import urllib.parse
from typing import Any

from .errors import NotFound, StoreError, StoreTimeout

logger = logging.getLogger("flowdm.store")

_POOL_MAX_SIZE = 8
_POOL_IDLE_TTL = 60.0  # seconds

_pool_lock = threading.Lock()
# (scheme, host, port) → (connection, last_used)
_pool: dict[tuple[str, str, int], tuple[http.client.HTTPConnection, float]] = {}


def _pool_key(url: str) -> tuple[str, str, int]:
    parsed = urllib.parse.urlparse(url)
    scheme = parsed.scheme or "http"
    host   = parsed.hostname or "localhost"
    port   = parsed.port or (443 if scheme == "https" else 80)
    return scheme, host, port


def _get_conn(url: str, timeout: float = 5.0) -> tuple[http.client.HTTPConnection, str]:
    """Return a keep-alive connection and the path portion of *url*."""
    parsed = urllib.parse.urlparse(url)
    path   = parsed.path or "/"
    if parsed.query:
        path += "?" + parsed.query

    key = _pool_key(url)
    now = time.monotonic()
    with _pool_lock:
        entry = _pool.get(key)
        if entry is not None:
            conn, last_used = entry
            if now - last_used < _POOL_IDLE_TTL:
                _pool[key] = (conn, now)
                return conn, path
            conn.close()
            _pool.pop(key, None)

        scheme, host, port = key
        if scheme == "https":
            conn = http.client.HTTPSConnection(host, port, timeout=timeout)
        else:
            conn = http.client.HTTPConnection(host, port, timeout=timeout)

        if len(_pool) >= _POOL_MAX_SIZE:
            oldest = min(_pool, key=lambda k: _pool[k][1])
            _pool.pop(oldest)[0].close()
        _pool[key] = (conn, now)
    return conn, path


def _drop_conn(url: str) -> None:
    with _pool_lock:
        entry = _pool.pop(_pool_key(url), None)
    if entry is not None:
        entry[0].close()


def _request(
    method:  str,
    url:     str,
    body:    bytes | None = None,
    headers: dict | None  = None,
    timeout: float        = 5.0,
) -> tuple[int, bytes]:
    """Execute an HTTP request with connection reuse and one retry on broken pipe."""
    hdrs = dict(headers or {})
    hdrs.setdefault("Connection", "keep-alive")
    if body is not None:
        hdrs.setdefault("Content-Type", "application/json")

    for attempt in range(2):
        try:
            conn, path = _get_conn(url, timeout)
            conn.timeout = timeout
            conn.request(method, path, body=body, headers=hdrs)
            resp = conn.getresponse()
            return resp.status, resp.read()
        except socket.timeout as e:
            _drop_conn(url)
            raise StoreTimeout(f"{method} {url} timed out after {timeout}s") from e
        except (ConnectionError, OSError, http.client.HTTPException) as e:
            _drop_conn(url)
            if attempt == 0:
                continue
            raise StoreError(f"{method} {url} failed: {e}") from e

    raise StoreError(f"{method} {url}: connection failed")


def _resolve_url(explicit: str | None, env_var: str, default: str) -> str:
    if explicit:
        return explicit.rstrip("/")
    from_env = os.environ.get(env_var, "").strip()
    if from_env:
        return from_env.rstrip("/")
    return default.rstrip("/")


def _check(method: str, url: str, status: int, data: bytes) -> Any:
    if status == 404:
        raise NotFound(f"{method} {url}: not found")
    if status == 504:
        raise StoreTimeout(f"{method} {url}: agent timed out waiting for the device")
    if status >= 400:
        raise StoreError(f"{method} {url} failed (HTTP {status}): {data.decode(errors='replace')}")
    if not data:
        return None
    try:
        return json.loads(data)
    except ValueError as e:
        raise StoreError(f"{method} {url}: malformed reply: {e}") from e


def get_json(
    url:     str,
    params:  dict | None = None,
    timeout: float       = 5.0,
) -> Any:
    """GET *url* and return parsed JSON.  Raises :class:`StoreError` on HTTP error."""
    if params:
        url += "?" + urllib.parse.urlencode(
            {k: v for k, v in params.items() if v is not None}
        )
    status, data = _request("GET", url, timeout=timeout)
    return _check("GET", url, status, data)


def post_json(url: str, body: dict, timeout: float = 5.0) -> Any:
    """POST JSON *body* to *url* and return the parsed response."""
    status, data = _request("POST", url, json.dumps(body).encode(), timeout=timeout)
    return _check("POST", url, status, data)


def put_json(url: str, body: dict, timeout: float = 5.0) -> Any:
    """PUT JSON *body* to *url* and return the parsed response."""
    status, data = _request("PUT", url, json.dumps(body).encode(), timeout=timeout)
    return _check("PUT", url, status, data)
