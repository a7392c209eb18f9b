"""
AgentObjectStore: object store backed by the local agent's HTTP API.

Endpoints (JSON bodies)::

    GET  /v1/objects/{id}                     200 if defined, 404 otherwise
    POST /v1/objects        {"objects": [...]}
    GET  /v1/resources?path=&client_id=       {"values": {path: value}}
    PUT  /v1/resources      {"client_id", "create": [...], "values": {...}}
    GET  /v1/clients                          {"clients": ["id", ...]}

Opaque values are carried as ``{"opaque": "<base64>"}``.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Mapping, Sequence

from ..core.errors import NotFound, StoreError
from ..core.objects import ObjectDefinition
from ..core.transport import _resolve_url, get_json, post_json, put_json
from .base import Value

logger = logging.getLogger("flowdm.store")


def _encode(value: Value) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"opaque": base64.b64encode(bytes(value)).decode("ascii")}
    return value


def _decode(value: Any) -> Value:
    if isinstance(value, dict) and "opaque" in value:
        return base64.b64decode(value["opaque"])
    return value


class AgentObjectStore:
    """:class:`~flowdm.store.ObjectStoreClient` over the agent's loopback HTTP API."""

    def __init__(self, base_url: str | None = None, *, timeout: float = 1.0) -> None:
        self._base    = _resolve_url(base_url, "FLOWDM_STORE_URL", "http://127.0.0.1:54321")
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"AgentObjectStore({self._base!r})"

    # ── Schemas ───────────────────────────────────────────────────────────────

    def is_defined(self, object_id: int) -> bool:
        try:
            get_json(f"{self._base}/v1/objects/{object_id}", timeout=self._timeout)
        except NotFound:
            return False
        return True

    def define(self, *objects: ObjectDefinition) -> int:
        pending = []
        for obj in objects:
            if self.is_defined(obj.id):
                logger.debug("%s object already defined", obj.name)
                continue
            pending.append(obj)
        if not pending:
            return 0
        logger.info("Registering objects: %s", ", ".join(o.name for o in pending))
        post_json(
            f"{self._base}/v1/objects",
            {"objects": [o.to_dict() for o in pending]},
            timeout=self._timeout,
        )
        return len(pending)

    # ── Resources ─────────────────────────────────────────────────────────────

    def read(self, path: str, client_id: str | None = None) -> dict[str, Value]:
        resp = get_json(
            f"{self._base}/v1/resources",
            params={"path": path, "client_id": client_id},
            timeout=self._timeout,
        )
        values = (resp or {}).get("values")
        if values is None:
            raise StoreError(f"read {path}: response has no values")
        return {p: _decode(v) for p, v in values.items()}

    def exists(self, path: str, client_id: str | None = None) -> bool:
        try:
            self.read(path, client_id)
        except NotFound:
            return False
        return True

    def write(
        self,
        values:    Mapping[str, Value],
        *,
        client_id: str | None    = None,
        create:    Sequence[str] = (),
    ) -> None:
        logger.debug("Writing %s%s", ", ".join(values), f" on {client_id}" if client_id else "")
        body: dict[str, Any] = {"values": {p: _encode(v) for p, v in values.items()}}
        if client_id:
            body["client_id"] = client_id
        if create:
            body["create"] = list(create)
        put_json(f"{self._base}/v1/resources", body, timeout=self._timeout)

    # ── Clients ───────────────────────────────────────────────────────────────

    def list_clients(self) -> list[str]:
        resp = get_json(f"{self._base}/v1/clients", timeout=self._timeout)
        return [str(c) for c in (resp or {}).get("clients", [])]

    def has_path(self, client_id: str, path: str) -> bool:
        return self.exists(path, client_id)
