"""
WebSocketDispatcher: change notifications from the agent's push socket.

The agent accepts ``{"op": "observe" | "cancel", "path", "client_id"}``
requests and pushes ``{"path", "client_id", "values"}`` frames whenever an
observed object changes.  Frames are parsed on the socket thread and queued;
callbacks only run when the owner calls :meth:`pump`.  Requires
``websocket-client``.
"""

from __future__ import annotations

import base64
import json
import logging
import threading
from typing import Any

from ..core.errors import StoreError
from ..core.transport import _resolve_url
from .dispatcher import ChangeCallback, ChangeSet, QueueDispatcher, Subscription

logger = logging.getLogger("flowdm.notify")


def _decode_values(values: dict) -> dict:
    out: dict[str, Any] = {}
    for path, value in values.items():
        if isinstance(value, dict) and "opaque" in value:
            value = base64.b64decode(value["opaque"])
        out[path] = value
    return out


class WebSocketDispatcher(QueueDispatcher):
    """Queue dispatcher fed by the agent's notification WebSocket."""

    def __init__(
        self,
        url:             str | None = None,
        *,
        connect_timeout: float = 5.0,
        queue_size:      int   = 256,
    ) -> None:
        super().__init__(queue_size=queue_size)
        self._url             = _resolve_url(url, "FLOWDM_NOTIFY_URL", "ws://127.0.0.1:54321/v1/notifications")
        self._connect_timeout = connect_timeout
        self._ws:     Any = None
        self._thread: threading.Thread | None = None
        self._opened  = threading.Event()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Open the socket and wait until it is ready (raises StoreError on failure)."""
        if self._thread is not None:
            return
        try:
            import websocket  # type: ignore[import]
        except ImportError:
            raise ImportError(
                "websocket-client is required for change notifications. "
                "Install with: pip install websocket-client"
            )

        self._ws = websocket.WebSocketApp(
            self._url,
            on_open=lambda ws: self._opened.set(),
            on_message=self._on_message,
            on_error=lambda ws, e: logger.warning("Notification socket error: %s", e),
            on_close=lambda ws, code, msg: self._opened.clear(),
        )
        self._thread = threading.Thread(
            target=self._ws.run_forever, kwargs={"ping_interval": 30},
            name="flowdm-notify", daemon=True,
        )
        self._thread.start()
        if not self._opened.wait(self._connect_timeout):
            self.stop()
            raise StoreError(f"Notification socket {self._url} did not open within {self._connect_timeout}s")
        logger.info("Notification socket connected to %s", self._url)

    def stop(self) -> None:
        if self._ws is not None:
            self._ws.close()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._ws     = None
        self._thread = None
        self._opened.clear()

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(
        self,
        path:      str,
        callback:  ChangeCallback,
        context:   Any        = None,
        client_id: str | None = None,
    ) -> Subscription:
        self._send({"op": "observe", "path": path, "client_id": client_id})
        return super().subscribe(path, callback, context, client_id)

    def unsubscribe(self, handle: Subscription) -> None:
        super().unsubscribe(handle)
        self._send({"op": "cancel", "path": handle.path, "client_id": handle.client_id})

    # ── Socket callbacks ──────────────────────────────────────────────────────

    def _send(self, message: dict) -> None:
        if self._ws is None or not self._opened.is_set():
            raise StoreError("Notification socket is not connected")
        try:
            self._ws.send(json.dumps(message))
        except Exception as e:
            raise StoreError(f"Failed to send {message['op']} for {message['path']}: {e}") from e

    def _on_message(self, ws: Any, message: Any) -> None:
        if not isinstance(message, str):
            return
        try:
            data = json.loads(message)
            change = ChangeSet(
                path      = data["path"],
                values    = _decode_values(data.get("values") or {}),
                client_id = data.get("client_id"),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed notification: %s", e)
            return
        self.publish(change)
