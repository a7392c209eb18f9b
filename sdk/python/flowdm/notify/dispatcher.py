"""
ChangeNotificationDispatcher: queue-backed delivery of change sets.

Producers (a socket thread, or a test) call :meth:`QueueDispatcher.publish`.
The provisioning thread calls :meth:`QueueDispatcher.pump`, which waits up to
``timeout`` for the first change set and then drains whatever else is queued,
invoking matching callbacks synchronously on the calling thread in arrival
order.  Callbacks therefore never run concurrently with the provisioner.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

from ..core.paths import is_under

logger = logging.getLogger("flowdm.notify")


@dataclass(frozen=True)
class ChangeSet:
    """Values of the resources that changed under *path* on one client."""
    path:      str
    values:    Mapping[str, Any] = field(default_factory=dict)
    client_id: str | None        = None

    def contains(self, path: str) -> bool:
        return path in self.values

    def has_value(self, path: str) -> bool:
        """True when *path* is present and carries a non-empty value."""
        value = self.values.get(path)
        return value is not None and value != "" and value != b""

    def get(self, path: str, default: Any = None) -> Any:
        return self.values.get(path, default)


ChangeCallback = Callable[[ChangeSet, Any], None]


@dataclass(frozen=True)
class Subscription:
    id:        int
    path:      str
    callback:  ChangeCallback
    context:   Any        = None
    client_id: str | None = None

    def matches(self, change: ChangeSet) -> bool:
        if change.client_id != self.client_id:
            return False
        return is_under(change.path, self.path) or is_under(self.path, change.path)


class ChangeNotificationDispatcher(Protocol):
    def subscribe(
        self,
        path:      str,
        callback:  ChangeCallback,
        context:   Any        = None,
        client_id: str | None = None,
    ) -> Subscription:
        ...

    def unsubscribe(self, handle: Subscription) -> None:
        ...

    def pump(self, timeout: float = 0.0) -> int:
        ...

    def pending(self) -> int:
        """Change sets queued but not yet delivered."""
        ...


class QueueDispatcher:
    """In-process dispatcher over a bounded queue of :class:`ChangeSet`."""

    def __init__(self, queue_size: int = 256) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._subs:  dict[int, Subscription] = {}
        self._lock   = threading.Lock()
        self._ids    = itertools.count(1)

    # ── Producer side ─────────────────────────────────────────────────────────

    def publish(self, change: ChangeSet) -> None:
        """Queue *change* for the next :meth:`pump`.  Never blocks."""
        try:
            self._queue.put_nowait(change)
        except queue.Full:
            logger.warning("Notification queue full, dropping change on %s", change.path)

    # ── Consumer side ─────────────────────────────────────────────────────────

    def subscribe(
        self,
        path:      str,
        callback:  ChangeCallback,
        context:   Any        = None,
        client_id: str | None = None,
    ) -> Subscription:
        sub = Subscription(next(self._ids), path, callback, context, client_id)
        with self._lock:
            self._subs[sub.id] = sub
        logger.debug("Subscribed to %s%s", path, f" on {client_id}" if client_id else "")
        return sub

    def unsubscribe(self, handle: Subscription) -> None:
        with self._lock:
            self._subs.pop(handle.id, None)
        logger.debug("Unsubscribed from %s", handle.path)

    def pump(self, timeout: float = 0.0) -> int:
        """
        Deliver queued change sets.

        :param timeout: Seconds to wait for the first change set; ``0`` does
                        not wait.
        :returns:       Number of callbacks invoked.
        """
        changes: list[ChangeSet] = []
        try:
            if timeout > 0:
                changes.append(self._queue.get(timeout=timeout))
            else:
                changes.append(self._queue.get_nowait())
        except queue.Empty:
            return 0
        while True:
            try:
                changes.append(self._queue.get_nowait())
            except queue.Empty:
                break

        fired = 0
        for change in changes:
            with self._lock:
                subs = [s for s in self._subs.values() if s.matches(change)]
            if not subs:
                logger.debug("No subscriber for change on %s", change.path)
            for sub in subs:
                try:
                    sub.callback(change, sub.context)
                except Exception as e:
                    logger.exception("Change callback for %s raised: %s", sub.path, e)
                fired += 1
        return fired

    def pending(self) -> int:
        return self._queue.qsize()
