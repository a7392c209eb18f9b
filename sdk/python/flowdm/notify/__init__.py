"""
Change notifications pushed by the store.

Standalone usage::

    from flowdm.notify import WebSocketDispatcher

    dispatcher = WebSocketDispatcher("ws://127.0.0.1:54321/v1/notifications")
    dispatcher.start()
    handle = dispatcher.subscribe("/20001", on_access_change)
    while waiting:
        dispatcher.pump(timeout=1.0)
    dispatcher.unsubscribe(handle)
"""

from .dispatcher import (  # noqa: F401
    ChangeCallback,
    ChangeNotificationDispatcher,
    ChangeSet,
    QueueDispatcher,
    Subscription,
)
from .ws import WebSocketDispatcher  # noqa: F401

__all__ = [
    "ChangeCallback",
    "ChangeNotificationDispatcher",
    "ChangeSet",
    "QueueDispatcher",
    "Subscription",
    "WebSocketDispatcher",
]
