"""Explicit provisioning context shared by the gateway and constrained provisioners."""

from __future__ import annotations

import contextlib
import functools
import threading
from typing import Iterator

from ..config import Settings
from ..core.errors import FlowDMError
from ..core.paths import ResourcePathSet
from ..notify.dispatcher import ChangeNotificationDispatcher
from ..store.base import ObjectStoreClient


class ProvisioningContext:
    """
    Collaborators and process-level state for provisioning.

    Constructed once by the caller and handed to every provisioner.  Holds
    the resource path set (built on first use, immutable afterwards) and
    admits at most one provisioning attempt at a time.
    """

    def __init__(
        self,
        store:      ObjectStoreClient,
        dispatcher: ChangeNotificationDispatcher,
        settings:   Settings | None = None,
    ) -> None:
        self.store      = store
        self.dispatcher = dispatcher
        self.settings   = settings or Settings()
        self._attempt   = threading.Lock()

    @functools.cached_property
    def paths(self) -> ResourcePathSet:
        return ResourcePathSet.build()

    @contextlib.contextmanager
    def attempt(self, what: str) -> Iterator[None]:
        """Hold the single provisioning slot for the duration of *what*."""
        if not self._attempt.acquire(blocking=False):
            raise FlowDMError(f"cannot start {what}: another provisioning attempt is in progress")
        try:
            yield
        finally:
            self._attempt.release()
