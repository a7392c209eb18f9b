"""
Constrained-device provisioning.

The gateway pushes identity data and its own device id (the parent linkage)
into a constrained device's identity object, then waits for the server to
populate the device's access object.  Confirmation is pluggable:

    PollConfirmation      re-reads the access object every ``poll_interval``
    ObserveConfirmation   subscribes to the access object and pumps the
                          dispatcher on the same cadence

Both are bounded by the same deadline and chosen by ``Settings.confirmation``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Protocol

from ..core.codec import format_parent_id, parse_parent_id
from ..core.errors import FlowDMError, NotFound, ProvisionTimeout, ValidationError
from ..core.objects import FLOW_OBJECTS
from ..core.paths import ResourcePathSet
from ..core.status import DeviceStatus, ProvisionStatus
from ..notify.dispatcher import ChangeSet, Subscription
from .context import ProvisioningContext

logger = logging.getLogger("flowdm.provision")


def access_complete(values: Mapping[str, Any], paths: ResourcePathSet) -> bool:
    """True when all five access resources carry values and the token expiry is set."""
    for path in paths.access_resources:
        value = values.get(path)
        if value is None or value == "" or value == b"":
            return False
    return values.get(paths.remember_me_token_expiry) != 0


# ── Confirmation strategies ───────────────────────────────────────────────────

class ConfirmationStrategy(Protocol):
    def begin(self) -> None:
        """Called before the identity write, so nothing the write triggers is missed."""
        ...

    def wait(self, deadline: float) -> bool:
        """Block until confirmed (True) or *deadline* on the monotonic clock passes (False)."""
        ...

    def end(self) -> None:
        ...


class PollConfirmation:
    """Re-read the device's access object until it is complete."""

    def __init__(self, context: ProvisioningContext, client_id: str) -> None:
        self._ctx       = context
        self._client_id = client_id

    def begin(self) -> None:
        pass

    def wait(self, deadline: float) -> bool:
        interval = self._ctx.settings.poll_interval
        while True:
            if self._poll():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(interval, remaining))

    def end(self) -> None:
        pass

    def _poll(self) -> bool:
        paths = self._ctx.paths
        try:
            values = self._ctx.store.read(paths.flow_access_instance, self._client_id)
        except NotFound:
            logger.debug("Access object not yet registered on %s", self._client_id)
            return False
        return access_complete(values, paths)


class ObserveConfirmation:
    """Observe the device's access object and pump the dispatcher until it is complete."""

    def __init__(self, context: ProvisioningContext, client_id: str) -> None:
        self._ctx          = context
        self._client_id    = client_id
        self._subscription: Subscription | None = None
        self.complete      = False

    def begin(self) -> None:
        self._subscription = self._ctx.dispatcher.subscribe(
            self._ctx.paths.flow_access_object, self._on_access_change, None, self._client_id,
        )

    def wait(self, deadline: float) -> bool:
        interval = self._ctx.settings.poll_interval
        while not self.complete:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._ctx.dispatcher.pump(timeout=min(interval, remaining))
        return True

    def end(self) -> None:
        if self._subscription is None:
            return
        try:
            self._ctx.dispatcher.unsubscribe(self._subscription)
        except FlowDMError as e:
            logger.error("Failed to cancel access observation on %s: %s", self._client_id, e)
        self._subscription = None

    def _on_access_change(self, change: ChangeSet, _context: Any) -> None:
        logger.info("Flow access object updated on %s", self._client_id)
        if access_complete(change.values, self._ctx.paths):
            self.complete = True
        else:
            logger.debug("Access notification for %s is not complete yet", self._client_id)


_STRATEGIES: dict[str, type] = {
    "poll":    PollConfirmation,
    "observe": ObserveConfirmation,
}


# ── Provisioner ───────────────────────────────────────────────────────────────

class ConstrainedProvisioner:
    """Provisions constrained devices registered with the gateway's server."""

    def __init__(self, context: ProvisioningContext, confirmation: str | None = None) -> None:
        mode = confirmation or context.settings.confirmation
        if mode not in _STRATEGIES:
            raise ValidationError(f"unknown confirmation mode {mode!r}")
        self._ctx          = context
        self._confirmation = _STRATEGIES[mode]

    def provision(
        self,
        client_id:   str,
        fcap:        str,
        device_type: str,
        licensee_id: int,
        parent_id:   str,
        timeout:     float | None = None,
    ) -> ProvisionStatus:
        """
        Provision the constrained device *client_id* under the gateway *parent_id*.

        :param parent_id: Gateway device id as 16 ``"XX "`` hex groups.
        :param timeout:   Seconds to wait for the access grant; defaults to
                          ``Settings.constrained_timeout``.
        """
        try:
            parent = parse_parent_id(parent_id)
        except ValidationError as e:
            logger.error("Invalid parent id: %s", e)
            return ProvisionStatus.FAIL
        if not all(isinstance(s, str) and s for s in (client_id, fcap, device_type)) \
                or not isinstance(licensee_id, int) or isinstance(licensee_id, bool):
            logger.error("Invalid parameters for constrained device provisioning")
            return ProvisionStatus.FAIL
        if timeout is None:
            timeout = self._ctx.settings.constrained_timeout

        logger.info(
            "Provisioning constrained device %s: type=%s licensee_id=%d fcap=%s parent=%s",
            client_id, device_type, licensee_id, fcap, format_parent_id(parent),
        )
        try:
            with self._ctx.attempt(f"provisioning of {client_id}"):
                return self._provision(client_id, fcap, device_type, licensee_id, parent, timeout)
        except ProvisionTimeout as e:
            logger.error("Timed out provisioning %s: %s", client_id, e)
        except FlowDMError as e:
            logger.error("Provisioning %s failed: %s", client_id, e)
        return ProvisionStatus.FAIL

    def device_status(self, client_id: str) -> DeviceStatus:
        """Fresh presence/registration snapshot of *client_id*."""
        store = self._ctx.store
        paths = self._ctx.paths
        if client_id not in store.list_clients():
            return DeviceStatus(present=False, identity_registered=False, access_registered=False)
        return DeviceStatus(
            present             = True,
            identity_registered = store.has_path(client_id, paths.flow_object_instance),
            access_registered   = store.has_path(client_id, paths.flow_access_instance),
        )

    def is_provisioned(self, client_id: str) -> bool:
        """Present and access object registered.  Read-only."""
        try:
            status = self.device_status(client_id)
        except FlowDMError as e:
            logger.error("Failed to query %s: %s", client_id, e)
            return False
        return status.present and status.access_registered

    def list_clients(self) -> list[dict]:
        """Every registered client with its provisioning state."""
        clients = self._ctx.store.list_clients()
        return [
            {"clientId": cid, "is_device_provisioned": self.is_provisioned(cid)}
            for cid in clients
        ]

    # ── Sequence ──────────────────────────────────────────────────────────────

    def _provision(
        self,
        client_id:   str,
        fcap:        str,
        device_type: str,
        licensee_id: int,
        parent:      bytes,
        timeout:     float,
    ) -> ProvisionStatus:
        self._ctx.store.define(*FLOW_OBJECTS)

        status = self.device_status(client_id)
        if not status.present:
            logger.error("Device %s not present", client_id)
            return ProvisionStatus.FAIL
        if self._already_provisioned(client_id, status):
            logger.info("Device %s already provisioned", client_id)
            return ProvisionStatus.ALREADY_PROVISIONED

        confirmation: ConfirmationStrategy = self._confirmation(self._ctx, client_id)
        deadline = time.monotonic() + timeout
        confirmation.begin()
        try:
            self._write_provisioning_info(client_id, fcap, device_type, licensee_id, parent, status)
            logger.info("Waiting for %s to be provisioned...", client_id)
            if not confirmation.wait(deadline):
                raise ProvisionTimeout(f"no access grant within {timeout:g}s")
        finally:
            confirmation.end()

        logger.info("Device %s provisioned successfully", client_id)
        return ProvisionStatus.OK

    def _already_provisioned(self, client_id: str, status: DeviceStatus) -> bool:
        if not status.access_registered:
            return False
        if self._ctx.settings.provisioned_check == "access-exists":
            return True
        paths = self._ctx.paths
        try:
            values = self._ctx.store.read(paths.flow_access_instance, client_id)
        except NotFound:
            return False
        return access_complete(values, paths)

    def _write_provisioning_info(
        self,
        client_id:   str,
        fcap:        str,
        device_type: str,
        licensee_id: int,
        parent:      bytes,
        status:      DeviceStatus,
    ) -> None:
        paths  = self._ctx.paths
        store  = self._ctx.store
        create = () if status.identity_registered else (paths.flow_object_instance,)
        store.write(
            {
                paths.fcap:        fcap,
                paths.device_type: device_type,
                paths.licensee_id: licensee_id,
            },
            client_id=client_id,
            create=create,
        )
        store.write({paths.parent_id: parent}, client_id=client_id)
