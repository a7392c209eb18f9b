"""
DeviceManager: RPC-shaped facade over the gateway and constrained provisioners.

Not part of the public API; build one with ``flowdm.connect()``.
Every method returns a plain dict ready to be serialised as the bus reply.
"""

from __future__ import annotations

import logging

from .config import Settings
from .core.errors import FlowDMError
from .notify.dispatcher import ChangeNotificationDispatcher
from .provision.constrained import ConstrainedProvisioner
from .provision.context import ProvisioningContext
from .provision.gateway import GatewayProvisioner
from .store.base import ObjectStoreClient

logger = logging.getLogger("flowdm")


class DeviceManager:
    """
    Gateway-side device manager.

    Composed of two provisioners sharing one :class:`ProvisioningContext`:

    - ``gateway``     (:class:`~flowdm.provision.gateway.GatewayProvisioner`)
    - ``constrained`` (:class:`~flowdm.provision.constrained.ConstrainedProvisioner`)
    """

    def __init__(
        self,
        store:      ObjectStoreClient,
        dispatcher: ChangeNotificationDispatcher,
        settings:   Settings | None = None,
    ) -> None:
        self.context     = ProvisioningContext(store, dispatcher, settings)
        self.gateway     = GatewayProvisioner(self.context)
        self.constrained = ConstrainedProvisioner(self.context)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DeviceManager":
        """Connect to the local agent's store and notification socket."""
        from .notify.ws import WebSocketDispatcher
        from .store.agent import AgentObjectStore

        store      = AgentObjectStore(settings.store_url, timeout=settings.ipc_timeout)
        dispatcher = WebSocketDispatcher(settings.notify_url)
        dispatcher.start()
        return cls(store, dispatcher, settings)

    def close(self) -> None:
        stop = getattr(self.context.dispatcher, "stop", None)
        if stop is not None:
            stop()

    # ── Gateway ───────────────────────────────────────────────────────────────

    def provision_gateway_device(
        self,
        device_name:     str,
        device_type:     str,
        licensee_id:     int,
        fcap:            str,
        licensee_secret: str,
    ) -> dict:
        status = self.gateway.provision(device_name, device_type, licensee_id, fcap, licensee_secret)
        return {"provision_status": int(status)}

    def is_gateway_device_provisioned(self) -> dict:
        return {"provision_status": self.gateway.is_provisioned()}

    # ── Constrained devices ───────────────────────────────────────────────────

    def provision_constrained_device(
        self,
        client_id:   str,
        device_type: str,
        licensee_id: int,
        fcap:        str,
        parent_id:   str,
    ) -> dict:
        status = self.constrained.provision(client_id, fcap, device_type, licensee_id, parent_id)
        return {"status": int(status)}

    def is_constrained_device_provisioned(self, client_id: str) -> dict:
        return {"provision_status": self.constrained.is_provisioned(client_id)}

    def get_client_list(self) -> dict:
        try:
            clients = self.constrained.list_clients()
        except FlowDMError as e:
            logger.error("Failed to list clients: %s", e)
            clients = []
        return {"clients": clients}
