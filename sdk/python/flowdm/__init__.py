"""
flowdm: Flow device manager for gateway and constrained-device provisioning.

Gateway usage::

    import flowdm

    dm = flowdm.connect()       # local agent at $FLOWDM_STORE_URL / $FLOWDM_NOTIFY_URL

    # Self-provision this gateway (licensee challenge/response)
    reply = dm.provision_gateway_device(
        device_name     = "gw-kitchen",
        device_type     = "Gateway",
        licensee_id     = 7,
        fcap            = "FCAP-1234",
        licensee_secret = "c2VjcmV0LWtleQ==",
    )
    # {"provision_status": 0}

    # Provision a constrained device registered with the server
    dm.provision_constrained_device(
        client_id   = "sensor-01",
        device_type = "Sensor",
        licensee_id = 7,
        fcap        = "FCAP-5678",
        parent_id   = "0A 1B 2C 3D 4E 5F 60 71 82 93 A4 B5 C6 D7 E8 F9 ",
    )

    dm.get_client_list()
    # {"clients": [{"clientId": "sensor-01", "is_device_provisioned": True}]}

Library usage with your own store and dispatcher::

    from flowdm import ProvisioningContext, GatewayProvisioner, ProvisionStatus

    ctx    = ProvisioningContext(store, dispatcher, Settings.from_env())
    status = GatewayProvisioner(ctx).provision("gw", "Gateway", 7, "FCAP", secret)
    assert status is ProvisionStatus.OK
"""

from __future__ import annotations

from .config             import Settings                                     # noqa: F401
from .core.errors        import (                                            # noqa: F401
    DecodeError,
    FlowDMError,
    NotFound,
    NullInputError,
    ProvisionTimeout,
    StoreError,
    StoreTimeout,
    ValidationError,
)
from .core.status        import DeviceStatus, ProvisionStatus                # noqa: F401
from .manager            import DeviceManager                                # noqa: F401
from .provision          import (                                            # noqa: F401
    ConstrainedProvisioner,
    GatewayProvisioner,
    ProvisioningContext,
    compute_licensee_hash,
)

__version__ = "0.1.0"


def connect(settings: Settings | None = None) -> DeviceManager:
    """
    Connect to the local agent and return a :class:`DeviceManager`.

    Opens the notification socket before returning; call
    :meth:`DeviceManager.close` when done.

    :param settings: Runtime settings.  Defaults to :meth:`Settings.from_env`.
    :raises StoreError: if the notification socket cannot be opened.
    """
    return DeviceManager.from_settings(settings or Settings.from_env())
