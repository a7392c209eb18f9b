"""Provisioning outcomes and per-device status snapshots."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ProvisionStatus(enum.IntEnum):
    """Terminal outcome of a provisioning call.  Values are the RPC wire values."""
    OK                  = 0
    FAIL                = 1
    ALREADY_PROVISIONED = 2


@dataclass(frozen=True)
class DeviceStatus:
    """Snapshot of a constrained device as seen by the store.  Never cached."""
    present:             bool
    identity_registered: bool
    access_registered:   bool
