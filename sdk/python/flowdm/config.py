"""
Runtime settings.

Defaults match the agent's loopback deployment; every value can be
overridden by an environment variable::

    FLOWDM_STORE_URL=http://127.0.0.1:54321
    FLOWDM_NOTIFY_URL=ws://127.0.0.1:54321/v1/notifications
    FLOWDM_ACCESS_CFG=/etc/lwm2m/flow_access.cfg
    FLOWDM_CONFIRMATION=observe            # or "poll"
    FLOWDM_PROVISIONED_CHECK=complete      # or "access-exists"
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .core.errors import ValidationError

CONFIRMATION_MODES = ("observe", "poll")
PROVISIONED_CHECKS = ("complete", "access-exists")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}")


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.environ.get(name, "").strip().lower() or default
    if raw not in choices:
        raise ValidationError(f"{name} must be one of {', '.join(choices)}, got {raw!r}")
    return raw


@dataclass(frozen=True)
class Settings:
    store_url:   str   = "http://127.0.0.1:54321"
    notify_url:  str   = "ws://127.0.0.1:54321/v1/notifications"
    access_cfg:  str   = "/etc/lwm2m/flow_access.cfg"
    ipc_timeout: float = 1.0

    # Gateway: one pump of ``step_interval`` seconds per iteration.
    server_response_timeout: int   = 30
    drain_iterations:        int   = 2
    step_interval:           float = 1.0

    # Constrained devices
    constrained_timeout: float = 30.0
    poll_interval:       float = 2.0
    confirmation:        str   = "observe"
    provisioned_check:   str   = "complete"

    def __post_init__(self) -> None:
        if self.confirmation not in CONFIRMATION_MODES:
            raise ValidationError(f"unknown confirmation mode {self.confirmation!r}")
        if self.provisioned_check not in PROVISIONED_CHECKS:
            raise ValidationError(f"unknown provisioned check {self.provisioned_check!r}")
        for name in ("step_interval", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ValidationError(f"{name} must be positive, got {getattr(self, name)!r}")

    @classmethod
    def from_env(cls) -> "Settings":
        d = cls()
        return cls(
            store_url   = os.environ.get("FLOWDM_STORE_URL", "").strip() or d.store_url,
            notify_url  = os.environ.get("FLOWDM_NOTIFY_URL", "").strip() or d.notify_url,
            access_cfg  = os.environ.get("FLOWDM_ACCESS_CFG", "").strip() or d.access_cfg,
            ipc_timeout = _env_float("FLOWDM_IPC_TIMEOUT", d.ipc_timeout),
            server_response_timeout = _env_int("FLOWDM_SERVER_RESPONSE_TIMEOUT", d.server_response_timeout),
            drain_iterations        = _env_int("FLOWDM_DRAIN_ITERATIONS", d.drain_iterations),
            constrained_timeout     = _env_float("FLOWDM_CONSTRAINED_TIMEOUT", d.constrained_timeout),
            poll_interval           = _env_float("FLOWDM_POLL_INTERVAL", d.poll_interval),
            confirmation      = _env_choice("FLOWDM_CONFIRMATION", d.confirmation, CONFIRMATION_MODES),
            provisioned_check = _env_choice("FLOWDM_PROVISIONED_CHECK", d.provisioned_check, PROVISIONED_CHECKS),
        )
