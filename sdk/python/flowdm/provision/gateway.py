"""
Gateway self-provisioning.

Sequence: register schemas → bail out if already provisioned → populate the
identity object → subscribe to identity/access changes → wait for the
server's challenge, answer it once, wait for the access grant → drain
residual notifications → unsubscribe → save the access details.

Phases::

    IDLE → POPULATING_IDENTITY → AWAITING_CHALLENGE → VERIFYING_LICENSEE
         → AWAITING_ACCESS_GRANT → PROVISIONED | TIMED_OUT
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass

from ..core.errors import FlowDMError
from ..core.objects import DEVICE_OBJECT, FLOW_ACCESS_OBJECT, FLOW_OBJECT, FLOW_OBJECTS
from ..core.status import ProvisionStatus
from ..notify.dispatcher import ChangeSet, Subscription
from ..record import collect_saved_resources, write_record
from .context import ProvisioningContext
from .licensee import perform_licensee_verification

logger = logging.getLogger("flowdm.provision")


class GatewayPhase(enum.Enum):
    IDLE                  = "idle"
    POPULATING_IDENTITY   = "populating-identity"
    AWAITING_CHALLENGE    = "awaiting-challenge"
    VERIFYING_LICENSEE    = "verifying-licensee"
    AWAITING_ACCESS_GRANT = "awaiting-access-grant"
    PROVISIONED           = "provisioned"
    TIMED_OUT             = "timed-out"
    FAILED                = "failed"


@dataclass
class VerificationState:
    """Per-attempt challenge/response bookkeeping.  Never reused across attempts."""
    challenge:          bytes | None = None
    iterations:         int          = 0
    licensee_hash:      bytes | None = None
    waiting_for_server: bool         = True
    has_challenge:      bool         = False
    has_iterations:     bool         = False
    ready_to_verify:    bool         = False
    verify_requested:   bool         = False  # one-shot: writing the hash re-notifies the identity object
    succeeded:          bool         = False


class GatewayProvisioner:
    """Provisions the gateway itself through the licensee challenge exchange."""

    def __init__(self, context: ProvisioningContext) -> None:
        self._ctx   = context
        self.phase  = GatewayPhase.IDLE

    @property
    def _paths(self):
        return self._ctx.paths

    # ── Public API ────────────────────────────────────────────────────────────

    def provision(
        self,
        device_name:     str,
        device_type:     str,
        licensee_id:     int,
        fcap:            str,
        licensee_secret: str,
    ) -> ProvisionStatus:
        """
        Provision the gateway device.

        :returns: ``OK``, ``ALREADY_PROVISIONED`` (nothing written), or
                  ``FAIL`` on bad arguments, store failure or timeout.
        """
        strings = (device_name, device_type, fcap, licensee_secret)
        if not all(isinstance(s, str) and s for s in strings) \
                or not isinstance(licensee_id, int) or isinstance(licensee_id, bool):
            logger.error("Invalid parameters for gateway provisioning")
            return ProvisionStatus.FAIL

        logger.info(
            "Provisioning gateway device: name=%s type=%s licensee_id=%d fcap=%s",
            device_name, device_type, licensee_id, fcap,
        )
        try:
            with self._ctx.attempt("gateway provisioning"):
                try:
                    return self._provision(device_name, device_type, licensee_id, fcap, licensee_secret)
                except FlowDMError as e:
                    self._set_phase(GatewayPhase.FAILED)
                    logger.error("Gateway provisioning failed: %s", e)
                    return ProvisionStatus.FAIL
        except FlowDMError as e:
            # Rejected before starting; the running attempt still owns the phase.
            logger.error("Gateway provisioning rejected: %s", e)
            return ProvisionStatus.FAIL

    def is_provisioned(self) -> bool:
        """True once the access object instance exists on the gateway."""
        logger.info("Checking whether gateway device is provisioned")
        try:
            provisioned = self._ctx.store.exists(self._paths.flow_access_instance)
        except FlowDMError as e:
            logger.error("Failed to read flow access object: %s", e)
            return False
        logger.info("Provisioned" if provisioned else "Not provisioned")
        return provisioned

    def save_access_details(self) -> bool:
        """Write the save-worthy identity/access/device resources to the config record."""
        logger.info("Saving flow cloud access details")
        try:
            lines = collect_saved_resources(
                self._ctx.store, (FLOW_OBJECT, FLOW_ACCESS_OBJECT, DEVICE_OBJECT)
            )
            write_record(self._ctx.settings.access_cfg, lines)
        except (FlowDMError, OSError) as e:
            logger.error("Failed to save flow cloud access details: %s", e)
            return False
        return True

    # ── Sequence ──────────────────────────────────────────────────────────────

    def _provision(
        self,
        device_name:     str,
        device_type:     str,
        licensee_id:     int,
        fcap:            str,
        licensee_secret: str,
    ) -> ProvisionStatus:
        store = self._ctx.store
        self._set_phase(GatewayPhase.IDLE)

        store.define(*FLOW_OBJECTS)
        if store.exists(self._paths.flow_access_instance):
            logger.info("Gateway device already provisioned")
            return ProvisionStatus.ALREADY_PROVISIONED

        self._set_phase(GatewayPhase.POPULATING_IDENTITY)
        self._populate_identity(device_name, device_type, licensee_id, fcap)

        state = VerificationState()
        subscriptions = self._subscribe(state)
        try:
            self._set_phase(GatewayPhase.AWAITING_CHALLENGE)
            self._await_server(state, licensee_secret)
            self._drain()
        finally:
            self._unsubscribe(subscriptions)

        if not state.succeeded:
            self._set_phase(GatewayPhase.TIMED_OUT if state.waiting_for_server else GatewayPhase.FAILED)
            return ProvisionStatus.FAIL

        self._set_phase(GatewayPhase.PROVISIONED)
        if not self.save_access_details():
            logger.error("Provisioned, but the access details were not saved")
        return ProvisionStatus.OK

    def _populate_identity(self, device_name: str, device_type: str, licensee_id: int, fcap: str) -> None:
        p      = self._paths
        store  = self._ctx.store
        create = () if store.exists(p.flow_object_instance) else (p.flow_object_instance,)
        if create:
            logger.debug("Flow object instance doesn't exist, creating it")
        store.write(
            {
                p.device_name: device_name,
                p.device_type: device_type,
                p.fcap:        fcap,
                p.licensee_id: licensee_id,
            },
            create=create,
        )

    def _await_server(self, state: VerificationState, licensee_secret: str) -> None:
        settings = self._ctx.settings
        step     = settings.step_interval
        deadline = time.monotonic() + settings.server_response_timeout * step

        logger.info("Waiting for responses from the cloud server...")
        while state.waiting_for_server:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("No response within timeout")
                return
            self._ctx.dispatcher.pump(timeout=min(step, remaining))

            if state.ready_to_verify:
                state.ready_to_verify = False
                self._set_phase(GatewayPhase.VERIFYING_LICENSEE)
                if perform_licensee_verification(self._ctx.store, self._paths, state, licensee_secret):
                    self._set_phase(GatewayPhase.AWAITING_ACCESS_GRANT)

    def _drain(self) -> None:
        # The store's IPC carries no message ids, so a notification can still
        # be in flight; absorb it here rather than in the next attempt.
        settings = self._ctx.settings
        if settings.drain_iterations <= 0:
            return
        logger.info("Waiting for any residual notifications...")
        deadline = time.monotonic() + settings.drain_iterations * settings.step_interval
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self._ctx.dispatcher.pump(timeout=min(settings.step_interval, remaining))
        left = self._ctx.dispatcher.pending()
        if left:
            logger.warning("%d notification(s) still queued after the drain", left)

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def _subscribe(self, state: VerificationState) -> list[Subscription]:
        logger.info("Subscribing to flow and flow access object change notifications")
        dispatcher = self._ctx.dispatcher
        identity = dispatcher.subscribe(self._paths.flow_object_instance, self._on_identity_change, state)
        try:
            access = dispatcher.subscribe(self._paths.flow_access_object, self._on_access_change, state)
        except FlowDMError:
            self._unsubscribe([identity])
            raise
        return [identity, access]

    def _unsubscribe(self, subscriptions: list[Subscription]) -> None:
        for sub in subscriptions:
            try:
                self._ctx.dispatcher.unsubscribe(sub)
            except FlowDMError as e:
                logger.error("Failed to cancel subscription to %s: %s", sub.path, e)

    def _on_identity_change(self, change: ChangeSet, state: VerificationState) -> None:
        p = self._paths
        logger.info("Flow object updated")

        if change.contains(p.licensee_challenge):
            challenge = change.get(p.licensee_challenge)
            if isinstance(challenge, (bytes, bytearray)) and challenge:
                state.challenge     = bytes(challenge)
                state.has_challenge = True
            else:
                logger.error("Failed to get licensee challenge")

        if change.contains(p.hash_iterations):
            iterations = change.get(p.hash_iterations)
            if isinstance(iterations, int) and not isinstance(iterations, bool):
                state.iterations     = iterations
                state.has_iterations = True
            else:
                logger.error("Failed to get hash iterations")

        if (state.waiting_for_server and state.has_challenge and state.has_iterations
                and not state.verify_requested):
            state.ready_to_verify  = True
            state.verify_requested = True

    def _on_access_change(self, change: ChangeSet, state: VerificationState) -> None:
        logger.info("Flow access object updated")
        if not all(change.has_value(path) for path in self._paths.access_resources):
            logger.error("Flow access notification doesn't have all the resources")
            state.waiting_for_server = False
            return
        logger.info("Gateway device provisioned successfully")
        state.waiting_for_server = False
        state.succeeded          = True

    def _set_phase(self, phase: GatewayPhase) -> None:
        if phase is not self.phase:
            logger.debug("Gateway phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase
