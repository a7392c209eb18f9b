"""
Licensee verification.

The server writes a challenge and an iteration count into the identity
object; the gateway proves it holds the licensee secret by writing back an
iterated HMAC-SHA256 of the challenge, keyed with the decoded secret.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from typing import TYPE_CHECKING

from ..core.errors import DecodeError, FlowDMError, NullInputError, ValidationError
from ..core.paths import ResourcePathSet
from ..store.base import ObjectStoreClient

if TYPE_CHECKING:
    from .gateway import VerificationState

logger = logging.getLogger("flowdm.provision")


def decode_secret(secret: str) -> bytes:
    try:
        return base64.b64decode(secret, validate=True)
    except (ValueError, binascii.Error) as e:
        raise DecodeError("licensee secret is not valid base64") from e


def compute_licensee_hash(challenge: bytes | None, iterations: int, secret: str | None) -> bytes:
    """
    Return the 32-byte licensee hash.

    ``h0 = HMAC(key, challenge)`` and ``h_i = HMAC(key, h_{i-1})`` for the
    remaining iterations; the key stays the decoded secret throughout.

    :raises NullInputError: if *challenge* or *secret* is missing.
    :raises DecodeError:    if *secret* is not base64.
    :raises ValidationError: if *iterations* is below 1.
    """
    if not challenge or not secret:
        raise NullInputError("challenge and licensee secret are required")
    if iterations < 1:
        raise ValidationError(f"hash iterations must be positive, got {iterations}")

    key    = decode_secret(secret)
    digest = hmac.new(key, bytes(challenge), hashlib.sha256).digest()
    for _ in range(1, iterations):
        digest = hmac.new(key, digest, hashlib.sha256).digest()
    return digest


def perform_licensee_verification(
    store:  ObjectStoreClient,
    paths:  ResourcePathSet,
    state:  "VerificationState",
    secret: str,
) -> bool:
    """Compute the hash for *state* and write it to the licensee-hash resource."""
    logger.info("Performing licensee verification")
    try:
        state.licensee_hash = compute_licensee_hash(state.challenge, state.iterations, secret)
    except ValidationError as e:
        logger.error("Failed to calculate licensee hash: %s", e)
        state.waiting_for_server = False
        return False

    try:
        store.write({paths.licensee_hash: state.licensee_hash})
    except FlowDMError as e:
        logger.error("Failed to set licensee hash: %s", e)
        return False
    return True
