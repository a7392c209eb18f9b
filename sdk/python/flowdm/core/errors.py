"""
Error taxonomy.

Everything raised by flowdm derives from :class:`FlowDMError`, which is a
``RuntimeError`` so callers that only know the generic failure still work.
The provisioners catch these at their public boundary and turn them into
``ProvisionStatus.FAIL``.
"""

from __future__ import annotations


class FlowDMError(RuntimeError):
    """Base class for device-manager failures."""


class ValidationError(FlowDMError, ValueError):
    """Malformed argument; rejected before any I/O."""


class DecodeError(ValidationError):
    """A base64 or hex value could not be decoded."""


class NullInputError(ValidationError):
    """A required input was absent."""


class StoreError(FlowDMError):
    """Define/read/write/observe against the object store failed."""


class NotFound(StoreError):
    """The requested path does not exist on the store (or on the client)."""


class StoreTimeout(StoreError, TimeoutError):
    """The store did not answer within the IPC timeout."""


class ProvisionTimeout(FlowDMError, TimeoutError):
    """The deadline expired without a provisioning confirmation."""
