"""
Textual forms of opaque values.

Device identifiers travel as 16 groups of two hex digits, each followed by a
single space: ``"0A 1B ... FF "`` (48 characters).  The same rendering is used
for opaque values in the access config record.
"""

from __future__ import annotations

import re

from .errors import DecodeError, ValidationError
from .objects import DEVICE_ID_SIZE

PARENT_ID_LENGTH = DEVICE_ID_SIZE * 3

_HEX_GROUPS = re.compile(r"(?:[0-9A-Fa-f]{2} )+")


def format_hex_groups(data: bytes) -> str:
    """Render *data* as uppercase ``"XX "`` groups (trailing space included)."""
    return "".join(f"{b:02X} " for b in data)


def parse_hex_groups(text: str) -> bytes:
    """Inverse of :func:`format_hex_groups`.  Raises :class:`DecodeError`."""
    if not text or not _HEX_GROUPS.fullmatch(text):
        raise DecodeError(f"not a sequence of 'XX ' hex groups: {text!r}")
    return bytes.fromhex(text)


def parse_parent_id(parent_id: str | None) -> bytes:
    """
    Decode a gateway device identifier given in ``"XX "`` form.

    :raises ValidationError: if the text is not exactly 48 characters or any
                             group is not two hex digits and a space.
    """
    if not isinstance(parent_id, str):
        raise ValidationError("parent id must be a string")
    if len(parent_id) != PARENT_ID_LENGTH:
        raise ValidationError(
            f"parent id must be {DEVICE_ID_SIZE} bytes ({PARENT_ID_LENGTH} characters), "
            f"got {len(parent_id)} characters"
        )
    return parse_hex_groups(parent_id)


def format_parent_id(device_id: bytes) -> str:
    if len(device_id) != DEVICE_ID_SIZE:
        raise ValidationError(f"device id must be {DEVICE_ID_SIZE} bytes, got {len(device_id)}")
    return format_hex_groups(device_id)
