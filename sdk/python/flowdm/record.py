"""
Access config record: the save-worthy resources of the identity, access and
device objects written as ``NAME="value"`` lines, regenerated in full after
every successful gateway provisioning.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Sequence

from .core.codec import format_hex_groups
from .core.errors import StoreError
from .core.objects import ObjectDefinition, ResourceDefinition
from .core.paths import instance_path, resource_path
from .store.base import ObjectStoreClient, Value

logger = logging.getLogger("flowdm")


def format_entry(resource: ResourceDefinition, value: Value) -> str:
    if isinstance(value, (bytes, bytearray)):
        text = format_hex_groups(bytes(value))
    else:
        text = str(value)
    return f'{resource.name}="{text}"'


def collect_saved_resources(
    store:   ObjectStoreClient,
    objects: Sequence[ObjectDefinition],
) -> list[str]:
    """
    Read every save-worthy resource of *objects* from the local client.

    :raises StoreError: if an object instance or a save-worthy value is missing.
    """
    lines: list[str] = []
    for obj in objects:
        path   = instance_path(obj.id)
        values = store.read(path)
        for res in obj.resources:
            if not res.save:
                continue
            res_path = resource_path(obj.id, res.id)
            if res_path not in values:
                raise StoreError(f"{obj.name} has no value for {res.name}")
            lines.append(format_entry(res, values[res_path]))
    return lines


def write_record(path: str, lines: Iterable[str]) -> None:
    """Replace the record at *path* (owner-only read, it holds credentials)."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, mode=0o755, exist_ok=True)
    with open(path, "w") as f:
        for line in lines:
            f.write(f"{line}\n")
    os.chmod(path, 0o600)
    logger.info("Access details written to %s", path)
