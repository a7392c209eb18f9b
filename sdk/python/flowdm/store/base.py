"""The object-store capability surface consumed by the provisioners."""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence, Union

from ..core.objects import ObjectDefinition

# str for STRING, int for INTEGER/TIME, bytes for OPAQUE
Value = Union[str, int, bytes]


class ObjectStoreClient(Protocol):
    """
    Typed read/write/define access to named resource paths.

    ``client_id=None`` addresses the local (gateway) client; a client id
    addresses a constrained device registered with the server side.  Every
    call is bounded by the store's IPC timeout and raises
    :class:`~flowdm.core.errors.StoreTimeout` when it expires, or
    :class:`~flowdm.core.errors.StoreError` on any other failure.
    """

    def define(self, *objects: ObjectDefinition) -> int:
        """Register object schemas, skipping those already defined.  Returns the number added."""
        ...

    def is_defined(self, object_id: int) -> bool:
        ...

    def read(self, path: str, client_id: str | None = None) -> dict[str, Value]:
        """Return ``{resource_path: value}`` under *path*.  Raises ``NotFound`` if absent."""
        ...

    def exists(self, path: str, client_id: str | None = None) -> bool:
        ...

    def write(
        self,
        values:    Mapping[str, Value],
        *,
        client_id: str | None    = None,
        create:    Sequence[str] = (),
    ) -> None:
        """Write *values* in one operation, first creating the instance paths in *create*."""
        ...

    def list_clients(self) -> list[str]:
        """Client ids currently registered (present) with the server."""
        ...

    def has_path(self, client_id: str, path: str) -> bool:
        ...
