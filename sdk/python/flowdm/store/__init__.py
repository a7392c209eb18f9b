"""
Object-store access.

The provisioners only depend on the :class:`ObjectStoreClient` protocol.
:class:`AgentObjectStore` implements it against the local agent's HTTP API::

    from flowdm.store import AgentObjectStore

    store = AgentObjectStore("http://127.0.0.1:54321", timeout=1.0)
    store.define(FLOW_OBJECT, FLOW_ACCESS_OBJECT)
    store.write({"/20000/0/5": "FCAP-1234"}, create=["/20000/0"])
"""

from .base  import ObjectStoreClient, Value   # noqa: F401
from .agent import AgentObjectStore           # noqa: F401

__all__ = ["ObjectStoreClient", "AgentObjectStore", "Value"]
