"""
Resource addressing.

Paths follow the ``/object/instance/resource`` form used by the store.  The
full set the provisioners need is built once into a frozen
:class:`ResourcePathSet` and held by the provisioning context.
"""

from __future__ import annotations

from dataclasses import dataclass

from .objects import (
    DEVICE_OBJECT_ID,
    FLOW_ACCESS_OBJECT_ID,
    FLOW_OBJECT_ID,
    OBJECT_INSTANCE_ID,
    FlowAccessResource,
    FlowResource,
)


def object_path(object_id: int) -> str:
    return f"/{object_id}"


def instance_path(object_id: int, instance_id: int = OBJECT_INSTANCE_ID) -> str:
    return f"/{object_id}/{instance_id}"


def resource_path(object_id: int, resource_id: int, instance_id: int = OBJECT_INSTANCE_ID) -> str:
    return f"/{object_id}/{instance_id}/{int(resource_id)}"


def is_under(path: str, prefix: str) -> bool:
    """True if *path* is *prefix* itself or lies below it."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class ResourcePathSet:
    """Every object/resource address used during provisioning."""

    flow_object_instance:   str
    flow_access_object:     str
    flow_access_instance:   str
    device_object_instance: str

    # Flow identity object
    device_id:          str
    parent_id:          str
    device_type:        str
    device_name:        str
    description:        str
    fcap:               str
    licensee_id:        str
    licensee_challenge: str
    hash_iterations:    str
    licensee_hash:      str
    status:             str

    # Flow access object
    url:                      str
    customer_key:             str
    customer_secret:          str
    remember_me_token:        str
    remember_me_token_expiry: str

    @classmethod
    def build(cls) -> "ResourcePathSet":
        def flow(res: FlowResource) -> str:
            return resource_path(FLOW_OBJECT_ID, res)

        def access(res: FlowAccessResource) -> str:
            return resource_path(FLOW_ACCESS_OBJECT_ID, res)

        return cls(
            flow_object_instance   = instance_path(FLOW_OBJECT_ID),
            flow_access_object     = object_path(FLOW_ACCESS_OBJECT_ID),
            flow_access_instance   = instance_path(FLOW_ACCESS_OBJECT_ID),
            device_object_instance = instance_path(DEVICE_OBJECT_ID),

            device_id          = flow(FlowResource.DEVICE_ID),
            parent_id          = flow(FlowResource.PARENT_ID),
            device_type        = flow(FlowResource.DEVICE_TYPE),
            device_name        = flow(FlowResource.DEVICE_NAME),
            description        = flow(FlowResource.DESCRIPTION),
            fcap               = flow(FlowResource.FCAP),
            licensee_id        = flow(FlowResource.LICENSEE_ID),
            licensee_challenge = flow(FlowResource.LICENSEE_CHALLENGE),
            hash_iterations    = flow(FlowResource.HASH_ITERATIONS),
            licensee_hash      = flow(FlowResource.LICENSEE_HASH),
            status             = flow(FlowResource.STATUS),

            url                      = access(FlowAccessResource.URL),
            customer_key             = access(FlowAccessResource.CUSTOMER_KEY),
            customer_secret          = access(FlowAccessResource.CUSTOMER_SECRET),
            remember_me_token        = access(FlowAccessResource.REMEMBER_ME_TOKEN),
            remember_me_token_expiry = access(FlowAccessResource.REMEMBER_ME_TOKEN_EXPIRY),
        )

    @property
    def access_resources(self) -> tuple[str, ...]:
        """The five credential resources, in definition order."""
        return (
            self.url,
            self.customer_key,
            self.customer_secret,
            self.remember_me_token,
            self.remember_me_token_expiry,
        )
