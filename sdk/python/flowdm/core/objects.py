"""
Object and resource definitions registered with the object store.

Flow identity object (20000) carries the device's identity and the licensee
challenge/response exchange.  Flow access object (20001) carries the cloud
credentials the server pushes once provisioning completes.  The standard
Device object (3) is only read, to record serial number and software version.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ResourceType(enum.Enum):
    STRING  = "string"
    INTEGER = "integer"
    OPAQUE  = "opaque"
    TIME    = "time"


@dataclass(frozen=True)
class ResourceDefinition:
    id:        int
    name:      str
    type:      ResourceType
    mandatory: bool = False
    save:      bool = False  # written to the access config record


@dataclass(frozen=True)
class ObjectDefinition:
    id:            int
    name:          str
    resources:     tuple[ResourceDefinition, ...]
    min_instances: int = 0
    max_instances: int = 1

    def to_dict(self) -> dict:
        """Definition as sent to the store's define endpoint."""
        return {
            "id":            self.id,
            "name":          self.name,
            "min_instances": self.min_instances,
            "max_instances": self.max_instances,
            "resources": [
                {
                    "id":        r.id,
                    "name":      r.name,
                    "type":      r.type.value,
                    "mandatory": r.mandatory,
                }
                for r in self.resources
            ],
        }


DEVICE_OBJECT_ID      = 3
FLOW_OBJECT_ID        = 20000
FLOW_ACCESS_OBJECT_ID = 20001
OBJECT_INSTANCE_ID    = 0

DEVICE_ID_SIZE = 16


class FlowResource(enum.IntEnum):
    DEVICE_ID          = 0
    PARENT_ID          = 1
    DEVICE_TYPE        = 2
    DEVICE_NAME        = 3
    DESCRIPTION        = 4
    FCAP               = 5
    LICENSEE_ID        = 6
    LICENSEE_CHALLENGE = 7
    HASH_ITERATIONS    = 8
    LICENSEE_HASH      = 9
    STATUS             = 10


class FlowAccessResource(enum.IntEnum):
    URL                      = 0
    CUSTOMER_KEY             = 1
    CUSTOMER_SECRET          = 2
    REMEMBER_ME_TOKEN        = 3
    REMEMBER_ME_TOKEN_EXPIRY = 4


class DeviceResource(enum.IntEnum):
    SERIAL_NUMBER    = 2
    SOFTWARE_VERSION = 19


_R = ResourceDefinition
_T = ResourceType

FLOW_OBJECT = ObjectDefinition(
    id=FLOW_OBJECT_ID,
    name="FlowObject",
    resources=(
        _R(FlowResource.DEVICE_ID,          "DeviceID",          _T.OPAQUE,  True, True),
        _R(FlowResource.PARENT_ID,          "ParentID",          _T.OPAQUE),
        _R(FlowResource.DEVICE_TYPE,        "DeviceType",        _T.STRING,  True, True),
        _R(FlowResource.DEVICE_NAME,        "Name",              _T.STRING),
        _R(FlowResource.DESCRIPTION,        "Description",       _T.STRING),
        _R(FlowResource.FCAP,               "FCAP",              _T.STRING,  True, True),
        _R(FlowResource.LICENSEE_ID,        "LicenseeID",        _T.INTEGER, True, True),
        _R(FlowResource.LICENSEE_CHALLENGE, "LicenseeChallenge", _T.OPAQUE),
        _R(FlowResource.HASH_ITERATIONS,    "HashIterations",    _T.INTEGER),
        _R(FlowResource.LICENSEE_HASH,      "LicenseeHash",      _T.OPAQUE),
        _R(FlowResource.STATUS,             "Status",            _T.INTEGER),
    ),
)

FLOW_ACCESS_OBJECT = ObjectDefinition(
    id=FLOW_ACCESS_OBJECT_ID,
    name="FlowAccess",
    resources=(
        _R(FlowAccessResource.URL,                      "URL",                   _T.STRING,  True, True),
        _R(FlowAccessResource.CUSTOMER_KEY,             "CustomerKey",           _T.STRING,  True, True),
        _R(FlowAccessResource.CUSTOMER_SECRET,          "CustomerSecret",        _T.STRING,  True, True),
        _R(FlowAccessResource.REMEMBER_ME_TOKEN,        "RememberMeToken",       _T.STRING,  True, True),
        _R(FlowAccessResource.REMEMBER_ME_TOKEN_EXPIRY, "RememberMeTokenExpiry", _T.INTEGER, True, True),
    ),
)

DEVICE_OBJECT = ObjectDefinition(
    id=DEVICE_OBJECT_ID,
    name="DeviceObject",
    resources=(
        _R(DeviceResource.SERIAL_NUMBER,    "SerialNumber",    _T.STRING, True, True),
        _R(DeviceResource.SOFTWARE_VERSION, "SoftwareVersion", _T.STRING, True, True),
    ),
)

# Objects this package registers with the store.  The Device object is
# standard and always present.
FLOW_OBJECTS = (FLOW_OBJECT, FLOW_ACCESS_OBJECT)
