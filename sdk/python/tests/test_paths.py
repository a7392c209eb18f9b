"""Tests for resource addressing and object definitions."""

import dataclasses
import unittest

from flowdm.core.objects import DEVICE_OBJECT, FLOW_ACCESS_OBJECT, FLOW_OBJECT, FlowResource
from flowdm.core.paths import ResourcePathSet, instance_path, is_under, object_path, resource_path


class TestPathHelpers(unittest.TestCase):
    def test_paths(self):
        self.assertEqual(object_path(20001), "/20001")
        self.assertEqual(instance_path(20000), "/20000/0")
        self.assertEqual(resource_path(20000, FlowResource.LICENSEE_HASH), "/20000/0/9")
        self.assertEqual(resource_path(3, 19, instance_id=1), "/3/1/19")

    def test_is_under(self):
        self.assertTrue(is_under("/20001/0/4", "/20001"))
        self.assertTrue(is_under("/20001", "/20001"))
        self.assertTrue(is_under("/20001/0", "/20001/"))
        self.assertFalse(is_under("/200010/0", "/20001"))
        self.assertFalse(is_under("/20001", "/20001/0"))


class TestResourcePathSet(unittest.TestCase):
    def setUp(self):
        self.paths = ResourcePathSet.build()

    def test_identity_resources(self):
        self.assertEqual(self.paths.flow_object_instance, "/20000/0")
        self.assertEqual(self.paths.device_id, "/20000/0/0")
        self.assertEqual(self.paths.parent_id, "/20000/0/1")
        self.assertEqual(self.paths.fcap, "/20000/0/5")
        self.assertEqual(self.paths.licensee_challenge, "/20000/0/7")
        self.assertEqual(self.paths.hash_iterations, "/20000/0/8")
        self.assertEqual(self.paths.status, "/20000/0/10")

    def test_access_resources(self):
        self.assertEqual(self.paths.flow_access_object, "/20001")
        self.assertEqual(self.paths.flow_access_instance, "/20001/0")
        self.assertEqual(
            self.paths.access_resources,
            ("/20001/0/0", "/20001/0/1", "/20001/0/2", "/20001/0/3", "/20001/0/4"),
        )

    def test_immutable(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            self.paths.fcap = "/1/0/0"

    def test_build_is_deterministic(self):
        self.assertEqual(ResourcePathSet.build(), self.paths)


class TestObjectDefinitions(unittest.TestCase):
    def test_resource_counts(self):
        self.assertEqual(len(FLOW_OBJECT.resources), 11)
        self.assertEqual(len(FLOW_ACCESS_OBJECT.resources), 5)

    def test_saved_resources(self):
        self.assertEqual(
            [r.name for r in FLOW_OBJECT.resources if r.save],
            ["DeviceID", "DeviceType", "FCAP", "LicenseeID"],
        )
        self.assertTrue(all(r.save for r in FLOW_ACCESS_OBJECT.resources))
        self.assertTrue(all(r.save for r in DEVICE_OBJECT.resources))

    def test_to_dict(self):
        d = FLOW_ACCESS_OBJECT.to_dict()
        self.assertEqual(d["id"], 20001)
        self.assertEqual(d["max_instances"], 1)
        self.assertEqual(d["resources"][4], {
            "id": 4, "name": "RememberMeTokenExpiry", "type": "integer", "mandatory": True,
        })

    def test_resources_in_id_order(self):
        self.assertEqual([r.id for r in FLOW_OBJECT.resources], list(range(11)))
        self.assertEqual(FLOW_OBJECT.resources[FlowResource.PARENT_ID].name, "ParentID")


if __name__ == "__main__":
    unittest.main()
