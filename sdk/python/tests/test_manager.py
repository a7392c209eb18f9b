"""Tests for the DeviceManager facade."""

import unittest
from unittest.mock import MagicMock, patch

from fakes import ACCESS_VALUES, FakeStore, fast_settings

from flowdm.core.errors import StoreError
from flowdm.core.status import ProvisionStatus
from flowdm.manager import DeviceManager
from flowdm.notify.dispatcher import QueueDispatcher

PARENT_ID = "0A 1B 2C 3D 4E 5F 60 71 82 93 A4 B5 C6 D7 E8 F9 "


class TestDeviceManager(unittest.TestCase):
    def setUp(self):
        self.store = FakeStore(clients=["sensor-01"])
        self.dm    = DeviceManager(self.store, QueueDispatcher(), fast_settings())

    def test_gateway_already_provisioned(self):
        self.store.seed(ACCESS_VALUES)
        reply = self.dm.provision_gateway_device("gw", "Gateway", 7, "FCAP", "c2VjcmV0")
        self.assertEqual(reply, {"provision_status": int(ProvisionStatus.ALREADY_PROVISIONED)})
        self.assertEqual(self.dm.is_gateway_device_provisioned(), {"provision_status": True})

    def test_gateway_not_provisioned(self):
        self.assertEqual(self.dm.is_gateway_device_provisioned(), {"provision_status": False})

    def test_constrained_device(self):
        self.store.on_write = lambda store, cid, values: store.seed(ACCESS_VALUES, client_id=cid)
        reply = self.dm.provision_constrained_device("sensor-01", "Sensor", 7, "FCAP", PARENT_ID)
        self.assertEqual(reply, {"status": 0})
        self.assertEqual(self.dm.is_constrained_device_provisioned("sensor-01"), {"provision_status": True})

    def test_constrained_device_bad_parent(self):
        reply = self.dm.provision_constrained_device("sensor-01", "Sensor", 7, "FCAP", "0A 1B ")
        self.assertEqual(reply, {"status": 1})

    def test_constrained_device_numeric_parent(self):
        reply = self.dm.provision_constrained_device("sensor-01", "Sensor", 7, "FCAP", 12345)
        self.assertEqual(reply, {"status": 1})
        self.assertEqual(self.store.writes, [])

    def test_client_list(self):
        self.assertEqual(self.dm.get_client_list(), {
            "clients": [{"clientId": "sensor-01", "is_device_provisioned": False}],
        })

    def test_client_list_store_failure(self):
        store = MagicMock()
        store.list_clients.side_effect = StoreError("agent down")
        dm = DeviceManager(store, QueueDispatcher(), fast_settings())
        self.assertEqual(dm.get_client_list(), {"clients": []})

    @patch("flowdm.notify.ws.WebSocketDispatcher")
    @patch("flowdm.store.agent.AgentObjectStore")
    def test_from_settings(self, mock_store, mock_dispatcher):
        settings = fast_settings(store_url="http://10.0.0.2:54321", ipc_timeout=2.0)
        dm = DeviceManager.from_settings(settings)
        mock_store.assert_called_once_with("http://10.0.0.2:54321", timeout=2.0)
        mock_dispatcher.assert_called_once_with(settings.notify_url)
        mock_dispatcher.return_value.start.assert_called_once_with()
        self.assertIs(dm.context.store, mock_store.return_value)

        dm.close()
        mock_dispatcher.return_value.stop.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
