"""Tests for the command-line entry point."""

import contextlib
import io
import json
import logging
import os
import unittest
from unittest.mock import patch

from flowdm import cli
from flowdm.core.errors import StoreError


class TestCli(unittest.TestCase):
    def setUp(self):
        patcher = patch("flowdm.cli.DeviceManager")
        self.DeviceManager = patcher.start()
        self.addCleanup(patcher.stop)
        self.dm = self.DeviceManager.from_settings.return_value
        self.addCleanup(logging.getLogger("flowdm").handlers.clear)

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out), patch.dict(os.environ, {}, clear=True):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def test_provision_gateway(self):
        self.dm.provision_gateway_device.return_value = {"provision_status": 0}
        code, out = self.run_cli("provision-gateway", "gw", "Gateway", "7", "FCAP", "--secret", "c2VjcmV0")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {"provision_status": 0})
        self.dm.provision_gateway_device.assert_called_once_with("gw", "Gateway", 7, "FCAP", "c2VjcmV0")
        self.dm.close.assert_called_once_with()

    def test_already_provisioned_is_success(self):
        self.dm.provision_constrained_device.return_value = {"status": 2}
        code, _ = self.run_cli("provision-constrained", "sensor-01", "Sensor", "7", "FCAP", "0A " * 16)
        self.assertEqual(code, 0)

    def test_failure_exit_code(self):
        self.dm.provision_constrained_device.return_value = {"status": 1}
        code, _ = self.run_cli("provision-constrained", "sensor-01", "Sensor", "7", "FCAP", "bad")
        self.assertEqual(code, 1)

    def test_queries(self):
        self.dm.is_gateway_device_provisioned.return_value = {"provision_status": False}
        self.assertEqual(self.run_cli("is-gateway-provisioned")[0], 1)

        self.dm.is_constrained_device_provisioned.return_value = {"provision_status": True}
        self.assertEqual(self.run_cli("is-constrained-provisioned", "sensor-01")[0], 0)
        self.dm.is_constrained_device_provisioned.assert_called_once_with("sensor-01")

        self.dm.get_client_list.return_value = {"clients": []}
        code, out = self.run_cli("-v", "5", "clients")
        self.assertEqual((code, json.loads(out)), (0, {"clients": []}))
        self.assertEqual(logging.getLogger("flowdm").level, logging.DEBUG)

    def test_bad_arguments(self):
        for argv in ([], ["provision-gateway", "gw", "Gateway", "seven", "FCAP", "--secret", "x"],
                     ["provision-gateway", "gw", "Gateway", "7", "FCAP"], ["-v", "9", "clients"]):
            with self.subTest(argv=argv):
                with self.assertRaises(SystemExit) as cm, contextlib.redirect_stderr(io.StringIO()):
                    self.run_cli(*argv)
                self.assertEqual(cm.exception.code, 2)

    def test_agent_unavailable(self):
        self.DeviceManager.from_settings.side_effect = StoreError("socket did not open")
        code, out = self.run_cli("clients")
        self.assertEqual((code, out), (1, ""))


if __name__ == "__main__":
    unittest.main()
