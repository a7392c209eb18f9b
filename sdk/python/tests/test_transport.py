"""Tests for the HTTP transport layer."""

import http.client
import socket
import unittest
from unittest.mock import MagicMock, patch

from flowdm.core.errors import NotFound, StoreError, StoreTimeout
from flowdm.core.transport import (
    _POOL_MAX_SIZE,
    _get_conn,
    _pool,
    _pool_lock,
    _request,
    _resolve_url,
    get_json,
    put_json,
)


class TestConnectionPool(unittest.TestCase):
    def setUp(self):
        with _pool_lock:
            _pool.clear()

    def tearDown(self):
        with _pool_lock:
            _pool.clear()

    def test_new_connection_created(self):
        conn, path = _get_conn("http://localhost:54321/v1/clients")
        self.assertIsInstance(conn, http.client.HTTPConnection)
        self.assertEqual(path, "/v1/clients")

    def test_query_kept_in_path(self):
        _, path = _get_conn("http://localhost:54321/v1/resources?path=%2F20001%2F0")
        self.assertEqual(path, "/v1/resources?path=%2F20001%2F0")

    def test_pool_caches_connection(self):
        conn1, _ = _get_conn("http://localhost:54321/a")
        conn2, _ = _get_conn("http://localhost:54321/b")
        self.assertIs(conn1, conn2)

    def test_different_hosts_different_connections(self):
        conn1, _ = _get_conn("http://localhost:54321/a")
        conn2, _ = _get_conn("http://localhost:54322/a")
        self.assertIsNot(conn1, conn2)

    def test_pool_max_size(self):
        for port in range(_POOL_MAX_SIZE + 5):
            _get_conn(f"http://localhost:{9000 + port}/test")
        with _pool_lock:
            self.assertLessEqual(len(_pool), _POOL_MAX_SIZE)


class TestRequest(unittest.TestCase):
    @patch("flowdm.core.transport._get_conn")
    def test_timeout_maps_to_store_timeout(self, mock_get_conn):
        conn = MagicMock()
        conn.getresponse.side_effect = socket.timeout("timed out")
        mock_get_conn.return_value = (conn, "/v1/clients")
        with self.assertRaises(StoreTimeout):
            _request("GET", "http://localhost:54321/v1/clients", timeout=0.1)

    @patch("flowdm.core.transport._get_conn")
    def test_retries_once_then_fails(self, mock_get_conn):
        conn = MagicMock()
        conn.request.side_effect = ConnectionResetError("reset")
        mock_get_conn.return_value = (conn, "/v1/clients")
        with self.assertRaises(StoreError):
            _request("GET", "http://localhost:54321/v1/clients")
        self.assertEqual(conn.request.call_count, 2)


class TestJsonHelpers(unittest.TestCase):
    @patch("flowdm.core.transport._request")
    def test_get_json_encodes_params(self, mock_req):
        mock_req.return_value = (200, b'{"values": {}}')
        result = get_json("http://localhost:54321/v1/resources", params={"path": "/20001/0", "client_id": None})
        self.assertEqual(result, {"values": {}})
        url = mock_req.call_args[0][1]
        self.assertEqual(url, "http://localhost:54321/v1/resources?path=%2F20001%2F0")

    @patch("flowdm.core.transport._request")
    def test_status_mapping(self, mock_req):
        for status, exc in ((404, NotFound), (504, StoreTimeout), (500, StoreError), (400, StoreError)):
            with self.subTest(status=status):
                mock_req.return_value = (status, b"nope")
                with self.assertRaises(exc):
                    put_json("http://localhost:54321/v1/resources", {"values": {}})

    @patch("flowdm.core.transport._request")
    def test_empty_body(self, mock_req):
        mock_req.return_value = (204, b"")
        self.assertIsNone(put_json("http://localhost:54321/v1/resources", {"values": {}}))

    @patch("flowdm.core.transport._request")
    def test_malformed_body(self, mock_req):
        mock_req.return_value = (200, b"<html>")
        with self.assertRaises(StoreError):
            get_json("http://localhost:54321/v1/clients")


class TestResolveUrl(unittest.TestCase):
    def test_precedence(self):
        with patch.dict("os.environ", {"FLOWDM_STORE_URL": "http://env:1/"}):
            self.assertEqual(_resolve_url("http://explicit:2/", "FLOWDM_STORE_URL", "http://d:3"), "http://explicit:2")
            self.assertEqual(_resolve_url(None, "FLOWDM_STORE_URL", "http://d:3"), "http://env:1")
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(_resolve_url(None, "FLOWDM_STORE_URL", "http://d:3"), "http://d:3")


if __name__ == "__main__":
    unittest.main()
