"""Tests for the licensee hash and its write-back."""

import base64
import hashlib
import hmac
import unittest
from unittest.mock import MagicMock

from flowdm.core.errors import DecodeError, NullInputError, StoreError, ValidationError
from flowdm.core.paths import ResourcePathSet
from flowdm.provision.gateway import VerificationState
from flowdm.provision.licensee import compute_licensee_hash, decode_secret, perform_licensee_verification

KEY       = b"\x8a\x01licensee-key\xff"
SECRET    = base64.b64encode(KEY).decode()
CHALLENGE = b"\x00\x11\x22\x33\x44\x55\x66\x77"


def _hmac(msg):
    return hmac.new(KEY, msg, hashlib.sha256).digest()


class TestComputeLicenseeHash(unittest.TestCase):
    def test_single_iteration_is_plain_hmac(self):
        self.assertEqual(compute_licensee_hash(CHALLENGE, 1, SECRET), _hmac(CHALLENGE))

    def test_recurrence(self):
        for n in (2, 3, 10, 50):
            with self.subTest(iterations=n):
                self.assertEqual(
                    compute_licensee_hash(CHALLENGE, n, SECRET),
                    _hmac(compute_licensee_hash(CHALLENGE, n - 1, SECRET)),
                )

    def test_digest_length(self):
        self.assertEqual(len(compute_licensee_hash(CHALLENGE, 7, SECRET)), 32)

    def test_missing_inputs(self):
        for challenge, secret in ((None, SECRET), (b"", SECRET), (CHALLENGE, None), (CHALLENGE, "")):
            with self.subTest(challenge=challenge, secret=secret):
                with self.assertRaises(NullInputError):
                    compute_licensee_hash(challenge, 1, secret)

    def test_invalid_secret(self):
        with self.assertRaises(DecodeError):
            compute_licensee_hash(CHALLENGE, 1, "not*base64")

    def test_non_positive_iterations(self):
        for n in (0, -1):
            with self.subTest(iterations=n):
                with self.assertRaises(ValidationError):
                    compute_licensee_hash(CHALLENGE, n, SECRET)

    def test_decode_secret(self):
        self.assertEqual(decode_secret(SECRET), KEY)


class TestPerformLicenseeVerification(unittest.TestCase):
    def setUp(self):
        self.paths = ResourcePathSet.build()
        self.store = MagicMock()
        self.state = VerificationState(challenge=CHALLENGE, iterations=4, has_challenge=True, has_iterations=True)

    def test_writes_hash(self):
        self.assertTrue(perform_licensee_verification(self.store, self.paths, self.state, SECRET))
        expected = compute_licensee_hash(CHALLENGE, 4, SECRET)
        self.assertEqual(self.state.licensee_hash, expected)
        self.store.write.assert_called_once_with({"/20000/0/9": expected})
        self.assertTrue(self.state.waiting_for_server)

    def test_write_failure(self):
        self.store.write.side_effect = StoreError("agent unavailable")
        self.assertFalse(perform_licensee_verification(self.store, self.paths, self.state, SECRET))
        self.assertTrue(self.state.waiting_for_server)

    def test_hash_failure_stops_waiting(self):
        self.state.iterations = 0
        self.assertFalse(perform_licensee_verification(self.store, self.paths, self.state, SECRET))
        self.assertFalse(self.state.waiting_for_server)
        self.store.write.assert_not_called()


if __name__ == "__main__":
    unittest.main()
