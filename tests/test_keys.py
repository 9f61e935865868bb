"""
Tests for EC key pair generation and ECDSA signing.
"""
import unittest
from unittest.mock import patch

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from ecpki.common.errors import RandomSourceFailure
from ecpki.crypto.keys import CURVES, curve_name, generate_key_pair, sign_message, signature_hash, verify_signature


class TestGenerateKeyPair(unittest.TestCase):
    """Test cases for generate_key_pair."""

    def test_default_curve_is_p256(self):
        pair = generate_key_pair()
        self.assertEqual(pair.curve, "P-256")
        self.assertIsInstance(pair.private_key.curve, ec.SECP256R1)

    def test_public_half_matches_private_key(self):
        pair = generate_key_pair()
        self.assertEqual(
            pair.public_key.public_numbers(),
            pair.private_key.public_key().public_numbers(),
        )

    def test_sign_verify_round_trip_for_all_curves(self):
        for curve in CURVES:
            with self.subTest(curve=curve):
                pair = generate_key_pair(curve)
                sig = sign_message(pair.private_key, "Hello, this is a test message")
                self.assertTrue(verify_signature(pair.public_key, "Hello, this is a test message", sig))
                self.assertFalse(verify_signature(pair.public_key, "Hello, this is a test message!", sig))

    def test_other_key_does_not_verify(self):
        a = generate_key_pair()
        b = generate_key_pair()
        sig = sign_message(a.private_key, b"\x00\x01\x02\x03")
        self.assertFalse(verify_signature(b.public_key, b"\x00\x01\x02\x03", sig))

    def test_curve_name_is_case_insensitive(self):
        self.assertEqual(generate_key_pair("p-384").curve, "P-384")

    def test_unsupported_curve(self):
        with self.assertRaises(ValueError):
            generate_key_pair("secp256k1")

    def test_random_source_failure_is_reported(self):
        with patch("ecpki.crypto.keys.ec.generate_private_key", side_effect=OSError("entropy unavailable")):
            with self.assertRaises(RandomSourceFailure) as ctx:
                generate_key_pair()
        self.assertIn("entropy unavailable", str(ctx.exception))


class TestCurveHelpers(unittest.TestCase):

    def test_signature_hash_matches_curve(self):
        self.assertIsInstance(signature_hash("P-256"), hashes.SHA256)
        self.assertIsInstance(signature_hash("P-384"), hashes.SHA384)
        self.assertIsInstance(signature_hash("P-521"), hashes.SHA512)

    def test_curve_name_of_key(self):
        key = ec.generate_private_key(ec.SECP521R1())
        self.assertEqual(curve_name(key), "P-521")
        self.assertEqual(curve_name(key.public_key()), "P-521")

    def test_curve_name_rejects_unknown_curve(self):
        key = ec.generate_private_key(ec.SECP256K1())
        with self.assertRaises(ValueError):
            curve_name(key)


if __name__ == "__main__":
    unittest.main()
