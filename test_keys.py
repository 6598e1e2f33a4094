from __future__ import annotations

import unittest

from identikey.errors import IdentikeyError, KeyNotFoundError
from identikey.fingerprint import compute_fingerprint
from identikey.keys import (
    KeyManager,
    KeyPair,
    from_base58,
    from_base64,
    from_hex,
    generate_keypair,
    keypair_from_secret,
    to_base58,
    to_base64,
    to_hex,
)


class KeyPairTests(unittest.TestCase):
    def test_generate(self):
        kp = generate_keypair()
        self.assertEqual(len(kp.public_key), 32)
        self.assertEqual(len(kp.secret_key), 32)
        self.assertEqual(kp.fingerprint, compute_fingerprint(kp.public_key))
        self.assertNotEqual(generate_keypair().public_key, kp.public_key)

    def test_from_secret(self):
        kp = generate_keypair()
        self.assertEqual(keypair_from_secret(kp.secret_key), kp)

    def test_length_checks(self):
        with self.assertRaises(ValueError):
            KeyPair(public_key=b"\x00" * 31, secret_key=b"\x00" * 32)
        with self.assertRaises(ValueError):
            KeyPair(public_key=b"\x00" * 32, secret_key=b"\x00" * 33)

    def test_repr_hides_secret(self):
        kp = generate_keypair()
        self.assertNotIn(kp.secret_key.hex(), repr(kp))
        self.assertIn(kp.fingerprint, repr(kp))

    def test_encodings(self):
        data = bytes(range(32))
        self.assertEqual(from_hex(to_hex(data)), data)
        self.assertEqual(from_base64(to_base64(data)), data)
        self.assertEqual(from_base58(to_base58(data)), data)
        with self.assertRaises(ValueError):
            from_base64("not base64!")
        with self.assertRaises(ValueError):
            from_base58("0OIl")


class KeyManagerTests(unittest.TestCase):
    def test_add_and_lookup(self):
        km = KeyManager()
        kp = generate_keypair()
        fp = km.add_key(kp.public_key, kp.secret_key)
        self.assertEqual(fp, kp.fingerprint)
        self.assertTrue(km.has_key(fp))
        self.assertIn(fp, km)
        self.assertEqual(len(km), 1)
        self.assertEqual(km.get_private_key(fp), kp.secret_key)

    def test_last_writer_wins(self):
        km = KeyManager()
        kp = generate_keypair()
        km.add_key(kp.public_key, kp.secret_key)
        replacement = b"\x42" * 32
        km.add_key(kp.public_key, replacement)
        self.assertEqual(len(km), 1)
        self.assertEqual(km.get_private_key(kp.fingerprint), replacement)

    def test_missing_fingerprint(self):
        km = KeyManager()
        fp = compute_fingerprint(b"\x07" * 32)
        self.assertFalse(km.has_key(fp))
        with self.assertRaises(KeyNotFoundError) as ctx:
            km.get_private_key(fp)
        self.assertEqual(ctx.exception.fingerprint, fp)
        self.assertIn(fp, str(ctx.exception))
        self.assertIsInstance(ctx.exception, KeyError)
        self.assertIsInstance(ctx.exception, IdentikeyError)

    def test_instances_are_independent(self):
        a, b = KeyManager(), KeyManager()
        kp = generate_keypair()
        a.add_keypair(kp)
        self.assertFalse(b.has_key(kp.fingerprint))

    def test_rejects_bad_lengths(self):
        km = KeyManager()
        with self.assertRaises(ValueError):
            km.add_key(b"\x00" * 16, b"\x00" * 32)
        with self.assertRaises(ValueError):
            km.add_key(b"\x00" * 32, b"\x00" * 16)

    def test_fingerprints(self):
        km = KeyManager()
        kps = [generate_keypair() for _ in range(3)]
        for kp in kps:
            km.add_keypair(kp)
        self.assertEqual(sorted(km.fingerprints()), sorted(kp.fingerprint for kp in kps))


if __name__ == "__main__":
    unittest.main()
