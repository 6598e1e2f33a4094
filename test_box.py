from __future__ import annotations

import os
import unittest

from identikey import box
from identikey.constants import MIN_BOX_SIZE
from identikey.errors import DecryptionError
from identikey.keys import generate_keypair
from identikey.salsa import XSalsa20Poly1305, hsalsa20

try:  # pragma: no cover - optional interop check
    import nacl.public as _nacl_public
    import nacl.secret as _nacl_secret
except ImportError:  # pragma: no cover
    _nacl_public = None
    _nacl_secret = None


# RFC 7748 section 6.1
ALICE_SK = bytes.fromhex("77076d0a7318a57d3c16c17251b26645df4c2f87ebc0992ab177fba51db92c2a")
ALICE_PK = bytes.fromhex("8520f0098930a754748b7ddcb43ef75a0dbf3a0d26381af4eba4a98eaa9b4e6a")
BOB_SK = bytes.fromhex("5dab087e624a8a4b79e17f8b83800ee66f3bb1292618b6fd1c2f8b27ff88e0eb")
BOB_PK = bytes.fromhex("de9edb7d7b7dc1b4d35b61c2ece435373f8343c85b78674dadfc7e146f882b4f")
SHARED = bytes.fromhex("4a5d9d5ba4ce2de1728e3bf480350f25e07e21c947d19e3376f09b3c1e161742")
# NaCl crypto_core_hsalsa20 test (core1)
BOX_KEY = bytes.fromhex("1b27556473e985d462cd51197a9a46c76009549eac6474f206c4ee0844f68389")


class PrimitiveTests(unittest.TestCase):
    def test_x25519_vectors(self):
        self.assertEqual(box.public_key_from_secret(ALICE_SK), ALICE_PK)
        self.assertEqual(box.public_key_from_secret(BOB_SK), BOB_PK)
        self.assertEqual(box.x25519(ALICE_SK, BOB_PK), SHARED)
        self.assertEqual(box.x25519(BOB_SK, ALICE_PK), SHARED)

    def test_hsalsa20_vector(self):
        self.assertEqual(hsalsa20(SHARED, bytes(16)), BOX_KEY)

    def test_beforenm_is_symmetric(self):
        self.assertEqual(box.box_beforenm(BOB_PK, ALICE_SK), BOX_KEY)
        self.assertEqual(box.box_beforenm(ALICE_PK, BOB_SK), BOX_KEY)

    def test_secretbox_roundtrip_and_tamper(self):
        key = os.urandom(32)
        nonce = os.urandom(24)
        sealed = XSalsa20Poly1305(key).encrypt(nonce, b"attack at dawn")
        self.assertEqual(len(sealed), 16 + 14)
        self.assertEqual(XSalsa20Poly1305(key).decrypt(nonce, sealed), b"attack at dawn")
        broken = bytearray(sealed)
        broken[-1] ^= 1
        with self.assertRaises(ValueError):
            XSalsa20Poly1305(key).decrypt(nonce, bytes(broken))
        with self.assertRaises(ValueError):
            XSalsa20Poly1305(key).decrypt(os.urandom(24), sealed)

    def test_secretbox_rejects_bad_sizes(self):
        with self.assertRaises(ValueError):
            XSalsa20Poly1305(b"short")
        with self.assertRaises(ValueError):
            XSalsa20Poly1305(bytes(32)).encrypt(bytes(12), b"x")


class BoxTests(unittest.TestCase):
    def setUp(self):
        self.kp = generate_keypair()

    def test_roundtrip(self):
        blob = box.encrypt(b"hello", self.kp.public_key)
        self.assertEqual(len(blob), MIN_BOX_SIZE + 5)
        result = box.decrypt(blob, self.kp.secret_key)
        self.assertTrue(result.ok)
        self.assertEqual(result.unwrap(), b"hello")

    def test_empty_plaintext(self):
        blob = box.encrypt(b"", self.kp.public_key)
        self.assertEqual(len(blob), MIN_BOX_SIZE)
        self.assertEqual(box.decrypt(blob, self.kp.secret_key).unwrap(), b"")

    def test_large_plaintext(self):
        data = os.urandom(10 * 1024 * 1024)
        blob = box.encrypt(data, self.kp.public_key)
        self.assertEqual(box.decrypt(blob, self.kp.secret_key).unwrap(), data)

    def test_non_deterministic(self):
        a = box.encrypt(b"same", self.kp.public_key)
        b = box.encrypt(b"same", self.kp.public_key)
        self.assertNotEqual(a, b)
        self.assertNotEqual(a[:32], b[:32])
        self.assertNotEqual(a[32:56], b[32:56])

    def test_wrong_key_fails(self):
        blob = box.encrypt(b"secret", self.kp.public_key)
        other = generate_keypair()
        result = box.decrypt(blob, other.secret_key)
        self.assertFalse(result.ok)
        self.assertIsNone(result.plaintext)
        with self.assertRaises(DecryptionError) as ctx:
            result.unwrap()
        self.assertEqual(str(ctx.exception), "Decryption failed")

    def test_short_input_fails(self):
        for n in (0, 1, 55, 56, MIN_BOX_SIZE - 1):
            self.assertFalse(box.decrypt(bytes(n), self.kp.secret_key).ok)

    def test_every_bit_flip_detected(self):
        blob = box.encrypt(b"tamper me", self.kp.public_key)
        for i in range(len(blob)):
            for bit in range(8):
                mutated = bytearray(blob)
                mutated[i] ^= 1 << bit
                self.assertFalse(
                    box.decrypt(bytes(mutated), self.kp.secret_key).ok,
                    f"flip at byte {i} bit {bit} not detected",
                )

    def test_truncation_detected(self):
        blob = box.encrypt(b"truncate me", self.kp.public_key)
        self.assertFalse(box.decrypt(blob[:-1], self.kp.secret_key).ok)
        self.assertFalse(box.decrypt(blob + b"\x00", self.kp.secret_key).ok)

    def test_bad_recipient_secret_is_caller_error(self):
        blob = box.encrypt(b"x", self.kp.public_key)
        with self.assertRaises(ValueError):
            box.decrypt(blob, b"short")

    def test_bad_recipient_public_key(self):
        with self.assertRaises(ValueError):
            box.encrypt(b"x", b"\x01" * 31)


@unittest.skipUnless(_nacl_public is not None, "PyNaCl not installed")
class NaclInteropTests(unittest.TestCase):
    def test_libsodium_opens_our_box(self):
        kp = generate_keypair()
        blob = box.encrypt(b"interop", kp.public_key)
        nacl_box = _nacl_public.Box(_nacl_public.PrivateKey(kp.secret_key), _nacl_public.PublicKey(blob[:32]))
        self.assertEqual(nacl_box.decrypt(blob[56:], blob[32:56]), b"interop")

    def test_we_open_libsodium_box(self):
        kp = generate_keypair()
        eph = _nacl_public.PrivateKey.generate()
        nacl_box = _nacl_public.Box(eph, _nacl_public.PublicKey(kp.public_key))
        sealed = nacl_box.encrypt(b"from libsodium", os.urandom(24))
        blob = bytes(eph.public_key) + bytes(sealed)
        self.assertEqual(box.decrypt(blob, kp.secret_key).unwrap(), b"from libsodium")

    def test_secretbox_interop(self):
        key = os.urandom(32)
        nonce = os.urandom(24)
        ours = XSalsa20Poly1305(key).encrypt(nonce, b"secretbox")
        self.assertEqual(_nacl_secret.SecretBox(key).decrypt(ours, nonce), b"secretbox")


if __name__ == "__main__":
    unittest.main()
