from __future__ import annotations

import base64
import os
import unittest

from identikey.armor import armor, dearmor, get_armor_type, is_armored
from identikey.crc24 import crc24
from identikey.errors import ArmorError
from identikey.keys import generate_keypair


class Crc24Tests(unittest.TestCase):
    def test_check_values(self):
        self.assertEqual(crc24(b""), 0xB704CE)
        self.assertEqual(crc24(b"123456789"), 0x21CF02)


class ArmorTests(unittest.TestCase):
    def test_public_key_roundtrip(self):
        kp = generate_keypair()
        text = armor(kp.public_key, "PUBLIC KEY", {"Version": "1", "Fingerprint": kp.fingerprint})
        lines = text.split("\n")
        self.assertEqual(lines[0], "----- BEGIN IDENTIKEY PUBLIC KEY -----")
        self.assertEqual(lines[-1], "----- END IDENTIKEY PUBLIC KEY -----")
        self.assertIn("Version: 1", lines)
        result = dearmor(text)
        self.assertEqual(result.data, kp.public_key)
        self.assertEqual(result.armor_type, "PUBLIC KEY")
        self.assertEqual(result.headers, {"Version": "1", "Fingerprint": kp.fingerprint})

    def test_message_wrapping(self):
        data = os.urandom(500)
        text = armor(data, "ENCRYPTED MESSAGE")
        body = text.split("\n\n", 1)[1].split("\n=")[0]
        for line in body.split("\n"):
            self.assertLessEqual(len(line), 64)
        self.assertEqual(dearmor(text).data, data)

    def test_tolerates_crlf_and_surrounding_text(self):
        data = os.urandom(100)
        text = "preamble\r\n" + armor(data, "ENCRYPTED MESSAGE").replace("\n", "\r\n") + "\r\ntrailer"
        self.assertEqual(dearmor(text).data, data)

    def test_unknown_type(self):
        with self.assertRaises(ArmorError):
            armor(b"x", "SIGNATURE")

    def test_missing_delimiters(self):
        text = armor(b"abc", "ENCRYPTED MESSAGE")
        with self.assertRaises(ArmorError):
            dearmor("\n".join(text.split("\n")[:-1]))
        with self.assertRaises(ArmorError):
            dearmor("\n".join(text.split("\n")[1:]))

    def test_type_mismatch(self):
        text = armor(b"abc", "ENCRYPTED MESSAGE").replace("END IDENTIKEY ENCRYPTED MESSAGE", "END IDENTIKEY PUBLIC KEY")
        with self.assertRaises(ArmorError) as ctx:
            dearmor(text)
        self.assertIn("mismatch", str(ctx.exception))

    def test_missing_checksum(self):
        lines = armor(b"abc", "ENCRYPTED MESSAGE").split("\n")
        text = "\n".join(ln for ln in lines if not ln.startswith("="))
        with self.assertRaises(ArmorError) as ctx:
            dearmor(text)
        self.assertIn("Missing CRC24", str(ctx.exception))

    def test_bad_checksum(self):
        data = b"payload"
        lines = armor(data, "ENCRYPTED MESSAGE").split("\n")
        wrong = base64.b64encode((crc24(data) ^ 1).to_bytes(3, "big")).decode()
        text = "\n".join(("=" + wrong) if ln.startswith("=") else ln for ln in lines)
        with self.assertRaises(ArmorError) as ctx:
            dearmor(text)
        self.assertIn("Checksum verification failed", str(ctx.exception))

    def test_bad_header_line(self):
        text = armor(b"abc", "ENCRYPTED MESSAGE", {"Version": "1"}).replace("Version: 1", "no colon here")
        with self.assertRaises(ArmorError):
            dearmor(text)

    def test_unencrypted_private_key_needs_warning(self):
        kp = generate_keypair()
        bare = armor(kp.secret_key, "PRIVATE KEY", {"Encrypted": "false"})
        with self.assertRaises(ArmorError):
            dearmor(bare)
        warned = armor(kp.secret_key, "PRIVATE KEY", {"Encrypted": "false", "Warning": "Unencrypted key"})
        self.assertEqual(dearmor(warned).data, kp.secret_key)

    def test_detection(self):
        text = armor(b"abc", "PUBLIC KEY")
        self.assertTrue(is_armored(text))
        self.assertTrue(is_armored("  \n" + text))
        self.assertTrue(is_armored(text.encode("utf-8")))
        self.assertFalse(is_armored(b"\x01\x00\x2c"))
        self.assertEqual(get_armor_type(text), "PUBLIC KEY")
        self.assertIsNone(get_armor_type("plain text"))


if __name__ == "__main__":
    unittest.main()
