from __future__ import annotations

import os
import stat
import tempfile
import unittest
from pathlib import Path

from identikey.errors import BlobNotFoundError
from identikey.pathutil import atomic_write_bytes, norm_key
from identikey.storage import FilesystemAdapter, MemoryAdapter, StorageAdapter


KEY = "ab" * 32


class AdapterContractMixin:
    def make_adapter(self) -> StorageAdapter:
        raise NotImplementedError

    def test_put_get_exact_bytes(self):
        adapter = self.make_adapter()
        data = bytes(range(256)) * 4
        adapter.put(KEY, data)
        self.assertTrue(adapter.exists(KEY))
        self.assertEqual(adapter.get(KEY), data)

    def test_empty_blob(self):
        adapter = self.make_adapter()
        adapter.put(KEY, b"")
        self.assertTrue(adapter.exists(KEY))
        self.assertEqual(adapter.get(KEY), b"")

    def test_missing_key(self):
        adapter = self.make_adapter()
        self.assertFalse(adapter.exists(KEY))
        with self.assertRaises(BlobNotFoundError) as ctx:
            adapter.get(KEY)
        self.assertEqual(ctx.exception.key, KEY)

    def test_delete(self):
        adapter = self.make_adapter()
        adapter.put(KEY, b"data")
        adapter.delete(KEY)
        self.assertFalse(adapter.exists(KEY))
        adapter.delete(KEY)

    def test_overwrite(self):
        adapter = self.make_adapter()
        adapter.put(KEY, b"one")
        adapter.put(KEY, b"two")
        self.assertEqual(adapter.get(KEY), b"two")


class MemoryAdapterTests(AdapterContractMixin, unittest.TestCase):
    def make_adapter(self) -> StorageAdapter:
        return MemoryAdapter()

    def test_stores_copy(self):
        adapter = MemoryAdapter()
        buf = bytearray(b"mutable")
        adapter.put(KEY, buf)
        buf[0] = 0
        self.assertEqual(adapter.get(KEY), b"mutable")

    def test_clear(self):
        adapter = MemoryAdapter()
        adapter.put(KEY, b"x")
        adapter.put("cd" * 32, b"y")
        self.assertEqual(len(adapter), 2)
        adapter.clear()
        self.assertEqual(len(adapter), 0)


class FilesystemAdapterTests(AdapterContractMixin, unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name) / "blobs"

    def make_adapter(self) -> StorageAdapter:
        return FilesystemAdapter(self.root)

    def test_creates_root_lazily(self):
        adapter = FilesystemAdapter(self.root)
        self.assertFalse(self.root.exists())
        adapter.put(KEY, b"x")
        self.assertTrue((self.root / KEY).is_file())

    def test_no_temp_files_left(self):
        adapter = FilesystemAdapter(self.root)
        for i in range(5):
            adapter.put(KEY, bytes([i]) * 100)
        self.assertEqual(sorted(p.name for p in self.root.iterdir()), [KEY])

    @unittest.skipIf(os.name == "nt", "POSIX permissions")
    def test_permissions(self):
        adapter = FilesystemAdapter(self.root)
        adapter.put(KEY, b"secret")
        self.assertEqual(stat.S_IMODE(os.stat(self.root / KEY).st_mode), 0o600)

    def test_rejects_traversal(self):
        adapter = FilesystemAdapter(self.root)
        for bad in ("../escape", "a/../../escape", "/etc/passwd", "", ".", "a/.."):
            with self.assertRaises(ValueError, msg=bad):
                adapter.put(bad, b"x")
        self.assertFalse((Path(self._tmp.name) / "escape").exists())

    def test_nested_key(self):
        adapter = FilesystemAdapter(self.root)
        adapter.put("ab/cd", b"nested")
        self.assertEqual(adapter.get("ab/cd"), b"nested")

    def test_clear(self):
        adapter = FilesystemAdapter(self.root)
        adapter.put(KEY, b"x")
        adapter.put("ab/cd", b"y")
        adapter.clear()
        self.assertTrue(self.root.is_dir())
        self.assertEqual(list(self.root.iterdir()), [])


class PathUtilTests(unittest.TestCase):
    def test_norm_key(self):
        self.assertEqual(norm_key("a//b/./c"), "a/b/c")
        self.assertEqual(norm_key("a\\b"), "a/b")
        with self.assertRaises(ValueError):
            norm_key("C:\\windows")

    def test_atomic_write_replaces(self):
        with tempfile.TemporaryDirectory() as tmp:
            dest = Path(tmp) / "sub" / "file.bin"
            atomic_write_bytes(dest, b"first")
            atomic_write_bytes(dest, b"second")
            self.assertEqual(dest.read_bytes(), b"second")
            self.assertEqual([p.name for p in dest.parent.iterdir()], ["file.bin"])


if __name__ == "__main__":
    unittest.main()
