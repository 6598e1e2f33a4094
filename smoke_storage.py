#!/usr/bin/env python3
from __future__ import annotations

import os
import tempfile
from pathlib import Path

from identikey import EncryptedStorage, KeyManager, generate_keypair
from identikey.errors import DecryptionError, KeyNotFoundError
from identikey.keyfile import decrypt_private_key, encrypt_private_key, load_key_file, save_key_file
from identikey.keys import keypair_from_secret
from identikey.storage import FilesystemAdapter, MemoryAdapter


def basic_usage(storage: EncryptedStorage, keys: KeyManager):
    alice = generate_keypair()
    keys.add_keypair(alice)

    report = b"quarterly numbers\n" * 512
    address = storage.put(
        report,
        alice.public_key,
        {"original_filename": "report.txt", "content_type": "text/plain"},
        checksum=True,
    )
    assert storage.exists(address), "blob missing after put"
    assert storage.get(address) == report, "roundtrip mismatch"

    md = storage.get_metadata(address)
    assert md.original_filename == "report.txt"
    assert md.plaintext_checksum is not None

    storage.delete(address)
    assert not storage.exists(address), "blob still present after delete"
    print("basic usage: OK", address[:16])


def key_management(storage: EncryptedStorage, workdir: Path):
    bob = generate_keypair()
    key_path = workdir / "bob.json"
    save_key_file(key_path, encrypt_private_key(bob.secret_key, bob.public_key, "correct horse"))

    address = storage.put(b"for bob", bob.public_key)

    # Without Bob's key registered the lookup fails; an explicit key still works.
    try:
        storage.get(address)
    except KeyNotFoundError:
        pass
    else:
        raise AssertionError("lookup succeeded without a registered key")

    restored = keypair_from_secret(decrypt_private_key(load_key_file(key_path), "correct horse"))
    assert restored.fingerprint == bob.fingerprint
    assert storage.get(address, private_key=restored.secret_key) == b"for bob"

    storage.key_manager.add_keypair(restored)
    assert storage.get(address) == b"for bob"
    print("key management: OK", bob.fingerprint)


def multiple_recipients(storage: EncryptedStorage):
    team = [generate_keypair() for _ in range(3)]
    for member in team:
        storage.key_manager.add_keypair(member)

    # One blob per recipient; addresses never correlate across keys.
    plaintext = b"team document"
    addresses = [storage.put(plaintext, member.public_key) for member in team]
    assert len(set(addresses)) == len(team), "recipient blobs share an address"
    for address in addresses:
        assert storage.get(address) == plaintext

    try:
        storage.get(addresses[0], private_key=team[1].secret_key)
    except DecryptionError:
        pass
    else:
        raise AssertionError("wrong recipient decrypted the blob")
    print("multiple recipients: OK", len(addresses))


def scenario(adapter, workdir: Path):
    keys = KeyManager()
    storage = EncryptedStorage(adapter, keys)
    basic_usage(storage, keys)
    key_management(EncryptedStorage(adapter), workdir)
    multiple_recipients(storage)


def main():
    with tempfile.TemporaryDirectory() as tmp:
        tmp_path = Path(tmp)
        scenario(MemoryAdapter(), tmp_path)
        scenario(FilesystemAdapter(tmp_path / "blobs"), tmp_path)
        print("[FS] smoke: OK", len(os.listdir(tmp_path / "blobs")))


if __name__ == "__main__":
    main()
