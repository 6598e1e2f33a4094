from __future__ import annotations

import argparse
import getpass as _getpass
import json as _json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from identikey.api import EncryptedStorage, content_address
from identikey.armor import armor, dearmor, is_armored
from identikey.constants import (
    ARMOR_ENCRYPTED_MESSAGE,
    ARMOR_PRIVATE_KEY,
    ARMOR_PUBLIC_KEY,
    DEFAULT_PERSONA,
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
)
from identikey.errors import IdentikeyError, KeyFileError, PersonaError
from identikey.fingerprint import compute_fingerprint
from identikey.header import parse_header
from identikey.keyfile import (
    KeyFile,
    decode_public_key,
    decrypt_private_key,
    encrypt_private_key,
    load_key_file,
    plain_key_file,
    save_key_file,
)
from identikey.keys import generate_keypair, keypair_from_secret
from identikey.pathutil import atomic_write_bytes
from identikey.persona import PersonaManager
from identikey.storage import MemoryAdapter


log = logging.getLogger("identikey.cli")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _read_input(path: Optional[str]) -> bytes:
    if path is None or path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as fh:
        return fh.read()


def _write_output(data: bytes, path: Optional[str]) -> None:
    if path is None or path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    atomic_write_bytes(path, data, mode=0o600, dir_mode=0o755)


def _maybe_dearmor(raw: bytes) -> bytes:
    if is_armored(raw):
        return dearmor(raw.decode("utf-8")).data
    return raw


def _prompt_passphrase(prompt: str) -> str:
    return _getpass.getpass(prompt)


def _key_path(manager: PersonaManager, key: Optional[str]) -> Path:
    if key:
        return Path(key)
    try:
        return manager.get_persona_key_path()
    except PersonaError:
        raise PersonaError("--key required or use active persona. Run 'identikey keygen' first.") from None


def _load_public_key(manager: PersonaManager, key: Optional[str]) -> bytes:
    """Public key from an armored block, a key file, or bare Base58/base64 text."""
    path = _key_path(manager, key)
    text = path.read_text(encoding="utf-8")
    if is_armored(text):
        result = dearmor(text)
        if result.armor_type == ARMOR_PRIVATE_KEY:
            return keypair_from_secret(result.data).public_key
        if len(result.data) != PUBLIC_KEY_SIZE:
            raise KeyFileError(f"Armored public key must be {PUBLIC_KEY_SIZE} bytes")
        return result.data
    try:
        obj = _json.loads(text)
    except _json.JSONDecodeError:
        return decode_public_key(text)
    return KeyFile.from_dict(obj).public_key


def _load_private_key(manager: PersonaManager, key: Optional[str], passphrase: Optional[str]) -> bytes:
    path = _key_path(manager, key)
    text = path.read_text(encoding="utf-8")
    if is_armored(text):
        result = dearmor(text)
        if result.armor_type != ARMOR_PRIVATE_KEY or len(result.data) != SECRET_KEY_SIZE:
            raise KeyFileError(f"{path} does not hold a private key")
        return result.data
    key_file = load_key_file(path)
    if key_file.is_encrypted and passphrase is None:
        passphrase = _prompt_passphrase("Enter passphrase to decrypt key: ")
    return decrypt_private_key(key_file, passphrase or "")


def cmd_keygen(
    manager: PersonaManager,
    *,
    persona: str = DEFAULT_PERSONA,
    output: Optional[str] = None,
    use_armor: bool = False,
    passphrase: Optional[str] = None,
    no_passphrase: bool = False,
) -> bool:
    """Generate a key pair, write its key file and register the persona.

    Args:
        manager: Persona store to update.
        persona: Persona name to register.
        output: Key file path (defaults to the persona directory).
        use_armor: Also print the armored public key.
        passphrase: Passphrase for the key file; prompted when omitted.
        no_passphrase: Write the private key unencrypted.
    """
    keypair = generate_keypair()
    fingerprint = keypair.fingerprint
    print(f"Fingerprint: {fingerprint}")

    if no_passphrase:
        print("WARNING: generating unencrypted key (INSECURE).", file=sys.stderr)
        key_file = plain_key_file(keypair.secret_key, keypair.public_key)
    else:
        if passphrase is None:
            passphrase = _prompt_passphrase("Enter passphrase to encrypt key: ")
            if not passphrase:
                print("Error: Passphrase cannot be empty. Use --no-passphrase to skip (not recommended).", file=sys.stderr)
                return False
            if _prompt_passphrase("Confirm passphrase: ") != passphrase:
                print("Error: Passphrases do not match.", file=sys.stderr)
                return False
        key_file = encrypt_private_key(keypair.secret_key, keypair.public_key, passphrase)

    out_path = Path(output) if output else manager.get_default_key_path(persona)
    save_key_file(out_path, key_file)
    print(f"Key saved to: {out_path}")
    log.debug("wrote key file %s", out_path)

    if any(p.name == persona for p in manager.list_personas()):
        manager.update_persona(persona, out_path, fingerprint)
        print(f"Persona '{persona}' updated with the new key")
    else:
        manager.create_persona(persona, out_path, fingerprint)
        active = manager.get_active_persona()
        suffix = " and set as active" if active is not None and active.name == persona else ""
        print(f"Persona '{persona}' created{suffix}")

    if use_armor:
        print(
            armor(
                keypair.public_key,
                ARMOR_PUBLIC_KEY,
                {"Version": "1", "KeyType": "X25519", "Fingerprint": fingerprint},
            )
        )
    return True


def cmd_fingerprint(manager: PersonaManager, *, key: Optional[str] = None, as_json: bool = False) -> bool:
    public_key = _load_public_key(manager, key)
    fingerprint = compute_fingerprint(public_key)
    if as_json:
        print(_json.dumps({"fingerprint": fingerprint, "publicKey": public_key.hex()}, indent=2))
    else:
        print(fingerprint)
    return True


def cmd_encrypt(
    manager: PersonaManager,
    input_path: Optional[str] = None,
    *,
    key: Optional[str] = None,
    output: Optional[str] = None,
    use_armor: bool = False,
    checksum: bool = False,
    content_type: Optional[str] = None,
) -> bool:
    """Seal stdin or a file for a public key; emits the full blob."""
    public_key = _load_public_key(manager, key)
    plaintext = _read_input(input_path)

    metadata: Dict[str, Any] = {}
    if input_path and input_path != "-":
        metadata["original_filename"] = Path(input_path).name
    if content_type:
        metadata["content_type"] = content_type

    storage = EncryptedStorage(MemoryAdapter())
    address = storage.put(plaintext, public_key, metadata, checksum=checksum)
    blob = storage.get_blob(address)

    if use_armor:
        header = parse_header(blob).header
        data = armor(
            blob,
            ARMOR_ENCRYPTED_MESSAGE,
            {
                "Version": str(header.version),
                "RecipientFingerprint": header.key_fingerprint,
                "OriginalSize": str(len(plaintext)),
                "ContentHash": address,
            },
        ).encode("utf-8") + b"\n"
    else:
        data = blob
    _write_output(data, output)
    if output:
        print(f"Encrypted data saved to: {output}", file=sys.stderr)
        print(f"  Content hash: {address}", file=sys.stderr)
    return True


def cmd_decrypt(
    manager: PersonaManager,
    input_path: Optional[str] = None,
    *,
    key: Optional[str] = None,
    passphrase: Optional[str] = None,
    output: Optional[str] = None,
    address: Optional[str] = None,
) -> bool:
    """Open a raw or armored blob.

    The blob is checked against ``address`` when given, else against its own
    SHA-256, then decrypted exactly as ``EncryptedStorage.get`` does.
    """
    blob = _maybe_dearmor(_read_input(input_path))
    secret_key = _load_private_key(manager, key, passphrase)

    adapter = MemoryAdapter()
    expected = address or content_address(blob)
    adapter.put(expected, blob)
    plaintext = EncryptedStorage(adapter).get(expected, secret_key)
    _write_output(plaintext, output)
    if output:
        print(f"Decrypted data saved to: {output}", file=sys.stderr)
    return True


def cmd_info(blob_path: str, *, as_json: bool = False) -> bool:
    blob = _maybe_dearmor(_read_input(blob_path))
    parsed = parse_header(blob)
    header = parsed.header
    md = header.metadata
    info: Dict[str, Any] = {
        "version": header.version,
        "key_fingerprint": header.key_fingerprint,
        "algorithm": md.algorithm,
        "timestamp": md.timestamp,
        "original_filename": md.original_filename,
        "content_type": md.content_type,
        "plaintext_checksum": md.plaintext_checksum,
        "content_hash": content_address(blob),
        "header_size": parsed.ciphertext_offset,
        "ciphertext_size": len(blob) - parsed.ciphertext_offset,
        "total_size": len(blob),
    }
    if as_json:
        print(_json.dumps(info, indent=2))
        return True
    print(f"Blob: {blob_path}")
    print(f"  Version: {header.version}")
    print(f"  Key fingerprint: {header.key_fingerprint}")
    print(f"  Algorithm: {md.algorithm}")
    print(f"  Timestamp: {md.timestamp}")
    if md.original_filename is not None:
        print(f"  Original filename: {md.original_filename}")
    if md.content_type is not None:
        print(f"  Content type: {md.content_type}")
    if md.plaintext_checksum is not None:
        print(f"  Plaintext checksum: {md.plaintext_checksum}")
    print(f"  Content hash: {info['content_hash']}")
    print(f"  Ciphertext size: {info['ciphertext_size']} bytes")
    print(f"  Total size: {info['total_size']} bytes")
    return True


def cmd_persona(
    manager: PersonaManager,
    name: Optional[str] = None,
    *,
    list_all: bool = False,
    current: bool = False,
    delete: Optional[str] = None,
) -> bool:
    if delete:
        manager.delete_persona(delete)
        print(f"Persona '{delete}' deleted")
        return True
    if list_all:
        active = manager.get_active_persona()
        personas = manager.list_personas()
        if not personas:
            print("No personas found. Run 'identikey keygen' to create one.")
        for p in personas:
            marker = "*" if active is not None and active.name == p.name else " "
            print(f"{marker} {p.name}\t{p.fingerprint}\t{p.keyPath}")
        return True
    if name and not current:
        manager.set_active_persona(name)
        print(f"Switched to persona '{name}'")
        return True
    active = manager.get_active_persona()
    if active is None:
        print("No active persona. Run 'identikey keygen' to create one.", file=sys.stderr)
        return False
    print(f"{active.name}\t{active.fingerprint}\t{active.keyPath}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="identikey",
        description="Content-addressed encrypted blobs for Curve25519 keys",
    )
    ap.add_argument("--config-dir", help="Persona config directory (default: $IDENTIKEY_CONFIG_DIR or ~/.config/identikey)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_keygen = sub.add_parser("keygen", help="Generate a key pair")
    ap_keygen.add_argument("--persona", default=DEFAULT_PERSONA, help="Persona name (default: default)")
    ap_keygen.add_argument("--output", help="Key file path (default: persona location)")
    ap_keygen.add_argument("--armor", "-a", action="store_true", help="Also print the ASCII-armored public key")
    pw_group = ap_keygen.add_mutually_exclusive_group()
    pw_group.add_argument("--passphrase", help="Key file passphrase (prompted when omitted)")
    pw_group.add_argument("--no-passphrase", action="store_true", help="Store the private key unencrypted (INSECURE)")

    ap_fp = sub.add_parser("fingerprint", help="Show a public key fingerprint")
    ap_fp.add_argument("--key", help="Key file or armored public key (default: active persona)")
    ap_fp.add_argument("--json", action="store_true", help="Emit JSON")

    ap_enc = sub.add_parser("encrypt", help="Encrypt stdin or a file")
    ap_enc.add_argument("input", nargs="?", help="Input file (default: stdin)")
    ap_enc.add_argument("--key", help="Recipient key file or armored public key (default: active persona)")
    ap_enc.add_argument("--output", help="Output file (default: stdout)")
    ap_enc.add_argument("--armor", "-a", action="store_true", help="Emit an ASCII-armored blob")
    ap_enc.add_argument("--checksum", action="store_true", help="Record the plaintext SHA-256 in the header")
    ap_enc.add_argument("--content-type", help="Content type recorded in the header")

    ap_dec = sub.add_parser("decrypt", help="Decrypt a raw or armored blob")
    ap_dec.add_argument("input", nargs="?", help="Input file (default: stdin)")
    ap_dec.add_argument("--key", help="Private key file (default: active persona)")
    ap_dec.add_argument("--passphrase", help="Key file passphrase (prompted when omitted)")
    ap_dec.add_argument("--output", help="Output file (default: stdout)")
    ap_dec.add_argument("--address", help="Expected content address of the blob")

    ap_info = sub.add_parser("info", help="Show blob header metadata")
    ap_info.add_argument("blob", help="Blob path")
    ap_info.add_argument("--json", action="store_true", help="Emit JSON")

    ap_persona = sub.add_parser("persona", help="Show, switch, list or delete personas")
    ap_persona.add_argument("name", nargs="?", help="Persona to activate")
    ap_persona.add_argument("--list", action="store_true", help="List personas")
    ap_persona.add_argument("--current", action="store_true", help="Show the active persona")
    ap_persona.add_argument("--delete", metavar="NAME", help="Delete a persona")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    manager = PersonaManager(args.config_dir)
    try:
        if args.cmd == "keygen":
            ok = cmd_keygen(
                manager,
                persona=args.persona,
                output=args.output,
                use_armor=args.armor,
                passphrase=args.passphrase,
                no_passphrase=args.no_passphrase,
            )
        elif args.cmd == "fingerprint":
            ok = cmd_fingerprint(manager, key=args.key, as_json=args.json)
        elif args.cmd == "encrypt":
            ok = cmd_encrypt(
                manager,
                args.input,
                key=args.key,
                output=args.output,
                use_armor=args.armor,
                checksum=args.checksum,
                content_type=args.content_type,
            )
        elif args.cmd == "decrypt":
            ok = cmd_decrypt(
                manager,
                args.input,
                key=args.key,
                passphrase=args.passphrase,
                output=args.output,
                address=args.address,
            )
        elif args.cmd == "info":
            ok = cmd_info(args.blob, as_json=args.json)
        elif args.cmd == "persona":
            ok = cmd_persona(manager, args.name, list_all=args.list, current=args.current, delete=args.delete)
        else:
            raise RuntimeError("Unknown command")
        if not ok:
            sys.exit(1)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (IdentikeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
