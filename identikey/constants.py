from __future__ import annotations


# Wire header
HEADER_VERSION = 1
HEADER_MIN_SIZE = 5  # version u8 + fingerprint len u16 + metadata len u16
METADATA_SIZE_LIMIT = 64 * 1024  # 64 KiB
U16_MAX = 0xFFFF

DEFAULT_ALGORITHM = "X25519-XSalsa20-Poly1305"

# Curve25519 box
PUBLIC_KEY_SIZE = 32
SECRET_KEY_SIZE = 32
NONCE_SIZE = 24
TAG_SIZE = 16
SECRETBOX_KEY_SIZE = 32
ENVELOPE_SIZE = PUBLIC_KEY_SIZE + NONCE_SIZE  # 56
MIN_BOX_SIZE = ENVELOPE_SIZE + TAG_SIZE  # 72

# Content addresses and fingerprints
ADDRESS_HEX_LEN = 64
FINGERPRINT_PATTERN = r"^[1-9A-HJ-NP-Za-km-z]{43,44}$"
CHECKSUM_PATTERN = r"^[0-9a-f]{64}$"

# Key files (Argon2id + XSalsa20-Poly1305)
KEY_FILE_VERSION = 1
KEY_FILE_SALT_SIZE = 16
ARGON_TIME_COST = 3
ARGON_MEMORY_COST_KIB = 64 * 1024  # 64 MiB
ARGON_PARALLELISM = 1

# ASCII armor
ARMOR_LABEL = "IDENTIKEY"
ARMOR_LINE_WIDTH = 64
ARMOR_PUBLIC_KEY = "PUBLIC KEY"
ARMOR_PRIVATE_KEY = "PRIVATE KEY"
ARMOR_ENCRYPTED_MESSAGE = "ENCRYPTED MESSAGE"
ARMOR_TYPES = (ARMOR_PUBLIC_KEY, ARMOR_PRIVATE_KEY, ARMOR_ENCRYPTED_MESSAGE)

# Personas
CONFIG_DIR_ENV = "IDENTIKEY_CONFIG_DIR"
DEFAULT_PERSONA = "default"
KEY_FILE_NAME = "id.json"
