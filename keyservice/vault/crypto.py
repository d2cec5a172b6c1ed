"""
AES-256-GCM encryption for secrets at rest.

One 32-byte key, supplied hex-encoded through ENCRYPTION_KEY, protects every
stored value. Each encryption draws a fresh 12-byte nonce and the result is
serialized as three hex fields:

    <nonce>:<auth tag>:<ciphertext>

The separator and field order are a storage contract: rows written by any
other implementation with the same key must decrypt here, and vice versa.
"""

from __future__ import annotations

import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keyservice.errors import DecryptionError

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16
SEPARATOR = ":"

MASK_MARKER = "..."
MASK_VISIBLE = 4
MASK_MIN_LENGTH = 12


def generate_encryption_key() -> str:
    """Return a new random 256-bit key, hex-encoded (for ENCRYPTION_KEY)."""
    return secrets.token_hex(KEY_BYTES)


def load_encryption_key(value: str) -> bytes:
    """Parse a hex-encoded 256-bit key. Raises ValueError on anything else."""
    value = value.strip()
    if not value:
        raise ValueError("ENCRYPTION_KEY is not set")
    try:
        key = bytes.fromhex(value)
    except ValueError as e:
        raise ValueError("ENCRYPTION_KEY must be hex-encoded") from e
    if len(key) != KEY_BYTES:
        raise ValueError(f"ENCRYPTION_KEY must be {KEY_BYTES} bytes, got {len(key)}")
    return key


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt plaintext with AES-256-GCM. Returns ``nonce:tag:ciphertext`` in hex."""
    nonce = secrets.token_bytes(NONCE_BYTES)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return SEPARATOR.join((nonce.hex(), tag.hex(), ciphertext.hex()))


def decrypt(serialized: str, key: bytes) -> str:
    """Verify and decrypt a ``nonce:tag:ciphertext`` value back to plaintext."""
    parts = serialized.split(SEPARATOR)
    if len(parts) != 3:
        raise DecryptionError(f"Malformed encrypted value: expected 3 components, got {len(parts)}")
    try:
        nonce, tag, ciphertext = (bytes.fromhex(p) for p in parts)
    except ValueError as e:
        raise DecryptionError("Malformed encrypted value: components must be hex") from e
    if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
        raise DecryptionError("Malformed encrypted value: bad nonce or tag length")

    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptionError("Authentication tag mismatch (tampered value or wrong key)") from e
    return plaintext.decode("utf-8")


def mask(plaintext: str) -> str:
    """Fixed-shape display form: the first 4 characters followed by ``...``.

    Values shorter than MASK_MIN_LENGTH are fully redacted, so at least eight
    characters always stay hidden.
    """
    if len(plaintext) < MASK_MIN_LENGTH:
        return "*" * MASK_VISIBLE
    return f"{plaintext[:MASK_VISIBLE]}{MASK_MARKER}"
