"""Tests for vault crypto operations."""

import secrets

import pytest

from keyservice.errors import DecryptionError
from keyservice.vault.crypto import (
    decrypt,
    encrypt,
    generate_encryption_key,
    load_encryption_key,
    mask,
)


class TestEncryptDecrypt:
    def test_roundtrip(self):
        key = secrets.token_bytes(32)
        plaintext = "sk-ant-api03-my-secret-key"
        encrypted = encrypt(plaintext, key)
        assert decrypt(encrypted, key) == plaintext

    def test_wire_format(self):
        key = secrets.token_bytes(32)
        nonce, tag, ciphertext = encrypt("abc", key).split(":")
        assert len(bytes.fromhex(nonce)) == 12
        assert len(bytes.fromhex(tag)) == 16
        assert len(bytes.fromhex(ciphertext)) == 3

    def test_different_nonces(self):
        key = secrets.token_bytes(32)
        a = encrypt("same", key)
        b = encrypt("same", key)
        assert a != b
        assert a.split(":")[0] != b.split(":")[0]

    def test_wrong_key_fails(self):
        encrypted = encrypt("secret", secrets.token_bytes(32))
        with pytest.raises(DecryptionError, match="(?i)authentication tag"):
            decrypt(encrypted, secrets.token_bytes(32))

    def test_tampered_tag_fails(self):
        key = secrets.token_bytes(32)
        nonce, tag, ciphertext = encrypt("secret", key).split(":")
        flipped = f"{int(tag[0], 16) ^ 1:x}" + tag[1:]
        with pytest.raises(DecryptionError):
            decrypt(f"{nonce}:{flipped}:{ciphertext}", key)

    def test_tampered_ciphertext_fails(self):
        key = secrets.token_bytes(32)
        nonce, tag, ciphertext = encrypt("secret", key).split(":")
        flipped = f"{int(ciphertext[0], 16) ^ 1:x}" + ciphertext[1:]
        with pytest.raises(DecryptionError):
            decrypt(f"{nonce}:{tag}:{flipped}", key)

    def test_empty_string(self):
        key = secrets.token_bytes(32)
        assert decrypt(encrypt("", key), key) == ""

    def test_unicode(self):
        key = secrets.token_bytes(32)
        plaintext = "sekrit: \U0001f511 emoji-key"
        assert decrypt(encrypt(plaintext, key), key) == plaintext

    @pytest.mark.parametrize("value", ["", "abc", "aa:bb", "aa:bb:cc:dd"])
    def test_wrong_component_count(self, value):
        with pytest.raises(DecryptionError, match="3 components"):
            decrypt(value, secrets.token_bytes(32))

    def test_non_hex_component(self):
        with pytest.raises(DecryptionError, match="hex"):
            decrypt("zz:zz:zz", secrets.token_bytes(32))

    def test_short_nonce(self):
        with pytest.raises(DecryptionError, match="nonce or tag"):
            decrypt(f"{'00' * 4}:{'00' * 16}:00", secrets.token_bytes(32))


class TestEncryptionKey:
    def test_generate_is_loadable(self):
        key = load_encryption_key(generate_encryption_key())
        assert len(key) == 32

    def test_generate_is_random(self):
        assert generate_encryption_key() != generate_encryption_key()

    def test_surrounding_whitespace_ignored(self):
        assert load_encryption_key(f"  {'ab' * 32}\n") == bytes.fromhex("ab" * 32)

    def test_missing(self):
        with pytest.raises(ValueError, match="not set"):
            load_encryption_key("")

    def test_not_hex(self):
        with pytest.raises(ValueError, match="hex"):
            load_encryption_key("not-a-hex-key")

    def test_wrong_length(self):
        with pytest.raises(ValueError, match="32 bytes"):
            load_encryption_key("ab" * 16)


class TestMask:
    def test_shape(self):
        assert mask("sk-ant-api03-abcdefgh") == "sk-a..."

    def test_deterministic(self):
        assert mask("0123456789abcdef") == mask("0123456789abcdef")

    def test_minimum_length_hides_tail(self):
        assert mask("sk-ant-abcd1") == "sk-a..."

    def test_same_prefix_same_mask(self):
        assert mask("sk-ant-aaaaaaaa") == mask("sk-ant-bbbbbbbb")

    @pytest.mark.parametrize("value", ["", "a", "short", "0123456789a"])
    def test_short_values_fully_hidden(self, value):
        assert mask(value) == "****"
