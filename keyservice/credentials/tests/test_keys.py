"""Tests for keyservice.credentials.keys — key format and classification."""

import hashlib
import re

import pytest

from keyservice.credentials.keys import (
    KeyKind,
    classify,
    display_prefix,
    generate_key,
    has_known_family,
    hash_key,
)

HEX40 = "0123456789abcdef0123456789abcdef01234567"


class TestGenerate:
    def test_user_key_format(self):
        assert re.fullmatch(r"distrib\.usr_[0-9a-f]{40}", generate_key(KeyKind.USER))

    def test_app_key_format(self):
        assert re.fullmatch(r"distrib\.app_[0-9a-f]{40}", generate_key(KeyKind.APP))

    def test_keys_are_unique(self):
        keys = {generate_key(KeyKind.USER) for _ in range(100)}
        assert len(keys) == 100

    def test_generated_keys_classify_as_their_kind(self):
        for kind in KeyKind:
            c = classify(generate_key(kind))
            assert c.is_well_formed
            assert c.kind is kind


class TestClassify:
    @pytest.mark.parametrize(
        "raw,kind",
        [
            (f"distrib.usr_{HEX40}", KeyKind.USER),
            (f"distrib.app_{HEX40}", KeyKind.APP),
            (f"mcpf_usr_{HEX40}", KeyKind.USER),
            (f"mcpf_app_{HEX40}", KeyKind.APP),
        ],
    )
    def test_both_families(self, raw, kind):
        c = classify(raw)
        assert c.is_well_formed
        assert c.kind is kind

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "distrib.usr_",
            f"distrib.usr_{HEX40[:-1]}",
            f"distrib.usr_{HEX40}0",
            f"distrib.usr_{HEX40.upper()}",
            f"distrib.adm_{HEX40}",
            f"distrib_usr_{HEX40}",
            f"mcpf.usr_{HEX40}",
            f"sk_usr_{HEX40}",
            f"distrib.usr_{HEX40}\n",
            f" distrib.usr_{HEX40}",
        ],
    )
    def test_ill_formed(self, raw):
        c = classify(raw)
        assert not c.is_well_formed
        assert c.kind is None

    def test_non_string(self):
        assert not classify(None).is_well_formed
        assert not classify(12345).is_well_formed


class TestHashAndPrefix:
    def test_hash_is_sha256_hex(self):
        raw = f"distrib.usr_{HEX40}"
        assert hash_key(raw) == hashlib.sha256(raw.encode()).hexdigest()

    def test_hash_is_deterministic(self):
        raw = generate_key(KeyKind.APP)
        assert hash_key(raw) == hash_key(raw)

    def test_display_prefix(self):
        assert display_prefix(f"distrib.usr_{HEX40}") == "distrib.usr_"
        assert display_prefix(f"mcpf_app_{HEX40}") == "mcpf_app_012"

    def test_known_family(self):
        assert has_known_family(f"mcpf_usr_{HEX40}")
        assert has_known_family(generate_key(KeyKind.USER))
        assert not has_known_family("sk-ant-123")
