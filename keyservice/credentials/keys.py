"""
Bearer credential format, hashing and classification.

Keys look like ``distrib.usr_<40 hex>`` or ``distrib.app_<40 hex>``. The
legacy ``mcpf_usr_`` / ``mcpf_app_`` family is still accepted for
validation but never issued. The kind tag sits at a fixed place in the
string, so classification needs no database lookup.

Only the SHA-256 hash of a key is ever stored for lookup.
"""

from __future__ import annotations

import enum
import hashlib
import re
import secrets
from dataclasses import dataclass

CURRENT_FAMILY = "distrib."
LEGACY_FAMILY = "mcpf_"

RANDOM_BYTES = 20  # 160 bits -> 40 hex chars
DISPLAY_PREFIX_LENGTH = 12


class KeyKind(str, enum.Enum):
    USER = "user"
    APP = "app"

    @property
    def tag(self) -> str:
        return "usr" if self is KeyKind.USER else "app"


_KEY_RE = re.compile(r"(?:distrib\.|mcpf_)(usr|app)_[0-9a-f]{40}")
_TAG_TO_KIND = {"usr": KeyKind.USER, "app": KeyKind.APP}


@dataclass(frozen=True)
class Classification:
    kind: KeyKind | None
    is_well_formed: bool


ILL_FORMED = Classification(kind=None, is_well_formed=False)


def generate_key(kind: KeyKind) -> str:
    """Issue a new raw key in the current family. Shown to its owner once."""
    return f"{CURRENT_FAMILY}{kind.tag}_{secrets.token_hex(RANDOM_BYTES)}"


def hash_key(raw_key: str) -> str:
    """SHA-256 hex digest used as the storage and lookup key."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def classify(raw_key: str) -> Classification:
    """Determine the kind of a key from either family, or report it ill-formed."""
    if not isinstance(raw_key, str):
        return ILL_FORMED
    m = _KEY_RE.fullmatch(raw_key)
    if not m:
        return ILL_FORMED
    return Classification(kind=_TAG_TO_KIND[m.group(1)], is_well_formed=True)


def has_known_family(raw_key: str) -> bool:
    return raw_key.startswith(CURRENT_FAMILY) or raw_key.startswith(LEGACY_FAMILY)


def display_prefix(raw_key: str) -> str:
    """First 12 characters, safe to show in listings."""
    return raw_key[:DISPLAY_PREFIX_LENGTH]
