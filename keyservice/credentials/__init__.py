"""Bearer credentials: format, classification, storage and issuance."""

from keyservice.credentials.keys import (
    Classification,
    KeyKind,
    classify,
    display_prefix,
    generate_key,
    hash_key,
)

__all__ = [
    "Classification",
    "KeyKind",
    "classify",
    "display_prefix",
    "generate_key",
    "hash_key",
]
