"""
Vault — provider secrets encrypted at rest with AES-256-GCM.

Public API:
    crypto.encrypt(plaintext, key)   -> "nonce:tag:ciphertext" (hex)
    crypto.decrypt(value, key)       -> plaintext, or DecryptionError
    crypto.mask(plaintext)           -> display form
    service.KeyVault                 -> store / list / delete / decrypt per scope
"""

from __future__ import annotations

from keyservice.vault.dal import SecretDAL, SecretScope
from keyservice.vault.models import SecretEntry

__all__ = ["SecretDAL", "SecretEntry", "SecretScope"]
