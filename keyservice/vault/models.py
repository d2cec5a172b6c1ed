"""Vault data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SecretEntry(BaseModel):
    """A stored provider secret as listed to callers: masked, never the plaintext."""

    provider: str
    maskedKey: str
    createdAt: datetime | None = None
    updatedAt: datetime | None = None
