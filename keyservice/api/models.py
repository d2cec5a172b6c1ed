"""Pydantic request models for the key service API."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

ByokProvider = Literal["apollo", "anthropic", "instantly", "firecrawl"]


def _check_uuid(v: str, field_name: str) -> str:
    if not _UUID_RE.match(v):
        raise ValueError(f"{field_name} must be a valid UUID, got: {v[:60]!r}")
    return v


# ─── User API keys ───────────────────────────────────────────────────────


class CreateApiKeyRequest(BaseModel):
    appId: str = Field(min_length=1)
    orgId: str = Field(min_length=1)
    userId: str
    createdBy: str
    name: str = Field(min_length=1)

    @field_validator("userId", "createdBy")
    @classmethod
    def validate_uuids(cls, v: str, info) -> str:
        return _check_uuid(v, info.field_name)


class DeleteApiKeyRequest(BaseModel):
    orgId: str = Field(min_length=1)


class SessionApiKeyRequest(BaseModel):
    appId: str = Field(min_length=1)
    orgId: str = Field(min_length=1)
    userId: str

    @field_validator("userId")
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        return _check_uuid(v, "userId")


# ─── Provider secrets ────────────────────────────────────────────────────


class CreateByokKeyRequest(BaseModel):
    orgId: str = Field(min_length=1)
    provider: ByokProvider
    apiKey: str = Field(min_length=1)


class CreateAppKeyRequest(BaseModel):
    appId: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    apiKey: str = Field(min_length=1)


class CreatePlatformKeyRequest(BaseModel):
    provider: str = Field(min_length=1)
    apiKey: str = Field(min_length=1)


# ─── Provider requirements ───────────────────────────────────────────────


class Endpoint(BaseModel):
    service: str = Field(min_length=1)
    method: str = Field(min_length=1)
    path: str = Field(min_length=1)


class ProviderRequirementsRequest(BaseModel):
    endpoints: list[Endpoint] = Field(min_length=1)


# ─── Apps ────────────────────────────────────────────────────────────────


class RegisterAppRequest(BaseModel):
    name: str = Field(
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9-]+$",
        description="App name must be lowercase alphanumeric with hyphens",
    )
