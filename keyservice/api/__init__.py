"""HTTP surface of the key service."""

from keyservice.api.app import create_app

__all__ = ["create_app"]
