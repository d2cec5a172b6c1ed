"""
Error taxonomy for the key service.

Every expected failure is a ``KeyServiceError`` carrying the HTTP status the
API boundary translates it to. None of them are retried: a bad credential or a
corrupted ciphertext cannot succeed on a second attempt.
"""

from __future__ import annotations


class KeyServiceError(Exception):
    """Base class for failures that terminate a single request."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(KeyServiceError):
    """Malformed or missing required input."""

    status_code = 400


class AuthenticationError(KeyServiceError):
    """Credential not recognized or service secret mismatch."""

    status_code = 401


class ServiceNotConfiguredError(AuthenticationError):
    """No service secret configured. An operator fault, not a bad caller."""

    status_code = 500


class NotFoundError(KeyServiceError):
    """The requested secret or key does not exist in the given scope."""

    status_code = 404


class DecryptionError(KeyServiceError):
    """Stored ciphertext failed authentication or is malformed."""

    status_code = 500
