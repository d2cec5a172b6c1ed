"""Request authentication: service secret and bearer credentials."""

from keyservice.auth.resolver import AuthResolver, IdentityContext

__all__ = ["AuthResolver", "IdentityContext"]
