"""Identity resolution service."""

from hrflow.services.identity.resolver import IdentityResolver

__all__ = ["IdentityResolver"]
