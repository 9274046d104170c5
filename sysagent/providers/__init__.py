"""Check providers — one per check kind."""

from sysagent.providers.base import Provider, ProviderError, ProviderSet

__all__ = ["Provider", "ProviderError", "ProviderSet"]
