"""Provider interface, registry and the LiteLLM adapter."""

from aisdk.providers.base import ProviderRequest, TextProvider
from aisdk.providers.registry import ProviderRegistry

__all__ = ["ProviderRegistry", "ProviderRequest", "TextProvider"]
