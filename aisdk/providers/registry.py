"""Provider registry and model string parsing."""

from __future__ import annotations

from aisdk.errors import InvalidModelStringError, ProviderNotFoundError
from aisdk.providers.base import TextProvider


class ProviderRegistry:
    """Maps provider names to TextProvider instances for one session."""

    def __init__(self) -> None:
        self._providers: dict[str, TextProvider] = {}

    def register(self, provider: TextProvider, name: str | None = None) -> None:
        self._providers[name or provider.name] = provider

    def get(self, name: str) -> TextProvider:
        """Return the provider called *name*.

        Raises:
            ProviderNotFoundError: If no such provider is registered.
        """
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderNotFoundError(name, self.names()) from None

    def has(self, name: str) -> bool:
        return name in self._providers

    def names(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    @staticmethod
    def parse_model_string(model: str) -> tuple[str, str]:
        """Split ``provider/model`` at the first slash.

        ``"openrouter/meta/llama-3"`` gives ``("openrouter", "meta/llama-3")``.

        Raises:
            InvalidModelStringError: If either side of the slash is empty.
        """
        provider, sep, name = model.partition("/")
        if not sep or not provider or not name:
            raise InvalidModelStringError(model)
        return provider, name

    def resolve(self, model: str) -> tuple[TextProvider, str]:
        """Return the provider and bare model name for a ``provider/model`` string."""
        provider_name, model_name = self.parse_model_string(model)
        return self.get(provider_name), model_name
