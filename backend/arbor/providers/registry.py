"""Process-wide registry of configured LLM providers, keyed by name."""

from arbor.providers.base import LLMProvider

_registry: dict[str, LLMProvider] = {}


def register_provider(provider: LLMProvider) -> None:
    """Add provider under its name, replacing any provider of the same name."""
    _registry[provider.name] = provider


def get_provider(name: str) -> LLMProvider:
    """Look up a provider. Raises ProviderNotFoundError if it is not registered."""
    provider = _registry.get(name)
    if provider is None:
        known = ", ".join(sorted(_registry)) or "(none)"
        raise ProviderNotFoundError(f"Unknown provider '{name}'. Registered: {known}")
    return provider


def get_all_providers() -> list[LLMProvider]:
    return list(_registry.values())


def clear_providers() -> None:
    """Forget every provider. Called on shutdown and between tests."""
    _registry.clear()


class ProviderNotFoundError(Exception):
    pass
