from types import MappingProxyType
from typing import Any

from keto.core.exceptions import NotFoundError
from keto.core.providers.base_provider import BaseProvider
from keto.core.providers.memory.memory_provider import InMemoryConfig, InMemoryProvider


class ProviderRegistry:
    """Name -> (ProviderClass, ConfigClass) mapping.

    Built once at startup and frozen, then handed to whoever needs to resolve
    providers by name.
    """

    def __init__(self) -> None:
        self._registry: dict[str, tuple[type[BaseProvider], type]] = {}
        self._frozen = False

    def register_provider(self, provider_class: type[BaseProvider], config_class: type) -> None:
        if self._frozen:
            raise RuntimeError('Provider registry is frozen, register providers before startup completes.')

        name = provider_class.name.lower()

        if name in self._registry:
            raise ValueError(f"Provider '{name}' is already registered.")

        self._registry[name] = (provider_class, config_class)

    def freeze(self) -> 'ProviderRegistry':
        self._registry = MappingProxyType(dict(self._registry))
        self._frozen = True

        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _get_provider_info(self, name: str) -> tuple[type[BaseProvider], type]:
        info = self._registry.get(name.lower())
        if info is None:
            raise NotFoundError(f"Unknown cloud provider '{name}'. Supported providers: {', '.join(self.names())}")
        return info

    def get_provider(self, name: str, provider_config: dict[str, Any] | None = None) -> BaseProvider:
        provider_class, config_class = self._get_provider_info(name)

        return provider_class(config_class(**(provider_config or {})))

    def names(self) -> list[str]:
        return sorted(self._registry)


def build_provider_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register_provider(InMemoryProvider, InMemoryConfig)

    return registry.freeze()
