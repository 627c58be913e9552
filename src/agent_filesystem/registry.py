"""
Provider registry and provider factories.

The registry maps names to provider instances for the lifetime of a
service. Factories map provider *types* (as written in configuration) to
callables that build providers, so new backends can be plugged in without
touching the service.
"""

import logging
from typing import Callable, Optional

from agent_filesystem.config import ProviderSettings
from agent_filesystem.exceptions import ConfigurationError, ProviderNotFoundError
from agent_filesystem.providers.base import FileSystemProvider
from agent_filesystem.providers.local import LocalFileSystemProvider

logger = logging.getLogger(__name__)

# Type alias for provider factory functions
ProviderFactory = Callable[..., FileSystemProvider]

# Registry of provider factories
_PROVIDER_FACTORIES: dict[str, ProviderFactory] = {}


def register_provider_factory(
    type_name: str,
    factory: Optional[ProviderFactory] = None,
) -> Callable[[ProviderFactory], ProviderFactory]:
    """
    Register a provider factory for a provider type.

    Can be used as a decorator or called directly.

    Example:
        ```python
        # As decorator
        @register_provider_factory("ssh")
        def create_ssh_provider(host: str, **options) -> FileSystemProvider:
            return SSHFileSystemProvider(host, **options)

        # Direct call
        register_provider_factory("ssh", create_ssh_provider)
        ```

    Args:
        type_name: The provider type to register
        factory: Optional factory function (if not using as decorator)

    Returns:
        The factory function (for decorator use)
    """

    def decorator(func: ProviderFactory) -> ProviderFactory:
        _PROVIDER_FACTORIES[type_name] = func
        return func

    if factory is not None:
        return decorator(factory)
    return decorator


def create_provider(type_name: str, **options) -> FileSystemProvider:
    """
    Build a provider of a registered type.

    Raises:
        ConfigurationError: If the type is unknown or the options are invalid
    """
    factory = _PROVIDER_FACTORIES.get(type_name)
    if factory is None:
        available = ", ".join(sorted(_PROVIDER_FACTORIES))
        raise ConfigurationError(
            f"Unknown provider type: {type_name}. Available types: {available}"
        )

    try:
        return factory(**options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for provider type {type_name}: {e}")


def list_provider_types() -> list[str]:
    """List all registered provider types."""
    return list(_PROVIDER_FACTORIES)


@register_provider_factory("local")
def _create_local_provider(
    base_directory=None, default_timeout_seconds: float = 120.0
) -> FileSystemProvider:
    """Create a provider rooted on local disk."""
    if base_directory is None:
        raise ConfigurationError("Provider type local requires a base_directory")
    return LocalFileSystemProvider(base_directory, default_timeout_seconds)


class ProviderRegistry:
    """
    Named provider instances.

    Usage:
        registry = ProviderRegistry()
        registry.register("workspace", LocalFileSystemProvider("/tmp/ws"))
        provider = registry.get("workspace")
    """

    def __init__(self):
        self._providers: dict[str, FileSystemProvider] = {}

    @classmethod
    def from_settings(cls, providers: dict[str, ProviderSettings]) -> "ProviderRegistry":
        """Build a registry from configured provider definitions."""
        registry = cls()
        for name, settings in providers.items():
            options = settings.model_dump(exclude={"type"}, exclude_none=True)
            registry.register(name, create_provider(settings.type, **options))
        return registry

    def register(self, name: str, provider: FileSystemProvider) -> None:
        """Register a provider under a name, replacing any previous one."""
        if name in self._providers:
            logger.warning(f"Replacing registered filesystem provider: {name}")
        else:
            logger.debug(f"Registered filesystem provider: {name}")
        self._providers[name] = provider

    def get(self, name: str) -> FileSystemProvider:
        """
        Look up a provider by name.

        Raises:
            ProviderNotFoundError: If no provider is registered under the name
        """
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name, self.list_providers())
        return provider

    def list_providers(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __getitem__(self, name: str) -> FileSystemProvider:
        return self.get(name)

    def __len__(self) -> int:
        return len(self._providers)
