"""VM provider abstraction layer for multi-provider cluster management."""

from ..errors import UnknownProviderError
from .base import (
    CreateOpts,
    Provider,
    ProviderFlags,
    ProviderRegistry,
    SSDOpts,
)
from .local import LocalProvider


def build_registry(config) -> ProviderRegistry:
    """Register every provider enabled in config.

    Raises:
        UnknownProviderError: If config names an unsupported provider
    """
    registry = ProviderRegistry()
    for name in config.providers:
        if name == "local":
            registry.register(LocalProvider(user=config.local_user))
        else:
            raise UnknownProviderError(name)
    return registry


__all__ = [
    "CreateOpts",
    "Provider",
    "ProviderFlags",
    "ProviderRegistry",
    "SSDOpts",
    "LocalProvider",
    "build_registry",
]
