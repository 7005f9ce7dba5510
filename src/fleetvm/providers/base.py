"""Abstract base classes and the registry for VM provider implementations."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Iterator, List

import click

from ..errors import RegistryError, UnknownProviderError
from ..vm import VMList


@dataclass
class SSDOpts:
    """Local SSD options for created VMs."""

    use_local_ssd: bool = False
    # Mount with "-o nobarrier". Ignored unless use_local_ssd is set.
    no_ext4_barrier: bool = False


@dataclass
class CreateOpts:
    """Options used when creating VMs."""

    lifetime: timedelta = timedelta(hours=12)
    geo_distributed: bool = False
    vm_providers: List[str] = field(default_factory=list)
    ssd_opts: SSDOpts = field(default_factory=SSDOpts)


class ProviderFlags(ABC):
    """Hook for providers to contribute provider-specific command options.

    Option names should be prefixed with the provider's name to prevent
    collisions between similar options of different providers.
    """

    @abstractmethod
    def create_options(self) -> List[click.Option]:
        """Options relevant to the ``create`` command."""
        pass

    @abstractmethod
    def cluster_options(self) -> List[click.Option]:
        """Options relevant to cluster manipulation commands.

        These are ``create``, ``destroy``, ``list``, ``sync`` and ``gc``.
        """
        pass


class Provider(ABC):
    """A source of virtual machines running on some hosting platform.

    Each backend implements this interface and registers itself into a
    ProviderRegistry under the name returned by name().
    """

    @abstractmethod
    def clean_ssh(self) -> None:
        """Remove local SSH trust entries for this provider's hosts."""
        pass

    @abstractmethod
    def config_ssh(self) -> None:
        """Configure SSH access to this provider's hosts."""
        pass

    @abstractmethod
    def create(self, names: List[str], opts: CreateOpts) -> None:
        """Create one VM per name.

        Args:
            names: VM names to create
            opts: Creation options
        """
        pass

    @abstractmethod
    def delete(self, vms: VMList) -> None:
        """Delete the given VMs."""
        pass

    @abstractmethod
    def extend(self, vms: VMList, lifetime: timedelta) -> None:
        """Extend the lifetime of the given VMs."""
        pass

    @abstractmethod
    def find_active_account(self) -> str:
        """Return the account name associated with the provider.

        An empty string means the provider has no active account.
        """
        pass

    @abstractmethod
    def flags(self) -> ProviderFlags:
        """Return the hook point for extending command options."""
        pass

    @abstractmethod
    def list(self) -> VMList:
        """List the VMs currently hosted by the provider."""
        pass

    @abstractmethod
    def name(self) -> str:
        """Return the provider name, also used as its registry key."""
        pass


class ProviderRegistry:
    """Mapping of provider name to Provider instance.

    Providers register during start-up. The first lookup freezes the
    registry; registering afterwards raises RegistryError. Freezing and
    registering share a lock, so a lookup on another thread can never
    interleave with a registration.
    """

    def __init__(self):
        self._providers: Dict[str, Provider] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, provider: Provider) -> Provider:
        """Register a provider under its own name.

        Args:
            provider: Provider implementation instance

        Returns:
            The registered provider

        Raises:
            RegistryError: If the registry is frozen, the name is empty or
                already taken
        """
        name = provider.name()
        with self._lock:
            if self._frozen:
                raise RegistryError("cannot register providers after the registry is in use")
            if not name:
                raise RegistryError(f"provider {type(provider).__name__} reports an empty name")
            if name in self._providers:
                raise RegistryError(f"provider {name} is already registered")
            self._providers[name] = provider
        return provider

    def get(self, name: str) -> Provider:
        """Resolve a provider by name.

        Raises:
            UnknownProviderError: If no provider is registered under name
        """
        self._freeze()
        provider = self._providers.get(name)
        if provider is None:
            raise UnknownProviderError(name)
        return provider

    def names(self) -> List[str]:
        """Return the names of all registered providers, in no particular order."""
        self._freeze()
        return list(self._providers)

    def __contains__(self, name: str) -> bool:
        self._freeze()
        return name in self._providers

    def __iter__(self) -> Iterator[Provider]:
        self._freeze()
        return iter(list(self._providers.values()))

    def __len__(self) -> int:
        return len(self._providers)

    def _freeze(self):
        # Read-only once frozen, so later lookups skip the lock.
        if not self._frozen:
            with self._lock:
                self._frozen = True
