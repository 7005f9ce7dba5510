"""Tests for provider abstraction base classes and the registry."""

import threading
from datetime import timedelta

import pytest

from fleetvm.errors import RegistryError, UnknownProviderError
from fleetvm.providers.base import (
    CreateOpts,
    Provider,
    ProviderRegistry,
    SSDOpts,
)


@pytest.mark.unit
class TestCreateOpts:
    """Test CreateOpts dataclass."""

    def test_defaults(self):
        """Test default creation options."""
        opts = CreateOpts()

        assert opts.lifetime == timedelta(hours=12)
        assert opts.geo_distributed is False
        assert opts.vm_providers == []
        assert opts.ssd_opts == SSDOpts(use_local_ssd=False, no_ext4_barrier=False)

    def test_independent_defaults(self):
        """Mutable defaults are not shared between instances."""
        first = CreateOpts()
        second = CreateOpts()
        first.vm_providers.append("aws")
        first.ssd_opts.use_local_ssd = True

        assert second.vm_providers == []
        assert second.ssd_opts.use_local_ssd is False


@pytest.mark.unit
class TestProviderRegistry:
    """Test ProviderRegistry."""

    def test_register_provider(self, fake_provider):
        """Providers register under their own name."""
        registry = ProviderRegistry()
        provider = fake_provider("aws")

        assert registry.register(provider) is provider
        assert registry.get("aws") is provider
        assert "aws" in registry
        assert len(registry) == 1

    def test_names(self, fake_provider):
        """names() lists every registered provider."""
        registry = ProviderRegistry()
        registry.register(fake_provider("aws"))
        registry.register(fake_provider("gce"))

        assert sorted(registry.names()) == ["aws", "gce"]

    def test_unknown_provider(self):
        """Resolving an unregistered name raises UnknownProviderError."""
        registry = ProviderRegistry()

        with pytest.raises(UnknownProviderError, match="unknown vm provider: azure") as exc_info:
            registry.get("azure")

        assert exc_info.value.name == "azure"

    def test_duplicate_name_fails(self, fake_provider):
        registry = ProviderRegistry()
        registry.register(fake_provider("aws"))

        with pytest.raises(RegistryError, match="already registered"):
            registry.register(fake_provider("aws"))

    def test_empty_name_fails(self, fake_provider):
        registry = ProviderRegistry()

        with pytest.raises(RegistryError, match="empty name"):
            registry.register(fake_provider(""))

    @pytest.mark.parametrize(
        "first_use",
        [
            lambda r: r.names(),
            lambda r: "aws" in r,
            lambda r: list(r),
            lambda r: r.get("aws"),
        ],
    )
    def test_register_after_use_fails(self, first_use, fake_provider):
        """The first lookup freezes the registry."""
        registry = ProviderRegistry()
        registry.register(fake_provider("aws"))
        assert registry.frozen is False

        first_use(registry)

        assert registry.frozen is True
        with pytest.raises(RegistryError, match="after the registry is in use"):
            registry.register(fake_provider("gce"))

    def test_no_registration_lands_after_first_lookup(self, fake_provider):
        """Registrations racing the first lookup either precede it or fail."""
        registry = ProviderRegistry()
        start = threading.Barrier(9, timeout=5)
        rejected = []
        lock = threading.Lock()

        def register_many(prefix):
            start.wait()
            for i in range(50):
                try:
                    registry.register(fake_provider(f"{prefix}-{i}"))
                except RegistryError:
                    with lock:
                        rejected.append(f"{prefix}-{i}")

        threads = [threading.Thread(target=register_many, args=(f"p{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        start.wait()
        snapshot = sorted(registry.names())
        for thread in threads:
            thread.join()

        assert sorted(registry.names()) == snapshot
        assert len(snapshot) + len(rejected) == 8 * 50


@pytest.mark.unit
class TestProviderInterface:
    """Test Provider abstract interface."""

    def test_cannot_instantiate_abstract_class(self):
        """Test that Provider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            Provider()

    def test_abstract_methods_required(self):
        """Test that all abstract methods must be implemented."""

        class IncompleteProvider(Provider):
            def name(self):
                return "incomplete"

        with pytest.raises(TypeError):
            IncompleteProvider()
