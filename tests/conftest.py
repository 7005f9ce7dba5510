"""Pytest configuration and fixtures."""

import tempfile
import threading
from datetime import timedelta
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Type

import click
import pytest

from fleetvm.dispatch import ProviderContext
from fleetvm.providers.base import CreateOpts, Provider, ProviderFlags, ProviderRegistry
from fleetvm.vm import VMList


class FakeFlags(ProviderFlags):
    """Flags contributing one prefixed option per command kind."""

    def __init__(self, name: str):
        self.provider_name = name

    def create_options(self) -> List[click.Option]:
        return [click.Option([f"--{self.provider_name}-machine-type"], default="small")]

    def cluster_options(self) -> List[click.Option]:
        return [click.Option([f"--{self.provider_name}-project"], default="default")]


class FakeProvider(Provider):
    """In-memory provider recording every call it receives."""

    def __init__(self, name: str, account: str = "", fail_with: Optional[Exception] = None):
        self._name = name
        self.account = account
        self.fail_with = fail_with
        self.calls: List[tuple] = []
        self.account_lookups = 0
        self.vms = VMList()
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def clean_ssh(self):
        self._record("clean_ssh")

    def config_ssh(self):
        self._record("config_ssh")

    def create(self, names, opts: CreateOpts):
        self._record("create", list(names), opts)

    def delete(self, vms):
        self._record("delete", VMList(vms))

    def extend(self, vms, lifetime: timedelta):
        self._record("extend", VMList(vms), lifetime)

    def find_active_account(self) -> str:
        with self._lock:
            self.account_lookups += 1
        self._record("find_active_account")
        return self.account

    def flags(self) -> ProviderFlags:
        return FakeFlags(self._name)

    def list(self) -> VMList:
        self._record("list")
        return VMList(self.vms)

    def name(self) -> str:
        return self._name


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_context() -> Callable[..., ProviderContext]:
    """Return a factory building a context over fake providers."""

    def _make(*providers: Provider, timeout: Optional[float] = None) -> ProviderContext:
        registry = ProviderRegistry()
        for provider in providers:
            registry.register(provider)
        return ProviderContext(registry, timeout=timeout)

    return _make


@pytest.fixture
def fake_provider() -> Type[FakeProvider]:
    """The recording provider class, for building named fakes."""
    return FakeProvider


@pytest.fixture
def aws_gce() -> Dict[str, FakeProvider]:
    """Two fake providers named like real clouds."""
    return {
        "aws": FakeProvider("aws", account="aws-user"),
        "gce": FakeProvider("gce", account="gce-user"),
    }


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Isolate tests from actual environment variables."""
    config_keys = [
        "FLEETVM_PROVIDERS",
        "FLEETVM_DISPATCH_TIMEOUT",
        "FLEETVM_LOCAL_USER",
        "FLEETVM_DEFAULT_LIFETIME_HOURS",
    ]
    for key in config_keys:
        monkeypatch.delenv(key, raising=False)
