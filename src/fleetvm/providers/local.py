"""Local host provider implementation.

Nodes of a local cluster all run on this machine, so there is no cloud API to
call: the provider keeps its VMs in memory.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List

import click

from ..errors import ProviderError
from ..vm import LOCAL_ZONE, VM, VMList
from .base import CreateOpts, Provider, ProviderFlags

logger = logging.getLogger(__name__)

PROVIDER_NAME = "local"
LOCAL_ADDRESS = "127.0.0.1"


class LocalProviderFlags(ProviderFlags):
    """Options contributed by the local provider."""

    def __init__(self, provider: "LocalProvider"):
        self.provider = provider

    def create_options(self) -> List[click.Option]:
        return [
            click.Option(
                ["--local-base-port"],
                type=int,
                default=self.provider.base_port,
                show_default=True,
                help="First port assigned to local nodes.",
            )
        ]

    def cluster_options(self) -> List[click.Option]:
        return [
            click.Option(
                ["--local-user"],
                default=self.provider.user,
                show_default=True,
                help="Login user for local nodes.",
            )
        ]


class LocalProvider(Provider):
    """Provider for clusters running on the local host."""

    def __init__(self, user: str, base_port: int = 26257):
        self.user = user
        self.base_port = base_port
        self._vms: Dict[str, VM] = {}
        self._lock = threading.Lock()

    def clean_ssh(self) -> None:
        logger.debug("local: nothing to clean for SSH")

    def config_ssh(self) -> None:
        logger.debug("local: nothing to configure for SSH")

    def create(self, names: List[str], opts: CreateOpts) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            duplicates = [name for name in names if name in self._vms]
            if duplicates:
                raise ProviderError(f"local VMs already exist: {', '.join(duplicates)}")
            for name in names:
                self._vms[name] = VM(
                    name=name,
                    created_at=now,
                    lifetime=opts.lifetime,
                    dns="localhost",
                    provider=PROVIDER_NAME,
                    provider_id=name,
                    private_ip=LOCAL_ADDRESS,
                    public_ip=LOCAL_ADDRESS,
                    remote_user=self.user,
                    vpc=PROVIDER_NAME,
                    machine_type=PROVIDER_NAME,
                    zone=LOCAL_ZONE,
                )
        logger.info("local: created %d VM(s)", len(names))

    def delete(self, vms: VMList) -> None:
        with self._lock:
            missing = [vm.name for vm in vms if vm.name not in self._vms]
            if missing:
                raise ProviderError(f"local VMs not found: {', '.join(missing)}")
            for vm in vms:
                del self._vms[vm.name]
        logger.info("local: deleted %d VM(s)", len(vms))

    def extend(self, vms: VMList, lifetime: timedelta) -> None:
        with self._lock:
            missing = [vm.name for vm in vms if vm.name not in self._vms]
            if missing:
                raise ProviderError(f"local VMs not found: {', '.join(missing)}")
            for vm in vms:
                self._vms[vm.name].lifetime += lifetime

    def find_active_account(self) -> str:
        return self.user

    def flags(self) -> ProviderFlags:
        return LocalProviderFlags(self)

    def list(self) -> VMList:
        with self._lock:
            vms = VMList(replace(vm, errors=list(vm.errors)) for vm in self._vms.values())
        vms.sort()
        return vms

    def name(self) -> str:
        return PROVIDER_NAME
