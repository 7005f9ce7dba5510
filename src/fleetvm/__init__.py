"""Provider abstraction and dispatch for multi-provider VM clusters."""

from .dispatch import (
    ProviderContext,
    all_provider_names,
    current_cancel_event,
    fan_out,
    find_active_accounts,
    for_provider,
    providers_parallel,
    providers_sequential,
)
from .errors import (
    DispatchError,
    DispatchTimeoutError,
    FleetError,
    ProviderActionError,
    ProviderError,
    RegistryError,
    UnknownProviderError,
    ZoneParseError,
)
from .providers import CreateOpts, Provider, ProviderFlags, ProviderRegistry, SSDOpts
from .vm import LOCAL_ZONE, VM, VMList, vm_name

__version__ = "0.1.0"

__all__ = [
    "ProviderContext",
    "all_provider_names",
    "current_cancel_event",
    "fan_out",
    "find_active_accounts",
    "for_provider",
    "providers_parallel",
    "providers_sequential",
    "DispatchError",
    "DispatchTimeoutError",
    "FleetError",
    "ProviderActionError",
    "ProviderError",
    "RegistryError",
    "UnknownProviderError",
    "ZoneParseError",
    "CreateOpts",
    "Provider",
    "ProviderFlags",
    "ProviderRegistry",
    "SSDOpts",
    "LOCAL_ZONE",
    "VM",
    "VMList",
    "vm_name",
]
