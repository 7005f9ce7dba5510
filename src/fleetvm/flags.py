"""Merge provider-specific options into click commands."""

from typing import List

import click

from .errors import RegistryError
from .providers.base import ProviderRegistry

CREATE = "create"
CLUSTER = "cluster"


def create_command_options(registry: ProviderRegistry) -> List[click.Option]:
    """Collect every provider's options for the ``create`` command."""
    return _collect(registry, CREATE)


def cluster_command_options(registry: ProviderRegistry) -> List[click.Option]:
    """Collect every provider's options for cluster manipulation commands."""
    return _collect(registry, CLUSTER)


def add_provider_options(command: click.Command, registry: ProviderRegistry, kind: str) -> click.Command:
    """Append provider options of the given kind to a command.

    Args:
        command: Command to extend in place
        registry: Providers contributing options
        kind: CREATE or CLUSTER

    Returns:
        The same command

    Raises:
        RegistryError: If an option name is already used by the command
    """
    existing = {opt for param in command.params for opt in param.opts}
    for option in _collect(registry, kind):
        clash = existing.intersection(option.opts)
        if clash:
            raise RegistryError(f"option {', '.join(sorted(clash))} is already defined")
        existing.update(option.opts)
        command.params.append(option)
    return command


def _collect(registry: ProviderRegistry, kind: str) -> List[click.Option]:
    if kind not in (CREATE, CLUSTER):
        raise ValueError(f"unknown option kind: {kind}")

    options: List[click.Option] = []
    seen = set()
    for name in sorted(registry.names()):
        flags = registry.get(name).flags()
        provided = flags.create_options() if kind == CREATE else flags.cluster_options()
        for option in provided:
            clash = seen.intersection(option.opts)
            if clash:
                raise RegistryError(
                    f"provider {name} redefines option {', '.join(sorted(clash))}"
                )
            seen.update(option.opts)
            options.append(option)
    return options
