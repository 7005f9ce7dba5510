"""Exception hierarchy for provider dispatch."""

from typing import Dict, List, Optional


class FleetError(Exception):
    """Base class for all fleetvm errors."""


class ProviderError(FleetError):
    """Raised by a backend when a lifecycle operation fails."""


class RegistryError(FleetError):
    """Raised on invalid provider registration."""


class UnknownProviderError(FleetError):
    """Raised when a provider name is not present in the registry."""

    def __init__(self, name: str):
        super().__init__(f"unknown vm provider: {name}")
        self.name = name


class ProviderActionError(FleetError):
    """Wraps an error raised by an action with the provider it ran against."""

    def __init__(self, provider: str, cause: BaseException):
        super().__init__(f"in provider: {provider}: {cause}")
        self.provider = provider
        self.cause = cause


class ZoneParseError(FleetError, ValueError):
    """Raised when a region cannot be derived from a zone string."""

    def __init__(self, zone: str):
        super().__init__(f"unable to parse region from zone {zone!r}")
        self.zone = zone


class DispatchError(FleetError):
    """One or more concurrent invocations failed.

    Attributes:
        errors: Failure per provider (or requested) name
        first: The first failure observed
    """

    def __init__(self, errors: Dict[str, BaseException], first: Optional[BaseException] = None):
        self.errors = dict(errors)
        self.first = first if first is not None else next(iter(self.errors.values()), None)
        details = "; ".join(f"{name}: {err}" for name, err in sorted(self.errors.items()))
        super().__init__(f"{len(self.errors)} provider invocation(s) failed: {details}")


class DispatchTimeoutError(FleetError):
    """Concurrent invocations did not finish before the deadline.

    Attributes:
        pending: Names whose invocations were still running
        errors: Failures observed before the deadline, by name
    """

    def __init__(
        self,
        pending: List[str],
        timeout: float,
        errors: Optional[Dict[str, BaseException]] = None,
    ):
        self.pending = sorted(pending)
        self.timeout = timeout
        self.errors = dict(errors or {})
        message = f"timed out after {timeout}s waiting for: {', '.join(self.pending)}"
        if self.errors:
            details = "; ".join(f"{name}: {err}" for name, err in sorted(self.errors.items()))
            message += f" ({len(self.errors)} failed before the deadline: {details})"
        super().__init__(message)
