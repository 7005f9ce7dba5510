"""VM entity and collection shared by every provider."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from operator import attrgetter
from typing import Any, Dict, List, Optional

from .errors import FleetError, ZoneParseError

# Zone value used by VMs that live on the local host.
LOCAL_ZONE = "local"

# Keys of the flat record produced by VM.to_dict(), in order.
RECORD_FIELDS = (
    "name",
    "created_at",
    "errors",
    "lifetime",
    "dns",
    "provider",
    "provider_id",
    "private_ip",
    "public_ip",
    "remote_user",
    "vpc",
    "machine_type",
    "zone",
)

_REGION_RE = re.compile(r"(.*[^-])-?[a-z]$")
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class VMDataError(FleetError):
    """Marks a VM record as partial or otherwise unreliable.

    Instances are attached to ``VM.errors`` for callers to inspect; they are
    never raised.
    """

    def __eq__(self, other):
        if not isinstance(other, VMDataError):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self):
        return hash(str(self))


ERR_BAD_NETWORK = VMDataError("could not determine network information")
ERR_INVALID_NAME = VMDataError("invalid VM name")
ERR_NO_EXPIRATION = VMDataError("could not determine expiration")

_KNOWN_MARKERS = {
    str(marker): marker for marker in (ERR_BAD_NETWORK, ERR_INVALID_NAME, ERR_NO_EXPIRATION)
}


def vm_name(cluster: str, idx: int) -> str:
    """Generate the name for the idx'th node in a cluster."""
    return f"{cluster}-{idx:04d}"


@dataclass
class VM:
    """A specific machine instance hosted by one of the providers."""

    name: str
    created_at: Optional[datetime] = None
    # Non-empty when some or all of the data is missing or invalid.
    errors: List[VMDataError] = field(default_factory=list)
    lifetime: timedelta = field(default_factory=timedelta)
    dns: str = ""
    provider: str = ""
    # May or may not equal name, depending on whether the provider assigns ids.
    provider_id: str = ""
    private_ip: str = ""
    public_ip: str = ""
    remote_user: str = ""
    # VMs sharing a VPC can reach one another via private IP.
    vpc: str = ""
    machine_type: str = ""
    zone: str = ""

    def is_local(self) -> bool:
        """Return True if the VM represents the local host."""
        return self.zone == LOCAL_ZONE

    def region(self) -> str:
        """Derive the region from the zone.

        Raises:
            ZoneParseError: If a non-local zone has no region prefix
        """
        if self.is_local():
            return self.zone
        match = _REGION_RE.fullmatch(self.zone)
        if not match:
            raise ZoneParseError(self.zone)
        return match.group(1)

    def locality(self) -> str:
        """Return the cloud, region and zone of the VM.

        The cloud is included since providers use similarly named regions
        (e.g. us-east-1).
        """
        return f"cloud={self.provider},region={self.region()},zone={self.zone}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the flat record shape used for persisted cluster state."""
        created_at = None
        if self.created_at is not None:
            created_at = _format_timestamp(self.created_at)
        return {
            "name": self.name,
            "created_at": created_at,
            "errors": [str(err) for err in self.errors],
            "lifetime": self.lifetime // timedelta(microseconds=1) * 1000,
            "dns": self.dns,
            "provider": self.provider,
            "provider_id": self.provider_id,
            "private_ip": self.private_ip,
            "public_ip": self.public_ip,
            "remote_user": self.remote_user,
            "vpc": self.vpc,
            "machine_type": self.machine_type,
            "zone": self.zone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VM":
        """Build a VM from a record produced by to_dict()."""
        created_at = data.get("created_at")
        if isinstance(created_at, str) and created_at:
            created_at = _parse_timestamp(created_at)
        else:
            created_at = None

        errors = []
        for message in data.get("errors") or []:
            message = str(message)
            errors.append(_KNOWN_MARKERS.get(message) or VMDataError(message))

        return cls(
            name=data.get("name", ""),
            created_at=created_at,
            errors=errors,
            lifetime=timedelta(microseconds=int(data.get("lifetime") or 0) // 1000),
            dns=data.get("dns", ""),
            provider=data.get("provider", ""),
            provider_id=data.get("provider_id", ""),
            private_ip=data.get("private_ip", ""),
            public_ip=data.get("public_ip", ""),
            remote_user=data.get("remote_user", ""),
            vpc=data.get("vpc", ""),
            machine_type=data.get("machine_type", ""),
            zone=data.get("zone", ""),
        )


def _format_timestamp(value: datetime) -> str:
    # Naive timestamps are taken to be UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    # Accept RFC 3339 with a trailing Z and nanosecond fractions.
    value = _FRACTION_RE.sub(r"\1", value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class VMList(list):
    """Ordered collection of VMs."""

    def sort(self, *, key=None, reverse=False):
        """Sort in place, by name unless another key is given."""
        super().sort(key=key or attrgetter("name"), reverse=reverse)

    def names(self) -> List[str]:
        """Extract every VM.name, in order."""
        return [vm.name for vm in self]

    def provider_ids(self) -> List[str]:
        """Extract every VM.provider_id, in order."""
        return [vm.provider_id for vm in self]

    def by_provider(self) -> Dict[str, "VMList"]:
        """Group the VMs by provider name.

        Each group keeps the relative order of the VMs in this list, and the
        groups appear in order of first occurrence.
        """
        groups: Dict[str, VMList] = {}
        for vm in self:
            groups.setdefault(vm.provider, VMList()).append(vm)
        return groups
