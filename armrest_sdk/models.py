"""
Data models for management API resources.

Models wrap the JSON returned by the API. Each keeps the raw payload and
exposes the fields the SDK works with; the resource group is parsed from the
resource id because the API does not return it as a field.
"""

import posixpath
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .exceptions import InvalidArgumentError, InvalidConfigurationError


@dataclass(frozen=True)
class ResourceId:
    """
    Parsed ARM resource id.

    Format: /subscriptions/{sub}/resourceGroups/{group}/providers/{namespace}/{type}/{name}
    Nested types (e.g. "virtualMachines/extensions") keep the full type path
    and the last name.
    """
    subscription_id: str
    resource_group: str
    provider: str
    resource_type: str
    name: str

    @classmethod
    def parse(cls, resource_id: str) -> 'ResourceId':
        if not resource_id:
            raise InvalidArgumentError("must specify a resource id", argument="resource_id")

        parts = [p for p in resource_id.strip().split('/') if p]
        lowered = [p.lower() for p in parts]

        try:
            sub_index = lowered.index('subscriptions')
            group_index = lowered.index('resourcegroups')
            provider_index = lowered.index('providers')
        except ValueError as e:
            raise InvalidArgumentError(
                f"Malformed resource id: {resource_id}",
                argument="resource_id"
            ) from e

        tail = parts[provider_index + 2:]
        if (
            sub_index + 1 >= len(parts)
            or group_index + 1 >= len(parts)
            or provider_index + 1 >= len(parts)
            or len(tail) < 2
            or len(tail) % 2
        ):
            raise InvalidArgumentError(
                f"Malformed resource id: {resource_id}",
                argument="resource_id"
            )

        return cls(
            subscription_id=parts[sub_index + 1],
            resource_group=parts[group_index + 1],
            provider=parts[provider_index + 1],
            resource_type='/'.join(tail[0::2]),
            name=tail[-1],
        )


def resource_group_from_id(resource_id: Optional[str]) -> Optional[str]:
    """Return the resource group segment of an id, or None if absent."""
    if not resource_id:
        return None
    parts = [p for p in resource_id.split('/') if p]
    for index, part in enumerate(parts[:-1]):
        if part.lower() == 'resourcegroups':
            return parts[index + 1]
    return None


class BaseModel:
    """
    Common wrapper for an API resource payload.

    Fields without a dedicated accessor stay reachable through ``raw`` and
    ``properties``.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.raw: Dict[str, Any] = dict(data or {})

    @property
    def id(self) -> Optional[str]:
        return self.raw.get('id')

    @property
    def name(self) -> Optional[str]:
        return self.raw.get('name')

    @property
    def type(self) -> Optional[str]:
        return self.raw.get('type')

    @property
    def location(self) -> Optional[str]:
        return self.raw.get('location')

    @property
    def tags(self) -> Dict[str, str]:
        return self.raw.get('tags') or {}

    @property
    def properties(self) -> Dict[str, Any]:
        return self.raw.get('properties') or {}

    @property
    def resource_group(self) -> Optional[str]:
        return resource_group_from_id(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseModel):
            return NotImplemented
        return type(self) is type(other) and self.raw == other.raw

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, resource_group={self.resource_group!r})"


class VirtualMachine(BaseModel):
    """Virtual machine model view."""

    @property
    def vm_size(self) -> Optional[str]:
        return (self.properties.get('hardwareProfile') or {}).get('vmSize')

    @property
    def provisioning_state(self) -> Optional[str]:
        return self.properties.get('provisioningState')

    @property
    def network_interface_ids(self) -> List[str]:
        profile = self.properties.get('networkProfile') or {}
        return [nic['id'] for nic in profile.get('networkInterfaces') or [] if nic.get('id')]

    @property
    def os_disk(self) -> Dict[str, Any]:
        return (self.properties.get('storageProfile') or {}).get('osDisk') or {}

    @property
    def os_disk_uri(self) -> Optional[str]:
        """VHD blob URI of an unmanaged OS disk, or None for managed disks."""
        return (self.os_disk.get('vhd') or {}).get('uri')


class VirtualMachineInstance(BaseModel):
    """Virtual machine instance view."""

    @property
    def statuses(self) -> List[Dict[str, Any]]:
        return self.raw.get('statuses') or []

    @property
    def power_state(self) -> Optional[str]:
        for status in self.statuses:
            code = status.get('code') or ''
            if code.startswith('PowerState/'):
                return code.split('/', 1)[1]
        return None


class VirtualMachineSize(BaseModel):
    """One entry of the VM sizes listing for a location."""

    @property
    def number_of_cores(self) -> Optional[int]:
        return self.raw.get('numberOfCores')

    @property
    def memory_in_mb(self) -> Optional[int]:
        return self.raw.get('memoryInMB')

    @property
    def max_data_disk_count(self) -> Optional[int]:
        return self.raw.get('maxDataDiskCount')

    @property
    def os_disk_size_in_mb(self) -> Optional[int]:
        return self.raw.get('osDiskSizeInMB')

    @property
    def resource_disk_size_in_mb(self) -> Optional[int]:
        return self.raw.get('resourceDiskSizeInMB')


class NetworkInterface(BaseModel):
    """Network interface card."""

    @property
    def ip_configurations(self) -> List[Dict[str, Any]]:
        return self.properties.get('ipConfigurations') or []

    @property
    def public_ip_address_ids(self) -> List[str]:
        """Ids of public IPs referenced by the IP configurations, in order."""
        ids = []
        for config in self.ip_configurations:
            public_ip = (config.get('properties') or {}).get('publicIPAddress') or {}
            if public_ip.get('id'):
                ids.append(public_ip['id'])
        return ids

    @property
    def network_security_group_id(self) -> Optional[str]:
        return (self.properties.get('networkSecurityGroup') or {}).get('id')

    @property
    def virtual_machine_id(self) -> Optional[str]:
        return (self.properties.get('virtualMachine') or {}).get('id')


class PublicIpAddress(BaseModel):
    """Public IP address."""

    @property
    def ip_address(self) -> Optional[str]:
        return self.properties.get('ipAddress')


class NetworkSecurityGroup(BaseModel):
    """Network security group."""

    @property
    def security_rules(self) -> List[Dict[str, Any]]:
        return self.properties.get('securityRules') or []


class StorageAccount(BaseModel):
    """Storage account."""

    @property
    def primary_endpoints(self) -> Dict[str, str]:
        return self.properties.get('primaryEndpoints') or {}

    @property
    def blob_endpoint(self) -> Optional[str]:
        return self.primary_endpoints.get('blob')


@dataclass
class Blob:
    """A blob inside a storage account container."""
    container: str
    name: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    @property
    def extension(self) -> str:
        """File extension including the dot, e.g. ".vhd"; empty if none."""
        return posixpath.splitext(self.name)[1]


@dataclass(frozen=True)
class OsDiskLocation:
    """Where an unmanaged OS disk lives, parsed from its VHD URI."""
    storage_account: str
    container: str
    blob_name: str

    @classmethod
    def from_uri(cls, uri: str) -> 'OsDiskLocation':
        """
        Parse e.g. https://foo123.blob.core.windows.net/vhds/something123.vhd
        into account 'foo123', container 'vhds', blob 'something123.vhd'.
        """
        if not uri:
            raise InvalidArgumentError("must specify the OS disk URI", argument="os_disk_uri")

        parsed = urlparse(uri)
        host = parsed.hostname or ''
        path = parsed.path or ''

        storage_account = host.split('.')[0]
        blob_name = posixpath.basename(path)
        container = posixpath.dirname(path).lstrip('/')

        if not storage_account or not blob_name or not container:
            raise InvalidArgumentError(
                f"Cannot parse OS disk URI: {uri}",
                argument="os_disk_uri"
            )

        return cls(storage_account=storage_account, container=container, blob_name=blob_name)


@dataclass
class DeletionOptions:
    """
    Which dependents of a VM ``delete_associated`` removes.

    IP addresses and network security groups can only be removed once the
    NIC that references them is gone, so they are reached through the NICs.
    """
    network_interfaces: bool = True
    ip_addresses: bool = True
    os_disk: bool = True
    network_security_groups: bool = False
    storage_account: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, bool):
                raise InvalidConfigurationError(
                    f"Deletion option '{f.name}' must be a boolean",
                    config_key=f.name,
                    config_value=value
                )

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]] = None) -> 'DeletionOptions':
        """Merge ``options`` over the defaults; unknown keys are rejected."""
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        for key in options:
            if key not in known:
                raise InvalidConfigurationError(
                    f"Unknown deletion option '{key}'",
                    config_key=key
                )
        return cls(**options)

    @property
    def touches_network(self) -> bool:
        return self.network_interfaces or self.ip_addresses or self.network_security_groups

    @property
    def touches_storage(self) -> bool:
        return self.os_disk or self.storage_account


class DeletionOutcome(str, Enum):
    """Result of one delete-and-wait step."""
    DELETED = "deleted"
    SKIPPED = "skipped"


@dataclass
class DeletionRecord:
    """One step of a delete_associated run."""
    resource_type: str
    name: str
    resource_group: Optional[str]
    outcome: DeletionOutcome
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class DeletionReport:
    """Ordered record of what a delete_associated run removed or skipped."""
    vm_name: str
    resource_group: str
    records: List[DeletionRecord] = field(default_factory=list)

    def add(self, record: DeletionRecord) -> None:
        self.records.append(record)

    @property
    def deleted(self) -> List[DeletionRecord]:
        return [r for r in self.records if r.outcome == DeletionOutcome.DELETED]

    @property
    def skipped(self) -> List[DeletionRecord]:
        return [r for r in self.records if r.outcome == DeletionOutcome.SKIPPED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vm_name': self.vm_name,
            'resource_group': self.resource_group,
            'records': [
                {
                    'resource_type': r.resource_type,
                    'name': r.name,
                    'resource_group': r.resource_group,
                    'outcome': r.outcome.value,
                    'message': r.message,
                }
                for r in self.records
            ],
        }
