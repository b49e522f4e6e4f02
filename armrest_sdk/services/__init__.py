"""
Resource services for the management API.
"""

from .base import ResourceGroupBasedService
from .network import IpAddressService, NetworkInterfaceService, NetworkSecurityGroupService
from .storage_account import StorageAccountService
from .virtual_machine import VirtualMachineService

__all__ = [
    "ResourceGroupBasedService",
    "VirtualMachineService",
    "NetworkInterfaceService",
    "IpAddressService",
    "NetworkSecurityGroupService",
    "StorageAccountService",
]
