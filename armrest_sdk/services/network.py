"""
Network resource services: NICs, public IPs and network security groups.
"""

from ..models import NetworkInterface, NetworkSecurityGroup, PublicIpAddress
from .base import ResourceGroupBasedService


class NetworkInterfaceService(ResourceGroupBasedService):
    provider = 'Microsoft.Network'
    service_name = 'networkInterfaces'
    model_class = NetworkInterface
    resource_label = 'NetworkInterface'


class IpAddressService(ResourceGroupBasedService):
    provider = 'Microsoft.Network'
    service_name = 'publicIPAddresses'
    model_class = PublicIpAddress
    resource_label = 'IpAddress'


class NetworkSecurityGroupService(ResourceGroupBasedService):
    provider = 'Microsoft.Network'
    service_name = 'networkSecurityGroups'
    model_class = NetworkSecurityGroup
    resource_label = 'NetworkSecurityGroup'
