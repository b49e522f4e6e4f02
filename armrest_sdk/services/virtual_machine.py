"""
Virtual machine service.

Lifecycle actions (start, stop, restart, deallocate, generalize, capture)
are asynchronous: they return as soon as the request is accepted. The
``delete_associated`` helper removes a VM together with the resources that
only existed to serve it.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Union

from ..exceptions import InvalidArgumentError
from ..models import (
    DeletionOptions,
    DeletionReport,
    VirtualMachine,
    VirtualMachineInstance,
    VirtualMachineSize,
)
from .base import ResourceGroupBasedService


class VirtualMachineService(ResourceGroupBasedService):
    """
    Manages virtual machines. Most methods return one or more
    VirtualMachine instances.
    """

    provider = 'Microsoft.Compute'
    service_name = 'virtualMachines'
    model_class = VirtualMachine
    resource_label = 'VirtualMachine'

    def series(self, location: str) -> List[VirtualMachineSize]:
        """
        Return the VM series (aka sizes, flavors) available in ``location``,
        such as "Basic_A1".
        """
        namespace = 'microsoft.compute'
        version = self.config.provider_default_api_version(namespace, 'locations/vmsizes')
        if not version:
            raise InvalidArgumentError(
                f"Unable to find resources for {namespace}",
                argument="location"
            )
        if not location:
            raise InvalidArgumentError("must specify location", argument="location")

        url = self.client.url(
            'subscriptions', self.config.subscription_id,
            'providers', self.provider, 'locations', location, 'vmSizes'
        )
        payload = self.client.get(url, params={'api-version': version})
        return [VirtualMachineSize(item) for item in payload.get('value') or []]

    sizes = series

    def get(self, name: str, group: Optional[str] = None,
            model_view: bool = True) -> Union[VirtualMachine, VirtualMachineInstance]:
        """
        Retrieve VM ``name`` in ``group``. With ``model_view`` False the
        instance view is returned instead of the model view.
        """
        if not model_view:
            return self.get_instance_view(name, group)
        return super().get(name, group)

    def get_model_view(self, name: str, group: Optional[str] = None) -> VirtualMachine:
        return self.get(name, group, True)

    def get_instance_view(self, name: str, group: Optional[str] = None) -> VirtualMachineInstance:
        group = self._resolve_group(group)
        name = self._require_name(name)
        url = self.build_url(group, name, 'instanceView')
        return VirtualMachineInstance(self.client.get(url, params=self._params()))

    def capture(self, name: str, options: Dict[str, Any], group: Optional[str] = None) -> None:
        """
        Capture VM ``name`` and its disks into a reusable template.

        Supported option keys: vhdPrefix, destinationContainerName,
        overwriteVhds (default False).
        """
        body = {'overwriteVhds': False, **(options or {})}
        self._vm_operate('capture', name, group, body)

    def deallocate(self, name: str, group: Optional[str] = None) -> None:
        """Stop the VM and release its compute resources."""
        self._vm_operate('deallocate', name, group)

    def generalize(self, name: str, group: Optional[str] = None) -> None:
        """Mark the VM's OS state as Generalized."""
        self._vm_operate('generalize', name, group)

    def restart(self, name: str, group: Optional[str] = None) -> None:
        self._vm_operate('restart', name, group)

    def start(self, name: str, group: Optional[str] = None) -> None:
        self._vm_operate('start', name, group)

    def stop(self, name: str, group: Optional[str] = None) -> None:
        """Power off the VM. The platform forces shutdown after 15 minutes."""
        self._vm_operate('powerOff', name, group)

    def _vm_operate(self, action: str, name: str, group: Optional[str],
                    body: Optional[Dict[str, Any]] = None) -> None:
        if not (group or self.config.resource_group):
            raise InvalidArgumentError("must specify resource group", argument="resource_group")
        if not name:
            raise InvalidArgumentError("must specify name of the vm", argument="name")
        self._post_action(name, group, action, body)

    def delete_associated(
        self,
        vm_name: str,
        vm_group: str,
        options: Union[DeletionOptions, Dict[str, Any], None] = None,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None
    ) -> DeletionReport:
        """
        Delete the VM and its associated resources.

        By default this deletes the VM, its NICs, their public IP addresses
        and the VM's image files (.vhd and .status). Network security groups
        and the whole storage account are only deleted when requested.

        A resource that cannot be deleted because something else still uses
        it is skipped. See DependentResourceDeleter for details.
        """
        from ..deletion import DependentResourceDeleter

        deleter = DependentResourceDeleter(self, logger=logger)
        return deleter.delete_associated(vm_name, vm_group, options, cancel_event=cancel_event)
