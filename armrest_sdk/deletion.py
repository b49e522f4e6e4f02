"""
Deletion of a virtual machine and its dependent resources.

Order matters: the VM goes first, then each NIC, then the public IPs and
network security group the NIC referenced (they cannot be deleted while a
NIC still uses them), and finally the OS disk blobs or the whole storage
account. Every deletion waits for its asynchronous operation to finish
before the next one starts.

A delete rejected as "bad request" or "precondition failed" means the
resource is still attached to something else. That resource is skipped and
the workflow carries on. Any other error aborts the remaining steps.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Optional, Union

from .exceptions import ApiError, InvalidArgumentError, NotFoundError
from .logging import get_logger
from .models import (
    Blob,
    DeletionOptions,
    DeletionOutcome,
    DeletionRecord,
    DeletionReport,
    OsDiskLocation,
    StorageAccount,
    VirtualMachine,
)
from .poller import AsyncOperationPoller
from .services.base import ResourceGroupBasedService
from .services.network import (
    IpAddressService,
    NetworkInterfaceService,
    NetworkSecurityGroupService,
)
from .services.storage_account import StorageAccountService
from .storage import BlobStore

BLOB_EXTENSIONS = ('.vhd', '.status')

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class DependentResourceDeleter:
    """
    Deletes a VM and, depending on DeletionOptions, its NICs, public IPs,
    network security groups, OS disk blobs or storage account.

    Args:
        vm_service: VirtualMachineService used to fetch and delete the VM
        nic_service, ip_service, nsg_service, storage_service: Services for
            the dependents; built from the VM service's client when omitted
        poller: Waits on each asynchronous delete
        logger: Receives the progress and warning messages of verbose runs
        nic_workers: Number of NICs processed concurrently. Each NIC still
            goes before its own IPs and NSG, and all NIC work finishes
            before storage cleanup starts.
    """

    def __init__(
        self,
        vm_service: ResourceGroupBasedService,
        nic_service: Optional[NetworkInterfaceService] = None,
        ip_service: Optional[IpAddressService] = None,
        nsg_service: Optional[NetworkSecurityGroupService] = None,
        storage_service: Optional[StorageAccountService] = None,
        poller: Optional[AsyncOperationPoller] = None,
        logger: Optional[LoggerLike] = None,
        nic_workers: int = 1
    ) -> None:
        client = vm_service.client
        self.vm_service = vm_service
        self.nic_service = nic_service or NetworkInterfaceService(client)
        self.ip_service = ip_service or IpAddressService(client)
        self.nsg_service = nsg_service or NetworkSecurityGroupService(client)
        self.storage_service = storage_service or StorageAccountService(client)
        self.poller = poller or AsyncOperationPoller(client)
        self.logger = logger or get_logger(__name__)

        if nic_workers < 1:
            raise InvalidArgumentError("nic_workers must be at least 1", argument="nic_workers")
        self.nic_workers = nic_workers
        self._report_lock = threading.Lock()

    def delete_associated(
        self,
        vm_name: str,
        resource_group: str,
        options: Union[DeletionOptions, Dict[str, Any], None] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> DeletionReport:
        """
        Delete VM ``vm_name`` in ``resource_group`` and its dependents.

        Returns:
            DeletionReport listing each deleted or skipped resource in order

        Raises:
            InvalidArgumentError: If the VM name or group is missing
            InvalidConfigurationError: If ``options`` has an unknown key
            NotFoundError: If the VM (or its storage account) does not exist
            ApiError, TransportError, PollTimeoutError, OperationFailedError,
            OperationCancelledError: Abort the remaining steps
        """
        if not isinstance(options, DeletionOptions):
            options = DeletionOptions.from_dict(options)

        if not vm_name:
            raise InvalidArgumentError("must specify name of the vm", argument="vm_name")
        if not resource_group:
            raise InvalidArgumentError("must specify resource group", argument="resource_group")

        vm = self.vm_service.get(vm_name, resource_group)
        report = DeletionReport(vm_name=vm_name, resource_group=resource_group)

        self._delete_and_wait(self.vm_service, vm_name, resource_group, options, report, cancel_event)

        # NICs must go first if IPs or NSGs are to be deleted
        if options.touches_network:
            self._delete_associated_nics(vm, options, report, cancel_event)

        if options.touches_storage:
            self._delete_associated_disk(vm, options, report, cancel_event)

        return report

    # ==================== Network ====================

    def _delete_associated_nics(
        self,
        vm: VirtualMachine,
        options: DeletionOptions,
        report: DeletionReport,
        cancel_event: Optional[threading.Event]
    ) -> None:
        nic_ids = vm.network_interface_ids

        if self.nic_workers == 1 or len(nic_ids) < 2:
            for nic_id in nic_ids:
                self._delete_nic(nic_id, options, report, cancel_event)
            return

        # Set by the first failing NIC so queued NICs are not started
        abort = threading.Event()

        def delete_nic(nic_id: str) -> None:
            if abort.is_set():
                return
            try:
                self._delete_nic(nic_id, options, report, cancel_event)
            except BaseException:
                abort.set()
                raise

        executor = ThreadPoolExecutor(max_workers=self.nic_workers)
        try:
            futures = [executor.submit(delete_nic, nic_id) for nic_id in nic_ids]
            for future in as_completed(futures):
                future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _delete_nic(
        self,
        nic_id: str,
        options: DeletionOptions,
        report: DeletionReport,
        cancel_event: Optional[threading.Event]
    ) -> None:
        """Delete one NIC, then the public IPs and NSG it referenced."""
        nic = self.nic_service.get_by_id(nic_id)
        self._delete_and_wait(self.nic_service, nic.name, nic.resource_group, options, report, cancel_event)

        if options.ip_addresses:
            for ip_id in nic.public_ip_address_ids:
                ip = self.ip_service.get_by_id(ip_id)
                self._delete_and_wait(self.ip_service, ip.name, ip.resource_group, options, report, cancel_event)

        if options.network_security_groups and nic.network_security_group_id:
            nsg = self.nsg_service.get_by_id(nic.network_security_group_id)
            self._delete_and_wait(self.nsg_service, nsg.name, nsg.resource_group, options, report, cancel_event)

    # ==================== Storage ====================

    def _delete_associated_disk(
        self,
        vm: VirtualMachine,
        options: DeletionOptions,
        report: DeletionReport,
        cancel_event: Optional[threading.Event]
    ) -> None:
        """
        Delete the OS disk blob and the VM's .status files, or the whole
        storage account when requested. Copies of the disk are not touched.
        """
        uri = vm.os_disk_uri
        if not uri:
            if options.verbose:
                self.logger.info(f"VirtualMachine {vm.name} has no VHD-backed OS disk, skipping disk cleanup")
            return

        location = OsDiskLocation.from_uri(uri)
        account = self.find_storage_account(location.storage_account)

        # Deleting the account removes its blobs too
        if options.storage_account:
            self._delete_and_wait(
                self.storage_service, account.name, account.resource_group, options, report, cancel_event
            )
            return

        keys = self.storage_service.list_account_keys(account.name, account.resource_group)
        key = keys.get('key1') or keys.get('key2')

        with self.storage_service.blob_store(account, key) as store:
            for blob in store.list_blobs(location.container):
                if self._should_delete_blob(blob, vm.name, location.blob_name):
                    self._delete_blob(store, account, blob, options, report)

    @staticmethod
    def _should_delete_blob(blob: Blob, vm_name: str, disk_name: str) -> bool:
        """
        The OS disk itself, plus any .status file whose name starts with the
        VM name. A .status file named after the disk but not the VM is kept.
        """
        extension = blob.extension
        if extension not in BLOB_EXTENSIONS:
            return False
        if extension == '.vhd':
            return blob.name == disk_name
        return bool(vm_name) and blob.name.startswith(vm_name)

    def find_storage_account(self, name: str) -> StorageAccount:
        """
        Find storage account ``name`` by scanning every account in the
        subscription; its resource group is not part of the disk URI.
        """
        for account in self.storage_service.list_all():
            if account.name == name:
                return account
        raise NotFoundError(
            f"Storage account {name} not found",
            resource_type="StorageAccount",
            resource_name=name
        )

    def _delete_blob(
        self,
        store: BlobStore,
        account: StorageAccount,
        blob: Blob,
        options: DeletionOptions,
        report: DeletionReport
    ) -> None:
        if options.verbose:
            self.logger.info(f"Deleting blob {blob.container}/{blob.name}")

        store.delete_blob(blob.container, blob.name)

        self._record(report, DeletionRecord(
            resource_type='Blob',
            name=f"{blob.container}/{blob.name}",
            resource_group=account.resource_group,
            outcome=DeletionOutcome.DELETED
        ))

    # ==================== Delete and wait ====================

    def _delete_and_wait(
        self,
        service: ResourceGroupBasedService,
        name: str,
        group: str,
        options: DeletionOptions,
        report: DeletionReport,
        cancel_event: Optional[threading.Event]
    ) -> DeletionOutcome:
        """
        Delete ``name`` in ``group`` with ``service`` and wait for the
        operation to complete. Attachment conflicts reported by the delete or by
        the status poll are recorded as skipped.
        """
        resource_type = service.resource_label

        if options.verbose:
            self.logger.info(f"Deleting {resource_type} {name}/{group}")

        try:
            headers = service.delete(name, group)
            self.poller.wait_for_completion(headers, cancel_event=cancel_event)
        except ApiError as err:
            if not err.is_attachment_conflict:
                raise
            if options.verbose:
                self.logger.warning(
                    f"Unable to delete {resource_type} {name}/{group}, skipping. Message: {err.message}"
                )
            self._record(report, DeletionRecord(
                resource_type=resource_type,
                name=name,
                resource_group=group,
                outcome=DeletionOutcome.SKIPPED,
                message=err.message
            ))
            return DeletionOutcome.SKIPPED

        if options.verbose:
            self.logger.info(f"Deleted {resource_type} {name}/{group}")

        self._record(report, DeletionRecord(
            resource_type=resource_type,
            name=name,
            resource_group=group,
            outcome=DeletionOutcome.DELETED
        ))
        return DeletionOutcome.DELETED

    def _record(self, report: DeletionReport, record: DeletionRecord) -> None:
        with self._report_lock:
            report.add(record)
