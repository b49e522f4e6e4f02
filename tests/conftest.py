"""
Pytest configuration and shared fixtures for ARM REST SDK tests.

This module provides common test fixtures: a test-safe configuration, a
factory for canned HTTP responses, sample resource payloads, and a set of
mocked services that record the order of delete calls.
"""

import json
import pytest
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock, Mock

import requests
from requests.structures import CaseInsensitiveDict

from armrest_sdk.config import ArmrestConfig, PollingConfig
from armrest_sdk.deletion import DependentResourceDeleter
from armrest_sdk.models import (
    NetworkInterface,
    NetworkSecurityGroup,
    PublicIpAddress,
    StorageAccount,
    VirtualMachine,
)


SUBSCRIPTION = "sub-123"
RG = "rg1"


def resource_id(provider: str, resource_type: str, name: str, group: str = RG) -> str:
    return (
        f"/subscriptions/{SUBSCRIPTION}/resourceGroups/{group}"
        f"/providers/{provider}/{resource_type}/{name}"
    )


VM_ID = resource_id("Microsoft.Compute", "virtualMachines", "vm1")
NIC_ID = resource_id("Microsoft.Network", "networkInterfaces", "nic1")
NIC2_ID = resource_id("Microsoft.Network", "networkInterfaces", "nic2")
IP_ID = resource_id("Microsoft.Network", "publicIPAddresses", "ip1")
NSG_ID = resource_id("Microsoft.Network", "networkSecurityGroups", "nsg1")
STORAGE_ID = resource_id("Microsoft.Storage", "storageAccounts", "acct123", group="storage-rg")
OS_DISK_URI = "https://acct123.blob.core.windows.net/vhds/disk123.vhd"


@pytest.fixture
def resource_ids() -> Dict[str, str]:
    """Ids of the sample resources, keyed by short name."""
    return {
        "vm": VM_ID,
        "nic": NIC_ID,
        "nic2": NIC2_ID,
        "ip": IP_ID,
        "nsg": NSG_ID,
        "storage": STORAGE_ID,
        "os_disk_uri": OS_DISK_URI,
    }


@pytest.fixture
def mock_config() -> ArmrestConfig:
    """
    Provide a configuration with test-safe values.

    Polling never sleeps and gives up quickly.
    """
    return ArmrestConfig(
        subscription_id=SUBSCRIPTION,
        resource_group=RG,
        token="test-token",
        polling=PollingConfig(
            initial_interval=0.0,
            max_interval=0.0,
            backoff_factor=1.0,
            timeout=60.0,
            max_attempts=5
        )
    )


@pytest.fixture
def make_response():
    """
    Factory for real ``requests.Response`` objects with canned content.

    Usage: make_response(200, json_body={...}, headers={...})
    """
    def _make(
        status: int = 200,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        url: str = "https://management.azure.com/test",
        method: str = "GET",
        text: Optional[str] = None
    ) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        if json_body is not None:
            response._content = json.dumps(json_body).encode("utf-8")
        elif text is not None:
            response._content = text.encode("utf-8")
        else:
            response._content = b""
        response.headers = CaseInsensitiveDict(headers or {})
        response.url = url
        response.request = requests.Request(method, url).prepare()
        return response

    return _make


@pytest.fixture
def vm_payload() -> Dict[str, Any]:
    """VM with one NIC and an unmanaged OS disk."""
    return {
        "id": VM_ID,
        "name": "vm1",
        "type": "Microsoft.Compute/virtualMachines",
        "location": "eastus",
        "properties": {
            "hardwareProfile": {"vmSize": "Standard_A1"},
            "provisioningState": "Succeeded",
            "networkProfile": {"networkInterfaces": [{"id": NIC_ID}]},
            "storageProfile": {
                "osDisk": {"name": "disk123", "vhd": {"uri": OS_DISK_URI}}
            },
        },
    }


@pytest.fixture
def nic_payload() -> Dict[str, Any]:
    return {
        "id": NIC_ID,
        "name": "nic1",
        "properties": {
            "ipConfigurations": [
                {"name": "ipconfig1", "properties": {"publicIPAddress": {"id": IP_ID}}}
            ],
            "networkSecurityGroup": {"id": NSG_ID},
            "virtualMachine": {"id": VM_ID},
        },
    }


@pytest.fixture
def storage_payload() -> Dict[str, Any]:
    return {
        "id": STORAGE_ID,
        "name": "acct123",
        "properties": {"primaryEndpoints": {"blob": "https://acct123.blob.core.windows.net/"}},
    }


def _service(label: str, calls: List[Tuple[str, str, str]]) -> Mock:
    service = Mock()
    service.resource_label = label

    def _delete(name, group=None):
        calls.append((label, name, group))
        return CaseInsensitiveDict({"Azure-AsyncOperation": f"https://op/{label}/{name}"})

    service.delete.side_effect = _delete
    return service


@pytest.fixture
def delete_calls() -> List[Tuple[str, str, str]]:
    """Shared, ordered log of (resource_label, name, group) delete calls."""
    return []


@pytest.fixture
def mock_services(delete_calls, vm_payload, nic_payload, storage_payload) -> Dict[str, Mock]:
    """
    Mocked VM, NIC, IP, NSG and storage services plus a poller.

    Deletes are recorded in ``delete_calls``; blob deletes go through the
    ``blob_store`` mock and are recorded as ("Blob", "container/name", account).
    """
    vm_service = _service("VirtualMachine", delete_calls)
    vm_service.get.return_value = VirtualMachine(vm_payload)

    nic_service = _service("NetworkInterface", delete_calls)
    nic_service.get_by_id.side_effect = lambda rid: NetworkInterface(
        {**nic_payload, "id": rid, "name": rid.rsplit("/", 1)[-1]}
    )

    ip_service = _service("IpAddress", delete_calls)
    ip_service.get_by_id.side_effect = lambda rid: PublicIpAddress(
        {"id": rid, "name": rid.rsplit("/", 1)[-1]}
    )

    nsg_service = _service("NetworkSecurityGroup", delete_calls)
    nsg_service.get_by_id.side_effect = lambda rid: NetworkSecurityGroup(
        {"id": rid, "name": rid.rsplit("/", 1)[-1]}
    )

    storage_service = _service("StorageAccount", delete_calls)
    storage_service.list_all.return_value = [
        StorageAccount({"id": resource_id("Microsoft.Storage", "storageAccounts", "other", "x"), "name": "other"}),
        StorageAccount(storage_payload),
    ]
    storage_service.list_account_keys.return_value = {"key1": "k1", "key2": "k2"}
    blob_store = MagicMock()
    blob_store.__enter__.return_value = blob_store
    blob_store.list_blobs.return_value = []
    blob_store.delete_blob.side_effect = (
        lambda container, name: delete_calls.append(("Blob", f"{container}/{name}", "acct123"))
    )
    storage_service.blob_store.return_value = blob_store

    poller = Mock()
    poller.wait_for_completion.return_value = "Succeeded"

    return {
        "vm": vm_service,
        "nic": nic_service,
        "ip": ip_service,
        "nsg": nsg_service,
        "storage": storage_service,
        "blob_store": blob_store,
        "poller": poller,
    }


@pytest.fixture
def deleter(mock_services):
    """DependentResourceDeleter wired to the mocked services."""
    return DependentResourceDeleter(
        mock_services["vm"],
        nic_service=mock_services["nic"],
        ip_service=mock_services["ip"],
        nsg_service=mock_services["nsg"],
        storage_service=mock_services["storage"],
        poller=mock_services["poller"],
        logger=Mock()
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
