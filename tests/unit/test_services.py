"""
Unit tests for the resource services: URL construction, api-version
selection, model wrapping and lifecycle actions.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from armrest_sdk.exceptions import InvalidArgumentError
from armrest_sdk.models import (
    DeletionReport,
    NetworkInterface,
    StorageAccount,
    VirtualMachine,
    VirtualMachineInstance,
)
from armrest_sdk.rest import ArmRestClient
from armrest_sdk.services import (
    IpAddressService,
    NetworkInterfaceService,
    NetworkSecurityGroupService,
    StorageAccountService,
    VirtualMachineService,
)


BASE = "https://management.azure.com/subscriptions/sub-123"
VM_URL = f"{BASE}/resourceGroups/rg1/providers/Microsoft.Compute/virtualMachines"


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(mock_config, session):
    return ArmRestClient(mock_config, session=session)


@pytest.fixture
def vms(client):
    return VirtualMachineService(client)


def sent(session, index=-1):
    """(method, url, params, json) of a recorded request."""
    call = session.request.call_args_list[index]
    return call[0][0], call[0][1], call[1]["params"], call[1]["json"]


class TestResourceGroupBasedService:

    def test_get(self, vms, session, make_response, vm_payload):
        session.request.return_value = make_response(200, vm_payload)

        vm = vms.get("vm1", "rg1")

        assert isinstance(vm, VirtualMachine)
        assert vm.name == "vm1"
        assert sent(session) == ("GET", f"{VM_URL}/vm1", {"api-version": "2017-03-30"}, None)

    def test_get_uses_configured_group(self, vms, session, make_response, vm_payload):
        session.request.return_value = make_response(200, vm_payload)

        vms.get("vm1")

        assert sent(session)[1] == f"{VM_URL}/vm1"

    def test_get_without_group(self, vms, session, mock_config):
        mock_config.resource_group = None

        with pytest.raises(InvalidArgumentError) as exc_info:
            vms.get("vm1")

        assert exc_info.value.argument == "resource_group"
        session.request.assert_not_called()

    def test_get_without_name(self, vms, session):
        with pytest.raises(InvalidArgumentError):
            vms.get("", "rg1")

        session.request.assert_not_called()

    def test_get_by_id_uses_version_of_id_type(self, client, session, make_response,
                                               nic_payload, resource_ids):
        session.request.return_value = make_response(200, nic_payload)

        nic = NetworkInterfaceService(client).get_by_id(resource_ids["nic"])

        assert isinstance(nic, NetworkInterface)
        method, url, params, _ = sent(session)
        assert url == f"https://management.azure.com{resource_ids['nic']}"
        assert params == {"api-version": "2017-03-01"}

    def test_unknown_api_version(self, client, mock_config):
        service = IpAddressService(client)
        service.provider = "Microsoft.Unknown"

        with pytest.raises(InvalidArgumentError):
            service.api_version

    def test_list_follows_pages(self, client, session, make_response):
        session.request.side_effect = [
            make_response(200, {"value": [{"name": "nsg1"}], "nextLink": f"{BASE}/next"}),
            make_response(200, {"value": [{"name": "nsg2"}]}),
        ]

        groups = NetworkSecurityGroupService(client).list("rg1")

        assert [g.name for g in groups] == ["nsg1", "nsg2"]
        assert sent(session, 0)[1] == (
            f"{BASE}/resourceGroups/rg1/providers/Microsoft.Network/networkSecurityGroups"
        )

    def test_list_all_is_subscription_wide(self, client, session, make_response, storage_payload):
        session.request.return_value = make_response(200, {"value": [storage_payload]})

        accounts = StorageAccountService(client).list_all()

        assert accounts == [StorageAccount(storage_payload)]
        assert sent(session) == (
            "GET",
            f"{BASE}/providers/Microsoft.Storage/storageAccounts",
            {"api-version": "2016-12-01"},
            None,
        )

    def test_delete_returns_async_headers(self, client, session, make_response):
        session.request.return_value = make_response(
            202, headers={"Azure-AsyncOperation": "https://op/1"}, method="DELETE"
        )

        headers = IpAddressService(client).delete("ip1", "rg1")

        assert headers["Azure-AsyncOperation"] == "https://op/1"
        method, url, _, _ = sent(session)
        assert method == "DELETE"
        assert url == f"{BASE}/resourceGroups/rg1/providers/Microsoft.Network/publicIPAddresses/ip1"


class TestVirtualMachineService:

    def test_series(self, vms, session, make_response):
        session.request.return_value = make_response(200, {"value": [
            {"name": "Basic_A1", "numberOfCores": 1, "memoryInMB": 1792},
        ]})

        sizes = vms.series("eastus")

        assert sizes[0].name == "Basic_A1"
        assert sizes[0].number_of_cores == 1
        assert sent(session) == (
            "GET",
            f"{BASE}/providers/Microsoft.Compute/locations/eastus/vmSizes",
            {"api-version": "2017-03-30"},
            None,
        )

    def test_series_requires_location(self, vms):
        with pytest.raises(InvalidArgumentError):
            vms.series("")

    def test_sizes_alias(self):
        assert VirtualMachineService.sizes is VirtualMachineService.series

    def test_instance_view(self, vms, session, make_response):
        session.request.return_value = make_response(200, {"statuses": [{"code": "PowerState/running"}]})

        view = vms.get("vm1", "rg1", model_view=False)

        assert isinstance(view, VirtualMachineInstance)
        assert view.power_state == "running"
        assert sent(session)[1] == f"{VM_URL}/vm1/instanceView"

    def test_model_view(self, vms, session, make_response, vm_payload):
        session.request.return_value = make_response(200, vm_payload)

        assert isinstance(vms.get_model_view("vm1", "rg1"), VirtualMachine)

    @pytest.mark.parametrize("method,action", [
        ("start", "start"),
        ("stop", "powerOff"),
        ("restart", "restart"),
        ("deallocate", "deallocate"),
        ("generalize", "generalize"),
    ])
    def test_lifecycle_actions(self, vms, session, make_response, method, action):
        session.request.return_value = make_response(202, method="POST")

        assert getattr(vms, method)("vm1", "rg1") is None

        assert sent(session) == ("POST", f"{VM_URL}/vm1/{action}", {"api-version": "2017-03-30"}, None)

    def test_capture_body(self, vms, session, make_response):
        session.request.return_value = make_response(202, method="POST")

        vms.capture("vm1", {"vhdPrefix": "img", "destinationContainerName": "images"}, "rg1")

        assert sent(session)[3] == {
            "overwriteVhds": False,
            "vhdPrefix": "img",
            "destinationContainerName": "images",
        }

    def test_action_requires_name(self, vms, session):
        with pytest.raises(InvalidArgumentError):
            vms.start("", "rg1")

        session.request.assert_not_called()

    def test_delete_associated_delegates(self, vms):
        report = DeletionReport(vm_name="vm1", resource_group="rg1")
        logger = Mock()

        with patch("armrest_sdk.deletion.DependentResourceDeleter") as deleter_class:
            deleter_class.return_value.delete_associated.return_value = report

            result = vms.delete_associated("vm1", "rg1", {"verbose": True}, logger=logger)

        assert result is report
        deleter_class.assert_called_once_with(vms, logger=logger)
        deleter_class.return_value.delete_associated.assert_called_once_with(
            "vm1", "rg1", {"verbose": True}, cancel_event=None
        )


class TestStorageAccountService:

    def test_list_account_keys(self, client, session, make_response):
        session.request.return_value = make_response(200, {"keys": [
            {"keyName": "key1", "value": "AAA", "permissions": "Full"},
            {"keyName": "key2", "value": "BBB", "permissions": "Full"},
        ]}, method="POST")

        keys = StorageAccountService(client).list_account_keys("acct123", "storage-rg")

        assert keys == {"key1": "AAA", "key2": "BBB"}
        method, url, _, _ = sent(session)
        assert method == "POST"
        assert url == (
            f"{BASE}/resourceGroups/storage-rg/providers/Microsoft.Storage"
            "/storageAccounts/acct123/listKeys"
        )

    def test_blob_store_uses_account_endpoint(self, client, storage_payload):
        with patch("armrest_sdk.services.storage_account.BlobStore") as store_class:
            StorageAccountService(client).blob_store(StorageAccount(storage_payload), "k1")

        store_class.assert_called_once_with(
            "acct123",
            "k1",
            endpoint_suffix="core.windows.net",
            account_url="https://acct123.blob.core.windows.net/"
        )

    def test_blobs_and_delete_blob(self, client):
        service = StorageAccountService(client)

        with patch("armrest_sdk.services.storage_account.BlobStore") as store_class:
            store = store_class.return_value
            store.__enter__.return_value = store
            service.blobs("acct123", "vhds", "k1")
            service.delete_blob("acct123", "vhds", "disk123.vhd", "k1")

        store.list_blobs.assert_called_once_with("vhds")
        store.delete_blob.assert_called_once_with("vhds", "disk123.vhd")
        # One store per call, each closed on the way out
        assert store.__exit__.call_count == 2
