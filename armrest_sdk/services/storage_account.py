"""
Storage account service.
"""

from typing import Dict, List, Optional, Union

from ..models import Blob, StorageAccount
from ..storage import BlobStore
from .base import ResourceGroupBasedService


class StorageAccountService(ResourceGroupBasedService):
    provider = 'Microsoft.Storage'
    service_name = 'storageAccounts'
    model_class = StorageAccount
    resource_label = 'StorageAccount'

    def list_account_keys(self, name: str, group: Optional[str] = None) -> Dict[str, str]:
        """
        Return the access keys of account ``name`` as {"key1": ..., "key2": ...}.
        """
        group = self._resolve_group(group)
        name = self._require_name(name)
        url = self.build_url(group, name, 'listKeys')
        response = self.client.post(url, params=self._params())
        payload = self.client.parse_json(response)

        keys = {}
        for entry in payload.get('keys') or []:
            if entry.get('keyName'):
                keys[entry['keyName']] = entry.get('value')
        return keys

    def blob_store(self, account: Union[StorageAccount, str], key: Optional[str]) -> BlobStore:
        """BlobStore for ``account``, preferring its advertised blob endpoint."""
        if isinstance(account, StorageAccount):
            return BlobStore(
                account.name,
                key,
                endpoint_suffix=self.config.cloud_environment.storage_suffix,
                account_url=account.blob_endpoint
            )
        return BlobStore(account, key, endpoint_suffix=self.config.cloud_environment.storage_suffix)

    def blobs(self, account: Union[StorageAccount, str], container: str, key: Optional[str]) -> List[Blob]:
        """
        List the blobs in ``container`` of ``account``.

        Opens and closes a store per call; use ``blob_store`` as a context
        manager to reuse one connection for several operations.
        """
        with self.blob_store(account, key) as store:
            return store.list_blobs(container)

    def delete_blob(self, account: Union[StorageAccount, str], container: str,
                    blob_name: str, key: Optional[str]) -> None:
        with self.blob_store(account, key) as store:
            store.delete_blob(container, blob_name)
