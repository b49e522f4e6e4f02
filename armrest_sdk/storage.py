"""
Blob access for a single storage account.

Uses the Azure Storage SDK with an account key; errors are translated into
the SDK's own exception types.
"""

import logging
from typing import List, Optional

from azure.core.exceptions import (
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.storage.blob import BlobServiceClient

from .exceptions import ApiError, InvalidArgumentError, NotFoundError, TransportError
from .models import Blob

logger = logging.getLogger(__name__)


class BlobStore:
    """
    Lists and deletes blobs in one storage account.

    Args:
        account_name: Storage account name (first label of the blob host)
        account_key: One of the account's access keys
        endpoint_suffix: Storage DNS suffix of the cloud environment
        account_url: Explicit blob endpoint; overrides name + suffix
        service_client: Pre-built BlobServiceClient (mainly for tests)
    """

    def __init__(
        self,
        account_name: str,
        account_key: Optional[str],
        endpoint_suffix: str = 'core.windows.net',
        account_url: Optional[str] = None,
        service_client: Optional[BlobServiceClient] = None
    ) -> None:
        if not account_name:
            raise InvalidArgumentError("must specify storage account name", argument="account_name")

        self.account_name = account_name
        self.account_url = account_url or f"https://{account_name}.blob.{endpoint_suffix}"

        if service_client is None:
            if not account_key:
                raise InvalidArgumentError(
                    f"No access key available for storage account {account_name}",
                    argument="account_key"
                )
            service_client = BlobServiceClient(account_url=self.account_url, credential=account_key)

        self._service = service_client

    def __enter__(self) -> 'BlobStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying service client and its transport."""
        self._service.close()

    def list_blobs(self, container: str) -> List[Blob]:
        """Return every blob in ``container``."""
        container_client = self._service.get_container_client(container)
        try:
            return [
                Blob(
                    container=container,
                    name=props.name,
                    size=props.size,
                    last_modified=props.last_modified,
                )
                for props in container_client.list_blobs()
            ]
        except ResourceNotFoundError as e:
            raise NotFoundError(
                f"Container {container} not found in {self.account_name}",
                resource_type="Container",
                resource_name=container
            ) from e
        except HttpResponseError as e:
            raise ApiError(
                f"Listing blobs in {self.account_name}/{container} failed: {e.message}",
                status_code=e.status_code
            ) from e
        except ServiceRequestError as e:
            raise TransportError(
                f"Error connecting to {self.account_url}: {e}",
                url=self.account_url
            ) from e

    def delete_blob(self, container: str, name: str) -> None:
        """Delete blob ``name`` (and its snapshots) from ``container``."""
        blob_client = self._service.get_blob_client(container=container, blob=name)
        try:
            blob_client.delete_blob(delete_snapshots='include')
        except ResourceNotFoundError as e:
            raise NotFoundError(
                f"Blob {container}/{name} not found in {self.account_name}",
                resource_type="Blob",
                resource_name=name
            ) from e
        except HttpResponseError as e:
            raise ApiError(
                f"Deleting blob {container}/{name} failed: {e.message}",
                status_code=e.status_code
            ) from e
        except ServiceRequestError as e:
            raise TransportError(
                f"Error connecting to {self.account_url}: {e}",
                url=self.account_url
            ) from e
        logger.debug(f"Deleted blob {self.account_name}/{container}/{name}")
