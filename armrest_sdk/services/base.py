"""
Base class for resource-group scoped services.

A service knows its provider namespace and resource type, builds resource
URLs under a subscription and resource group, and wraps the JSON it gets
back in its model class.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from requests.structures import CaseInsensitiveDict

from ..exceptions import InvalidArgumentError
from ..models import BaseModel, ResourceId
from ..rest import ArmRestClient

logger = logging.getLogger(__name__)


class ResourceGroupBasedService:
    """
    CRUD wrapper for one ARM resource type.

    Subclasses set ``provider``, ``service_name``, ``model_class`` and
    ``resource_label`` (the human name used in log messages).
    """

    provider: str = ''
    service_name: str = ''
    model_class: Type[BaseModel] = BaseModel
    resource_label: str = 'Resource'

    def __init__(self, client: ArmRestClient) -> None:
        self.client = client
        self.config = client.config

    # ==================== URL helpers ====================

    @property
    def api_version(self) -> str:
        return self._api_version_for(self.provider, self.service_name)

    def _api_version_for(self, provider: str, resource_type: str) -> str:
        version = self.config.provider_default_api_version(provider, resource_type)
        if not version:
            raise InvalidArgumentError(
                f"Unable to find api version for {provider}/{resource_type}",
                argument="api_version"
            )
        return version

    def _params(self) -> Dict[str, str]:
        return {'api-version': self.api_version}

    def _resolve_group(self, group: Optional[str]) -> str:
        group = group or self.config.resource_group
        if not group:
            raise InvalidArgumentError("must specify resource group", argument="resource_group")
        return group

    def _require_name(self, name: Optional[str]) -> str:
        if not name:
            raise InvalidArgumentError(
                "must specify name of the resource",
                argument="name"
            )
        return name

    def build_url(self, group: str, name: Optional[str] = None, *args: str) -> str:
        """
        URL of the service collection in ``group``, or of resource ``name``,
        with optional trailing segments (e.g. an action name).
        """
        return self.client.url(
            'subscriptions', self.config.subscription_id,
            'resourceGroups', group,
            'providers', self.provider, self.service_name,
            name, *args
        )

    # ==================== Operations ====================

    def get(self, name: str, group: Optional[str] = None) -> BaseModel:
        """Fetch resource ``name`` in ``group`` (defaults to the configured group)."""
        group = self._resolve_group(group)
        name = self._require_name(name)
        return self.model_class(self.client.get(self.build_url(group, name), params=self._params()))

    def get_by_id(self, resource_id: str) -> BaseModel:
        """
        Fetch a resource by its full id, using the api-version of the
        provider and type named in the id.
        """
        parsed = ResourceId.parse(resource_id)
        version = self._api_version_for(parsed.provider, parsed.resource_type)
        url = self.client.url(resource_id)
        return self.model_class(self.client.get(url, params={'api-version': version}))

    def list(self, group: Optional[str] = None) -> List[BaseModel]:
        """List resources of this type in ``group``."""
        group = self._resolve_group(group)
        items = self.client.get_paged(self.build_url(group), params=self._params())
        return [self.model_class(item) for item in items]

    def list_all(self) -> List[BaseModel]:
        """List resources of this type across the whole subscription."""
        url = self.client.url(
            'subscriptions', self.config.subscription_id,
            'providers', self.provider, self.service_name
        )
        items = self.client.get_paged(url, params=self._params())
        return [self.model_class(item) for item in items]

    def delete(self, name: str, group: Optional[str] = None) -> CaseInsensitiveDict:
        """
        Start deleting ``name`` in ``group``.

        Returns the response headers, which carry the async operation URL.
        """
        group = self._resolve_group(group)
        name = self._require_name(name)
        logger.debug(f"Deleting {self.resource_label} {name}/{group}")
        return self.client.delete(self.build_url(group, name), params=self._params())

    def _post_action(self, name: str, group: Optional[str], action: str,
                     body: Optional[Dict[str, Any]] = None) -> CaseInsensitiveDict:
        group = self._resolve_group(group)
        name = self._require_name(name)
        url = self.build_url(group, name, action)
        return self.client.post(url, json=body, params=self._params()).headers
