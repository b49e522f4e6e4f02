"""
Cloud environment descriptors.

Each Environment is a fixed set of endpoint URLs and DNS suffixes for one
deployment region of the management API. The predefined environments are
built at import time; lookups are by name.
"""

from typing import Any, Dict, Optional, Tuple

from .exceptions import InvalidConfigurationError


VALID_KEYS: Tuple[str, ...] = (
    "name",
    "active_directory_authority",
    "active_directory_resource_id",
    "gallery_url",
    "graph_url",
    "graph_api_version",
    "key_vault_dns_suffix",
    "key_vault_service_resource_id",
    "publish_settings_file_url",
    "resource_manager_url",
    "service_management_url",
    "sql_database_dns_suffix",
    "storage_suffix",
    "traffic_manager_dns_suffix",
)

MANDATORY_KEYS: Tuple[str, ...] = (
    "name",
    "active_directory_authority",
    "resource_manager_url",
)


class Environment:
    """
    Endpoints for one cloud environment.

    Only the keys in VALID_KEYS are accepted, and ``name``,
    ``active_directory_authority`` and ``resource_manager_url`` must be set.
    Instances are read-only once built.

    Attributes:
        name: The environment name
        active_directory_authority: Authority used to acquire an AD token
        active_directory_resource_id: Resource ID used to obtain an AD token
        gallery_url: Template gallery endpoint
        graph_url: Active Directory graph endpoint
        graph_api_version: api-version for Active Directory
        key_vault_dns_suffix: KeyVault service DNS suffix
        key_vault_service_resource_id: KeyVault service resource ID
        publish_settings_file_url: Publish settings file URL
        resource_manager_url: Resource management endpoint
        service_management_url: Service management URL
        sql_database_dns_suffix: DNS suffix for SQL Server instances
        storage_suffix: Endpoint suffix for storage accounts
        traffic_manager_dns_suffix: DNS suffix for TrafficManager
    """

    __slots__ = VALID_KEYS

    def __init__(self, **options: Any) -> None:
        for key in options:
            if key not in VALID_KEYS:
                raise InvalidConfigurationError(
                    f"Invalid key '{key}'",
                    config_key=key
                )

        for key in VALID_KEYS:
            object.__setattr__(self, key, options.get(key))

        for key in MANDATORY_KEYS:
            if not getattr(self, key):
                raise InvalidConfigurationError(
                    f"Mandatory argument '{key}' not set",
                    config_key=key
                )

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"Environment is read-only, cannot set '{key}'")

    def __repr__(self) -> str:
        return f"Environment(name={self.name!r}, resource_manager_url={self.resource_manager_url!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Environment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(tuple(self.to_dict().items()))

    @property
    def authority_url(self) -> str:
        return self.active_directory_authority

    @property
    def resource_url(self) -> str:
        return self.resource_manager_url

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {key: getattr(self, key) for key in VALID_KEYS}


PUBLIC = Environment(
    name='Public',
    active_directory_authority='https://login.microsoftonline.com/',
    active_directory_resource_id='https://management.core.windows.net/',
    gallery_url='https://gallery.azure.com/',
    graph_url='https://graph.windows.net/',
    graph_api_version='1.6',
    key_vault_dns_suffix='vault.azure.net',
    key_vault_service_resource_id='https://vault.azure.net',
    publish_settings_file_url='https://manage.windowsazure.com/publishsettings/index',
    resource_manager_url='https://management.azure.com/',
    service_management_url='https://management.core.windows.net/',
    sql_database_dns_suffix='database.windows.net',
    storage_suffix='core.windows.net',
    traffic_manager_dns_suffix='trafficmanager.net',
)

US_GOVERNMENT = Environment(
    name='US Government',
    active_directory_authority='https://login-us.microsoftonline.com/',
    active_directory_resource_id='https://management.core.usgovcloudapi.net/',
    gallery_url='https://gallery.usgovcloudapi.net/',
    graph_url='https://graph.windows.net/',
    graph_api_version='1.6',
    key_vault_dns_suffix='vault.usgovcloudapi.net',
    key_vault_service_resource_id='https://vault.usgovcloudapi.net',
    publish_settings_file_url='https://manage.windowsazure.us/publishsettings/index',
    resource_manager_url='https://management.usgovcloudapi.net/',
    service_management_url='https://management.core.usgovcloudapi.net/',
    sql_database_dns_suffix='database.usgovcloudapi.net',
    storage_suffix='core.usgovcloudapi.net',
    traffic_manager_dns_suffix='usgovtrafficmanager.net',
)

GERMANY = Environment(
    name='Germany',
    active_directory_authority='https://login.microsoftonline.de/',
    active_directory_resource_id='https://management.core.cloudapi.de/',
    gallery_url='https://gallery.cloudapi.de/',
    graph_url='https://graph.cloudapi.de/',
    graph_api_version='1.6',
    key_vault_dns_suffix='vault.microsoftazure.de',
    key_vault_service_resource_id='https://vault.microsoftazure.de',
    publish_settings_file_url='https://manage.microsoftazure.de/publishsettings/index',
    resource_manager_url='https://management.microsoftazure.de/',
    service_management_url='https://management.core.cloudapi.de/',
    sql_database_dns_suffix='database.cloudapi.de',
    storage_suffix='core.cloudapi.de',
    traffic_manager_dns_suffix='azuretrafficmanager.de',
)

CHINA = Environment(
    name='China',
    active_directory_authority='https://login.chinacloudapi.cn',
    active_directory_resource_id='https://management.core.chinacloudapi.cn/',
    gallery_url='https://gallery.chinacloudapi.cn/',
    graph_url='https://graph.chinacloudapi.cn/',
    graph_api_version='1.6',
    key_vault_dns_suffix='vault.azure.cn',
    key_vault_service_resource_id='https://vault.azure.cn',
    publish_settings_file_url='http://go.microsoft.com/fwlink/?LinkID=301776',
    resource_manager_url='https://management.chinacloudapi.cn/',
    service_management_url='https://management.core.chinacloudapi.cn/',
    sql_database_dns_suffix='database.chinacloudapi.cn',
    storage_suffix='core.chinacloudapi.cn',
    traffic_manager_dns_suffix='trafficmanager.cn',
)

ENVIRONMENTS: Dict[str, Environment] = {
    env.name.lower(): env for env in (PUBLIC, US_GOVERNMENT, GERMANY, CHINA)
}


def get_environment(name: str) -> Environment:
    """
    Look up a predefined environment by name (case-insensitive).

    Raises:
        InvalidConfigurationError: If no environment has that name
    """
    env = ENVIRONMENTS.get((name or "").strip().lower())
    if env is None:
        raise InvalidConfigurationError(
            f"Unknown environment '{name}'. Known environments: "
            f"{', '.join(e.name for e in ENVIRONMENTS.values())}",
            config_key="environment",
            config_value=name
        )
    return env
