"""
Configuration management for the ARM REST SDK.

This module provides configuration classes with validation, covering the
subscription and resource group defaults, the target cloud environment,
asynchronous operation polling bounds, logging, and provider API versions.
"""

import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Any, Optional, Union
from pathlib import Path
import yaml
from .environment import Environment, get_environment
from .exceptions import InvalidConfigurationError

try:
    from dotenv import load_dotenv
    _DOTENV_AVAILABLE = True
except ImportError:
    _DOTENV_AVAILABLE = False


# Versions used when the provider listing has not been loaded.
# Keys are lower-cased "namespace/resourcetype".
DEFAULT_API_VERSIONS: Dict[str, str] = {
    "microsoft.compute/virtualmachines": "2017-03-30",
    "microsoft.compute/locations/vmsizes": "2017-03-30",
    "microsoft.network/networkinterfaces": "2017-03-01",
    "microsoft.network/publicipaddresses": "2017-03-01",
    "microsoft.network/networksecuritygroups": "2017-03-01",
    "microsoft.storage/storageaccounts": "2016-12-01",
}

# api-version for the /providers listing itself
PROVIDERS_API_VERSION = "2016-09-01"


def _as_bool(value: Any) -> bool:
    """Interpret environment-style strings ("true", "1", "yes") as booleans."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _as_number(value: Any, convert: Callable[[Any], Any], key: str) -> Any:
    """Convert an environment-style string with ``convert`` (int or float)."""
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            f"Configuration value '{key}' must be a number, got {value!r}",
            config_key=key,
            config_value=value
        ) from e


@dataclass
class PollingConfig:
    """
    Bounds for polling asynchronous operations.

    Intervals grow by ``backoff_factor`` from ``initial_interval`` up to
    ``max_interval``. Polling stops after ``max_attempts`` queries or
    ``timeout`` seconds, whichever comes first.
    """

    initial_interval: float = 2.0
    max_interval: float = 30.0
    backoff_factor: float = 2.0
    timeout: float = 1800.0  # 30 minutes
    max_attempts: int = 360
    honor_retry_after: bool = True

    def __post_init__(self) -> None:
        """Validate polling configuration after initialization."""
        for key in ('initial_interval', 'max_interval', 'backoff_factor', 'timeout', 'max_attempts'):
            value = getattr(self, key)
            if isinstance(value, str):
                value = _as_number(value, int if key == 'max_attempts' else float, key)
                setattr(self, key, value)

        self.honor_retry_after = _as_bool(self.honor_retry_after)

        if self.initial_interval < 0:
            raise InvalidConfigurationError(
                "Polling initial_interval must not be negative",
                config_key="initial_interval",
                config_value=self.initial_interval
            )

        if self.max_interval < self.initial_interval:
            raise InvalidConfigurationError(
                "Polling max_interval must be at least initial_interval",
                config_key="max_interval",
                config_value=self.max_interval
            )

        if self.backoff_factor < 1.0:
            raise InvalidConfigurationError(
                "Polling backoff_factor must be at least 1.0",
                config_key="backoff_factor",
                config_value=self.backoff_factor
            )

        if self.timeout <= 0:
            raise InvalidConfigurationError(
                "Polling timeout must be positive",
                config_key="timeout",
                config_value=self.timeout
            )

        if self.max_attempts < 1:
            raise InvalidConfigurationError(
                "Polling max_attempts must be at least 1",
                config_key="max_attempts",
                config_value=self.max_attempts
            )


@dataclass
class LoggingConfig:
    """
    Logging configuration settings.

    Defines log levels, output destinations, and structured logging options.
    """

    level: str = "INFO"
    format: str = "text"  # json or text
    output: str = "console"  # console, file, or both
    file_path: Optional[str] = None
    max_file_size: str = "100MB"
    backup_count: int = 5

    include_caller_info: bool = False
    include_correlation_id: bool = True

    # Third-party loggers
    http_log_level: str = "WARNING"

    def __post_init__(self) -> None:
        """Validate logging configuration after initialization."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.backup_count = _as_number(self.backup_count, int, 'backup_count')
        self.include_caller_info = _as_bool(self.include_caller_info)
        self.include_correlation_id = _as_bool(self.include_correlation_id)
        self.level = self.level.upper()
        self.http_log_level = self.http_log_level.upper()

        if self.level not in valid_levels:
            raise InvalidConfigurationError(
                f"Log level must be one of {valid_levels}",
                config_key="level",
                config_value=self.level
            )

        if self.http_log_level not in valid_levels:
            raise InvalidConfigurationError(
                f"HTTP log level must be one of {valid_levels}",
                config_key="http_log_level",
                config_value=self.http_log_level
            )

        if self.format not in ("json", "text"):
            raise InvalidConfigurationError(
                "Log format must be 'json' or 'text'",
                config_key="format",
                config_value=self.format
            )

        if self.output not in ("console", "file", "both"):
            raise InvalidConfigurationError(
                "Log output must be 'console', 'file' or 'both'",
                config_key="output",
                config_value=self.output
            )

        if self.output in ("file", "both") and not self.file_path:
            raise InvalidConfigurationError(
                "file_path is required when output includes 'file'",
                config_key="file_path"
            )


TokenSource = Union[str, Callable[[], str], None]


@dataclass
class ArmrestConfig:
    """
    Main configuration class for the ARM REST SDK.

    Holds the subscription and default resource group, the cloud environment
    name, the bearer token (or a callable returning one), and the polling and
    logging sections. Also answers provider API version lookups.
    """

    subscription_id: str = ""
    resource_group: Optional[str] = None
    environment: str = "Public"
    token: TokenSource = None
    request_timeout: float = 30.0

    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Overrides and discovered versions, keyed "namespace/resourcetype"
    api_versions: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if isinstance(self.request_timeout, str):
            self.request_timeout = _as_number(self.request_timeout, float, 'request_timeout')

        if self.request_timeout <= 0:
            raise InvalidConfigurationError(
                "request_timeout must be positive",
                config_key="request_timeout",
                config_value=self.request_timeout
            )

        self.api_versions = {
            key.lower(): value for key, value in (self.api_versions or {}).items()
        }

        get_environment(self.environment)

    @property
    def cloud_environment(self) -> Environment:
        """The Environment record for ``self.environment``."""
        return get_environment(self.environment)

    def provider_default_api_version(self, namespace: str, resource_type: str) -> Optional[str]:
        """
        Return the api-version to use for ``namespace``/``resource_type``.

        Configured or discovered versions win over the built-in defaults.
        Returns None when no version is known.
        """
        key = f"{namespace}/{resource_type}".lower()
        return self.api_versions.get(key) or DEFAULT_API_VERSIONS.get(key)

    def set_provider_api_versions(self, versions: Dict[str, str]) -> None:
        """Merge discovered provider versions; explicit overrides are kept."""
        for key, value in versions.items():
            self.api_versions.setdefault(key.lower(), value)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'ArmrestConfig':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ArmrestConfig instance with loaded configuration

        Raises:
            InvalidConfigurationError: If file cannot be read or parsed
        """
        path = Path(config_path)
        if not path.exists():
            raise InvalidConfigurationError(
                f"Configuration file not found: {config_path}",
                config_key="config_path",
                config_value=str(config_path)
            )

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key="yaml_parsing"
            ) from e
        except OSError as e:
            raise InvalidConfigurationError(
                f"Failed to load configuration file: {e}",
                config_key="file_loading"
            ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(
                "Configuration file must contain a mapping",
                config_key="config_path",
                config_value=str(config_path)
            )

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArmrestConfig':
        """
        Create configuration from dictionary.

        Args:
            data: Configuration dictionary with optional 'polling' and
                'logging' sections

        Returns:
            ArmrestConfig instance
        """
        data = dict(data)
        try:
            polling = PollingConfig(**data.pop('polling', None) or {})
            logging_config = LoggingConfig(**data.pop('logging', None) or {})
            return cls(polling=polling, logging=logging_config, **data)
        except TypeError as e:
            raise InvalidConfigurationError(
                f"Unknown configuration key: {e}",
                config_key="unknown"
            ) from e

    @classmethod
    def from_dotenv(cls, dotenv_path: Optional[Union[str, Path]] = None) -> 'ArmrestConfig':
        """
        Load configuration from .env file.

        Args:
            dotenv_path: Path to .env file. If None, looks for .env in current directory

        Returns:
            ArmrestConfig instance with .env-based configuration

        Raises:
            InvalidConfigurationError: If dotenv is not available or file cannot be loaded
        """
        if not _DOTENV_AVAILABLE:
            raise InvalidConfigurationError(
                "python-dotenv is required for .env file support. Install with: pip install python-dotenv",
                config_key="dotenv_dependency"
            )

        if dotenv_path is None:
            dotenv_path = Path.cwd() / '.env'
        else:
            dotenv_path = Path(dotenv_path)

        if not dotenv_path.exists():
            raise InvalidConfigurationError(
                f".env file not found: {dotenv_path}",
                config_key="dotenv_path",
                config_value=str(dotenv_path)
            )

        load_dotenv(dotenv_path)

        return cls.from_environment()

    @classmethod
    def from_environment(cls) -> 'ArmrestConfig':
        """
        Create configuration from environment variables.

        Environment variables should be prefixed with 'ARMREST_SDK_'
        and use double underscores for nested configuration.

        Examples:
            ARMREST_SDK_SUBSCRIPTION_ID=abc-123
            ARMREST_SDK_POLLING__TIMEOUT=600
            ARMREST_SDK_LOGGING__LEVEL=DEBUG

        Returns:
            ArmrestConfig instance with environment-based configuration
        """
        data: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith('ARMREST_SDK_'):
                continue

            config_key = key[len('ARMREST_SDK_'):]
            if '__' in config_key:
                section, name = config_key.split('__', 1)
                data.setdefault(section.lower(), {})[name.lower()] = value
            else:
                data[config_key.lower()] = value

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        The token is never included.
        """
        return {
            'subscription_id': self.subscription_id,
            'resource_group': self.resource_group,
            'environment': self.environment,
            'request_timeout': self.request_timeout,
            'polling': dict(self.polling.__dict__),
            'logging': dict(self.logging.__dict__),
            'api_versions': dict(self.api_versions),
        }
