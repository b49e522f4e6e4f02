"""
ARM REST SDK - Virtual Machine Lifecycle Client

This SDK wraps the resource manager REST API for virtual machines and the
resources they depend on, and describes the cloud environments the API is
deployed in.

Key Components:
- ArmRestClient: Authenticated HTTP access with typed errors
- AsyncOperationPoller: Bounded polling of asynchronous operations
- VirtualMachineService: VM lifecycle actions and dependent resource deletion
- Network and storage services: NICs, public IPs, NSGs, storage accounts, blobs
- Environment registry: Endpoints of the Public, US Government, Germany and China clouds
"""

__version__ = "1.0.0"

from .config import ArmrestConfig, PollingConfig, LoggingConfig
from .environment import Environment, get_environment, PUBLIC, US_GOVERNMENT, GERMANY, CHINA
from .rest import ArmRestClient
from .poller import AsyncOperationPoller
from .models import (
    ResourceId,
    VirtualMachine,
    VirtualMachineInstance,
    VirtualMachineSize,
    NetworkInterface,
    PublicIpAddress,
    NetworkSecurityGroup,
    StorageAccount,
    Blob,
    DeletionOptions,
    DeletionReport,
)
from .services import (
    VirtualMachineService,
    NetworkInterfaceService,
    IpAddressService,
    NetworkSecurityGroupService,
    StorageAccountService,
)
from .deletion import DependentResourceDeleter
from .logging import setup_logging, get_logger, logging_context
from .exceptions import (
    ArmrestSDKException,
    InvalidArgumentError,
    InvalidConfigurationError,
    TransportError,
    ApiError,
    NotFoundError,
    ResourceStillAttachedError,
    BadRequestError,
    PreconditionFailedError,
    ConflictError,
    PollTimeoutError,
    OperationFailedError,
    OperationCancelledError,
)

__all__ = [
    # Core Components
    "ArmrestConfig",
    "PollingConfig",
    "LoggingConfig",
    "ArmRestClient",
    "AsyncOperationPoller",
    "DependentResourceDeleter",
    "VirtualMachineService",
    "NetworkInterfaceService",
    "IpAddressService",
    "NetworkSecurityGroupService",
    "StorageAccountService",

    # Environments
    "Environment",
    "get_environment",
    "PUBLIC",
    "US_GOVERNMENT",
    "GERMANY",
    "CHINA",

    # Data Models
    "ResourceId",
    "VirtualMachine",
    "VirtualMachineInstance",
    "VirtualMachineSize",
    "NetworkInterface",
    "PublicIpAddress",
    "NetworkSecurityGroup",
    "StorageAccount",
    "Blob",
    "DeletionOptions",
    "DeletionReport",

    # Logging
    "setup_logging",
    "get_logger",
    "logging_context",

    # Exceptions
    "ArmrestSDKException",
    "InvalidArgumentError",
    "InvalidConfigurationError",
    "TransportError",
    "ApiError",
    "NotFoundError",
    "ResourceStillAttachedError",
    "BadRequestError",
    "PreconditionFailedError",
    "ConflictError",
    "PollTimeoutError",
    "OperationFailedError",
    "OperationCancelledError",
]
