"""
Custom exceptions for the ARM REST SDK.

This module defines the exception hierarchy used across the SDK: argument and
configuration validation, HTTP transport failures, API errors tagged by kind,
and the outcomes of asynchronous operation polling.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Classification of an API error by HTTP status."""
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    THROTTLED = "throttled"
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"
    OTHER = "other"


# Kinds the deletion workflow treats as "resource still attached"
ATTACHMENT_CONFLICT_KINDS = frozenset({
    ErrorKind.BAD_REQUEST,
    ErrorKind.PRECONDITION_FAILED,
})


class ArmrestSDKException(Exception):
    """
    Base exception for all ARM REST SDK errors.

    Provides an error code and a details dictionary for error reporting
    and serialization.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class InvalidArgumentError(ArmrestSDKException):
    """
    Raised when a required identifier is missing or malformed.

    Always raised before any request is issued.
    """

    def __init__(self, message: str, argument: Optional[str] = None, **kwargs) -> None:
        details = kwargs.get('details', {})
        if argument:
            details['argument'] = argument

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'INVALID_ARGUMENT'),
            details=details
        )
        self.argument = argument


class InvalidConfigurationError(ArmrestSDKException):
    """
    Raised when configuration validation fails.

    This exception is thrown when:
    - An environment record uses an unknown key or omits a mandatory one
    - Deletion options contain an unrecognized flag
    - Configuration files cannot be read or hold invalid values
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ) -> None:
        details = kwargs.get('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'INVALID_CONFIGURATION'),
            details=details
        )
        self.config_key = config_key
        self.config_value = config_value


class TransportError(ArmrestSDKException):
    """Raised when a request cannot be delivered (connection, DNS, timeout)."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs) -> None:
        details = kwargs.get('details', {})
        if url:
            details['url'] = url

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'TRANSPORT_ERROR'),
            details=details
        )
        self.url = url


class ApiError(ArmrestSDKException):
    """
    Raised when the management API answers with an error status.

    The ``kind`` attribute tags the error class so that callers can decide
    how to react without matching on exception types.
    """

    kind = ErrorKind.OTHER

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        api_code: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        **kwargs
    ) -> None:
        details = kwargs.get('details', {})
        if status_code is not None:
            details['status_code'] = status_code
        if url:
            details['url'] = url
        if api_code:
            details['api_code'] = api_code

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'API_ERROR'),
            details=details
        )
        self.status_code = status_code
        self.url = url
        self.api_code = api_code
        if kind is not None:
            self.kind = kind

    @property
    def is_attachment_conflict(self) -> bool:
        """True when the error means the resource is still in use elsewhere."""
        return self.kind in ATTACHMENT_CONFLICT_KINDS


class NotFoundError(ApiError):
    """Raised when the target resource does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, resource_type: Optional[str] = None,
                 resource_name: Optional[str] = None, **kwargs) -> None:
        details = kwargs.pop('details', {})
        if resource_type:
            details['resource_type'] = resource_type
        if resource_name:
            details['resource_name'] = resource_name
        kwargs.setdefault('error_code', 'RESOURCE_NOT_FOUND')

        super().__init__(message, details=details, **kwargs)
        self.resource_type = resource_type
        self.resource_name = resource_name


class ResourceStillAttachedError(ApiError):
    """
    Raised when a resource cannot be changed because another resource still
    references it, e.g. a NIC still bound to a VM.
    """

    kind = ErrorKind.BAD_REQUEST


class BadRequestError(ResourceStillAttachedError):
    """HTTP 400."""

    kind = ErrorKind.BAD_REQUEST


class PreconditionFailedError(ResourceStillAttachedError):
    """HTTP 412."""

    kind = ErrorKind.PRECONDITION_FAILED


class ConflictError(ApiError):
    """HTTP 409."""

    kind = ErrorKind.CONFLICT


class PollTimeoutError(ArmrestSDKException):
    """Raised when an asynchronous operation does not finish within its bound."""

    def __init__(
        self,
        message: str,
        status_url: Optional[str] = None,
        attempts: Optional[int] = None,
        elapsed_seconds: Optional[float] = None,
        last_status: Optional[str] = None,
        **kwargs
    ) -> None:
        details = kwargs.get('details', {})
        if status_url:
            details['status_url'] = status_url
        if attempts is not None:
            details['attempts'] = attempts
        if elapsed_seconds is not None:
            details['elapsed_seconds'] = elapsed_seconds
        if last_status:
            details['last_status'] = last_status

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'POLL_TIMEOUT'),
            details=details
        )
        self.status_url = status_url
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        self.last_status = last_status


class OperationFailedError(ArmrestSDKException):
    """Raised when an asynchronous operation reaches a terminal failure status."""

    def __init__(self, message: str, status: Optional[str] = None,
                 status_url: Optional[str] = None, **kwargs) -> None:
        details = kwargs.get('details', {})
        if status:
            details['status'] = status
        if status_url:
            details['status_url'] = status_url

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'OPERATION_FAILED'),
            details=details
        )
        self.status = status
        self.status_url = status_url


class OperationCancelledError(ArmrestSDKException):
    """Raised when the caller cancels a wait on an asynchronous operation."""

    def __init__(self, message: str, status_url: Optional[str] = None, **kwargs) -> None:
        details = kwargs.get('details', {})
        if status_url:
            details['status_url'] = status_url

        super().__init__(
            message=message,
            error_code=kwargs.get('error_code', 'OPERATION_CANCELLED'),
            details=details
        )
        self.status_url = status_url
