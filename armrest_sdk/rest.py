"""
REST client for the management API.

Thin wrapper over a ``requests.Session`` that adds the bearer token and the
JSON accept header, retries once on throttling and once on an expired token,
and turns HTTP error statuses into tagged SDK exceptions.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.structures import CaseInsensitiveDict

from .config import ArmrestConfig, PROVIDERS_API_VERSION
from .exceptions import (
    ApiError,
    BadRequestError,
    ConflictError,
    ErrorKind,
    InvalidConfigurationError,
    NotFoundError,
    PreconditionFailedError,
    TransportError,
)

logger = logging.getLogger(__name__)

MAX_RETRY_AFTER_SECONDS = 60


def _safe_error_text(response: requests.Response) -> str:
    try:
        text = response.text or ""
    except (UnicodeDecodeError, requests.RequestException):
        return ""
    text = text.strip()
    if len(text) > 200:
        return f"{text[:200]}..."
    return text


def _error_payload(response: requests.Response) -> Dict[str, Any]:
    """Return the ``error`` object of an ARM error body, or {}."""
    try:
        payload = response.json()
    except ValueError:
        return {}
    if isinstance(payload, dict) and isinstance(payload.get('error'), dict):
        return payload['error']
    return {}


def api_error_from_response(response: requests.Response) -> ApiError:
    """Build the exception matching ``response.status_code``."""
    status = response.status_code
    url = response.url
    error = _error_payload(response)
    api_code = error.get('code')
    detail = error.get('message') or _safe_error_text(response)

    message = f"{response.request.method if response.request else 'HTTP'} {url} failed ({status})"
    if detail:
        message = f"{message}: {detail}"

    if status == 400:
        return BadRequestError(message, status_code=status, url=url, api_code=api_code)
    if status == 404:
        return NotFoundError(message, status_code=status, url=url, api_code=api_code)
    if status == 409:
        return ConflictError(message, status_code=status, url=url, api_code=api_code)
    if status == 412:
        return PreconditionFailedError(message, status_code=status, url=url, api_code=api_code)

    if status == 401 or status == 403:
        kind = ErrorKind.UNAUTHORIZED
    elif status == 429:
        kind = ErrorKind.THROTTLED
    elif status >= 500:
        kind = ErrorKind.SERVER_ERROR
    else:
        kind = ErrorKind.OTHER
    return ApiError(message, status_code=status, url=url, api_code=api_code, kind=kind)


class ArmRestClient:
    """
    HTTP client for the management API.

    The token is taken from the configuration: either a bearer token string
    or a zero-argument callable returning one. With a callable, a 401
    answer triggers one fresh token and one retry.

    Usage:
        with ArmRestClient(config) as client:
            vm = client.get(url)
    """

    def __init__(
        self,
        config: ArmrestConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        if not config.subscription_id:
            raise InvalidConfigurationError(
                "subscription_id is required",
                config_key="subscription_id"
            )

        self.config = config
        self.session = session or requests.Session()
        self.base_url = config.cloud_environment.resource_manager_url.rstrip('/')
        self.timeout = config.request_timeout
        self._sleep = sleep
        self._token: Optional[str] = None

    def __enter__(self) -> 'ArmRestClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # ==================== Auth ====================

    def _get_token(self, refresh: bool = False) -> str:
        source = self.config.token
        if callable(source):
            if refresh or self._token is None:
                self._token = source()
            return self._token
        return source or ""

    def _headers(self, refresh_token: bool = False) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        token = self._get_token(refresh=refresh_token)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ==================== Requests ====================

    def url(self, *segments: str) -> str:
        """Join path segments onto the resource manager base URL."""
        path = '/'.join(str(s).strip('/') for s in segments if s)
        return f"{self.base_url}/{path}"

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        retry: int = 1,
        refresh_token: bool = False,
    ) -> requests.Response:
        """
        Issue a request and return the response.

        Raises:
            TransportError: If the request could not be delivered
            ApiError: (or a subclass) for any status >= 400
        """
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(refresh_token=refresh_token),
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Error connecting to {url}: {exc}", url=url) from exc

        if response.status_code == 401 and retry > 0 and callable(self.config.token):
            logger.info("Access token rejected, requesting a new one")
            return self.request(method, url, params=params, json=json,
                                retry=retry - 1, refresh_token=True)

        if response.status_code == 429 and retry > 0:
            delay = self._retry_after(response)
            logger.warning(f"Throttled on {method} {url}, retrying in {delay}s")
            self._sleep(delay)
            return self.request(method, url, params=params, json=json, retry=retry - 1)

        if response.status_code >= 400:
            raise api_error_from_response(response)

        return response

    @staticmethod
    def _retry_after(response: requests.Response) -> int:
        retry_after = response.headers.get("Retry-After")
        try:
            delay = int(retry_after) if retry_after else 1
        except ValueError:
            delay = 1
        return max(0, min(delay, MAX_RETRY_AFTER_SECONDS))

    @staticmethod
    def parse_json(response: requests.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"Invalid JSON response from {response.url}",
                status_code=response.status_code,
                url=response.url
            ) from exc

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.parse_json(self.request("GET", url, params=params))

    def get_paged(self, url: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET a list endpoint, following ``nextLink`` until exhausted."""
        items: List[Dict[str, Any]] = []
        next_params = params
        while url:
            payload = self.get(url, params=next_params)
            value = payload.get("value") if isinstance(payload, dict) else None
            if isinstance(value, list):
                items.extend(value)
            url = payload.get("nextLink") if isinstance(payload, dict) else None
            # nextLink already carries the query string
            next_params = None
        return items

    def post(self, url: str, json: Optional[Any] = None,
             params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.request("POST", url, params=params, json=json)

    def put(self, url: str, json: Optional[Any] = None,
            params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.parse_json(self.request("PUT", url, params=params, json=json))

    def delete(self, url: str, params: Optional[Dict[str, Any]] = None) -> CaseInsensitiveDict:
        """Issue a DELETE and return the response headers for polling."""
        return self.request("DELETE", url, params=params).headers

    # ==================== Providers ====================

    def load_provider_versions(self) -> Dict[str, str]:
        """
        Discover the default api-version of every provider resource type and
        merge them into the configuration.

        The newest non-preview version wins; a preview version is used only
        when a type has nothing else.
        """
        url = self.url('subscriptions', self.config.subscription_id, 'providers')
        providers = self.get_paged(url, params={'api-version': PROVIDERS_API_VERSION})

        versions: Dict[str, str] = {}
        for provider in providers:
            namespace = provider.get('namespace')
            if not namespace:
                continue
            for resource_type in provider.get('resourceTypes') or []:
                name = resource_type.get('resourceType')
                api_versions = sorted(resource_type.get('apiVersions') or [], reverse=True)
                if not name or not api_versions:
                    continue
                stable = [v for v in api_versions if 'preview' not in v.lower()]
                versions[f"{namespace}/{name}".lower()] = (stable or api_versions)[0]

        self.config.set_provider_api_versions(versions)
        logger.info(f"Loaded api versions for {len(versions)} provider resource types")
        return versions
