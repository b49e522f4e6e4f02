"""
Polling of asynchronous management operations.

A mutating call (DELETE, POST action) answers immediately with a tracking
URL in its headers. The poller queries that URL until the operation reports
a terminal status, with exponential backoff and a hard deadline.
"""

import logging
import threading
import time
from typing import Callable, Mapping, Optional, Tuple

from .config import PollingConfig
from .exceptions import (
    OperationCancelledError,
    OperationFailedError,
    PollTimeoutError,
)
from .rest import ArmRestClient

logger = logging.getLogger(__name__)

ASYNC_OPERATION_HEADER = 'Azure-AsyncOperation'
LOCATION_HEADER = 'Location'

STATUS_SUCCEEDED = 'Succeeded'
STATUS_IN_PROGRESS = 'InProgress'

FAILURE_STATUSES = frozenset({'failed', 'canceled', 'cancelled'})


def is_success(status: Optional[str]) -> bool:
    """Succeeded, Success, etc."""
    return bool(status) and status.lower().startswith('succ')


def is_failure(status: Optional[str]) -> bool:
    return bool(status) and status.lower() in FAILURE_STATUSES


def status_url_from_headers(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """Tracking URL of an async operation, preferring Azure-AsyncOperation."""
    if not headers:
        return None
    lowered = {k.lower(): v for k, v in headers.items()}
    return lowered.get(ASYNC_OPERATION_HEADER.lower()) or lowered.get(LOCATION_HEADER.lower())


class AsyncOperationPoller:
    """
    Tracks asynchronous operations started by a mutating call.

    ``wait`` performs a single status query; ``wait_for_completion`` loops on
    it within the bounds of a PollingConfig.
    """

    def __init__(
        self,
        client: ArmRestClient,
        config: Optional[PollingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.client = client
        self.config = config or client.config.polling
        self._clock = clock
        self._sleep = sleep

    def wait(self, headers: Optional[Mapping[str, str]]) -> str:
        """
        Query the operation tracked by ``headers`` once and return its status.

        Headers without a tracking URL mean the call completed synchronously.
        """
        return self._poll(headers)[0]

    def _poll(self, headers: Optional[Mapping[str, str]]) -> Tuple[str, Optional[float]]:
        url = status_url_from_headers(headers)
        if not url:
            return STATUS_SUCCEEDED, None

        response = self.client.request('GET', url)
        retry_after = self._retry_after(response.headers)

        if response.status_code == 202:
            return STATUS_IN_PROGRESS, retry_after

        body = {}
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = {}

        status = None
        if isinstance(body, dict):
            status = body.get('status') or (body.get('properties') or {}).get('provisioningState')

        return status or STATUS_SUCCEEDED, retry_after

    @staticmethod
    def _retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
        value = (headers or {}).get('Retry-After')
        if not value:
            return None
        try:
            return max(0.0, float(value))
        except ValueError:
            return None

    def wait_for_completion(
        self,
        headers: Optional[Mapping[str, str]],
        cancel_event: Optional[threading.Event] = None
    ) -> str:
        """
        Poll until the operation reaches a terminal status.

        Returns:
            The success status string (e.g. "Succeeded")

        Raises:
            OperationFailedError: If the operation ends as Failed or Canceled
            PollTimeoutError: If max_attempts or the timeout is exhausted
            OperationCancelledError: If ``cancel_event`` is set while waiting
        """
        url = status_url_from_headers(headers)
        started = self._clock()
        deadline = started + self.config.timeout
        interval = self.config.initial_interval
        attempts = 0
        status: Optional[str] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError("Wait for operation cancelled", status_url=url)

            status, retry_after = self._poll(headers)
            attempts += 1

            if is_success(status):
                return status

            if is_failure(status):
                raise OperationFailedError(
                    f"Operation finished with status {status}",
                    status=status,
                    status_url=url
                )

            now = self._clock()
            remaining = deadline - now
            if attempts >= self.config.max_attempts or remaining <= 0:
                raise PollTimeoutError(
                    f"Operation still {status} after {attempts} polls",
                    status_url=url,
                    attempts=attempts,
                    elapsed_seconds=now - started,
                    last_status=status
                )

            delay = interval
            if self.config.honor_retry_after and retry_after is not None:
                delay = retry_after
            delay = min(delay, self.config.max_interval, remaining)

            logger.debug(f"Operation {status}, polling again in {delay:.1f}s")

            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise OperationCancelledError("Wait for operation cancelled", status_url=url)
            else:
                self._sleep(delay)

            interval = min(interval * self.config.backoff_factor, self.config.max_interval)
