"""
Unit tests for AsyncOperationPoller.
"""

import threading
import pytest
from unittest.mock import Mock

from armrest_sdk.config import PollingConfig
from armrest_sdk.exceptions import (
    NotFoundError,
    OperationCancelledError,
    OperationFailedError,
    PollTimeoutError,
)
from armrest_sdk.poller import (
    AsyncOperationPoller,
    is_failure,
    is_success,
    status_url_from_headers,
)


OP_URL = "https://management.azure.com/operations/op1"


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(mock_config):
    client = Mock()
    client.config = mock_config
    return client


def make_poller(client, clock, **polling):
    config = PollingConfig(**{
        "initial_interval": 1.0,
        "max_interval": 8.0,
        "backoff_factor": 2.0,
        "timeout": 100.0,
        "max_attempts": 10,
        **polling
    })
    return AsyncOperationPoller(client, config=config, clock=clock, sleep=clock.sleep)


class TestStatusHelpers:

    @pytest.mark.parametrize("status", ["Succeeded", "succeeded", "Success"])
    def test_success(self, status):
        assert is_success(status)

    @pytest.mark.parametrize("status", ["Failed", "Canceled", "Cancelled"])
    def test_failure(self, status):
        assert is_failure(status)
        assert not is_success(status)

    def test_in_progress_is_neither(self):
        assert not is_success("InProgress")
        assert not is_failure("InProgress")
        assert not is_success(None)

    def test_async_operation_header_preferred(self):
        headers = {"Location": "https://loc", "azure-asyncoperation": "https://async"}

        assert status_url_from_headers(headers) == "https://async"

    def test_location_fallback(self):
        assert status_url_from_headers({"location": "https://loc"}) == "https://loc"

    def test_no_headers(self):
        assert status_url_from_headers(None) is None
        assert status_url_from_headers({}) is None


class TestWait:
    """Single status query."""

    def test_no_tracking_url_means_succeeded(self, client, clock):
        poller = make_poller(client, clock)

        assert poller.wait({}) == "Succeeded"
        client.request.assert_not_called()

    def test_status_from_body(self, client, clock, make_response):
        client.request.return_value = make_response(200, {"status": "InProgress"})
        poller = make_poller(client, clock)

        assert poller.wait({"Azure-AsyncOperation": OP_URL}) == "InProgress"
        client.request.assert_called_once_with("GET", OP_URL)

    def test_accepted_means_in_progress(self, client, clock, make_response):
        client.request.return_value = make_response(202)
        poller = make_poller(client, clock)

        assert poller.wait({"Location": OP_URL}) == "InProgress"

    def test_provisioning_state_fallback(self, client, clock, make_response):
        client.request.return_value = make_response(200, {"properties": {"provisioningState": "Deleting"}})
        poller = make_poller(client, clock)

        assert poller.wait({"Location": OP_URL}) == "Deleting"

    def test_empty_body_means_succeeded(self, client, clock, make_response):
        client.request.return_value = make_response(200)
        poller = make_poller(client, clock)

        assert poller.wait({"Location": OP_URL}) == "Succeeded"

    def test_defaults_to_client_polling_config(self, client):
        poller = AsyncOperationPoller(client)

        assert poller.config is client.config.polling


class TestWaitForCompletion:

    def test_polls_until_succeeded(self, client, clock, make_response):
        client.request.side_effect = [
            make_response(200, {"status": "InProgress"}),
            make_response(200, {"status": "InProgress"}),
            make_response(200, {"status": "Succeeded"}),
        ]
        poller = make_poller(client, clock)

        assert poller.wait_for_completion({"Azure-AsyncOperation": OP_URL}) == "Succeeded"
        assert clock.sleeps == [1.0, 2.0]

    def test_backoff_capped_at_max_interval(self, client, clock, make_response):
        client.request.side_effect = [make_response(202)] * 5 + [make_response(200, {"status": "Succeeded"})]
        poller = make_poller(client, clock)

        poller.wait_for_completion({"Location": OP_URL})

        assert clock.sleeps == [1.0, 2.0, 4.0, 8.0, 8.0]

    def test_retry_after_honored(self, client, clock, make_response):
        client.request.side_effect = [
            make_response(202, headers={"Retry-After": "5"}),
            make_response(200, {"status": "Succeeded"}),
        ]
        poller = make_poller(client, clock)

        poller.wait_for_completion({"Location": OP_URL})

        assert clock.sleeps == [5.0]

    def test_retry_after_ignored_when_disabled(self, client, clock, make_response):
        client.request.side_effect = [
            make_response(202, headers={"Retry-After": "5"}),
            make_response(200, {"status": "Succeeded"}),
        ]
        poller = make_poller(client, clock, honor_retry_after=False)

        poller.wait_for_completion({"Location": OP_URL})

        assert clock.sleeps == [1.0]

    def test_failed_status_raises(self, client, clock, make_response):
        client.request.return_value = make_response(200, {"status": "Failed"})
        poller = make_poller(client, clock)

        with pytest.raises(OperationFailedError) as exc_info:
            poller.wait_for_completion({"Azure-AsyncOperation": OP_URL})

        assert exc_info.value.status == "Failed"
        assert exc_info.value.status_url == OP_URL

    def test_canceled_status_raises(self, client, clock, make_response):
        client.request.return_value = make_response(200, {"status": "Canceled"})
        poller = make_poller(client, clock)

        with pytest.raises(OperationFailedError):
            poller.wait_for_completion({"Azure-AsyncOperation": OP_URL})

    def test_max_attempts_exhausted(self, client, clock, make_response):
        client.request.return_value = make_response(202)
        poller = make_poller(client, clock, max_attempts=3)

        with pytest.raises(PollTimeoutError) as exc_info:
            poller.wait_for_completion({"Location": OP_URL})

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_status == "InProgress"
        assert client.request.call_count == 3

    def test_timeout_exhausted(self, client, clock, make_response):
        client.request.return_value = make_response(202)
        poller = make_poller(client, clock, initial_interval=4.0, timeout=10.0)

        with pytest.raises(PollTimeoutError):
            poller.wait_for_completion({"Location": OP_URL})

        # The last sleep is shortened to the remaining time
        assert sum(clock.sleeps) == 10.0

    def test_status_query_error_propagates(self, client, clock):
        client.request.side_effect = NotFoundError("operation gone", status_code=404)
        poller = make_poller(client, clock)

        with pytest.raises(NotFoundError):
            poller.wait_for_completion({"Location": OP_URL})

    def test_cancelled_before_first_poll(self, client, clock):
        cancel = threading.Event()
        cancel.set()
        poller = make_poller(client, clock)

        with pytest.raises(OperationCancelledError):
            poller.wait_for_completion({"Location": OP_URL}, cancel_event=cancel)

        client.request.assert_not_called()

    def test_cancelled_while_waiting(self, client, clock, make_response):
        client.request.return_value = make_response(202)
        cancel = Mock()
        cancel.is_set.return_value = False
        cancel.wait.return_value = True
        poller = make_poller(client, clock)

        with pytest.raises(OperationCancelledError):
            poller.wait_for_completion({"Location": OP_URL}, cancel_event=cancel)

        cancel.wait.assert_called_once_with(1.0)
        assert client.request.call_count == 1
