r"""Unit tests for the retry executor driving single requests."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import Mock

import httpx
import pytest

from resilient_api.backoff import ConstantBackoff
from resilient_api.core import ClientConfig
from resilient_api.exceptions import (
    ClientError,
    ExhaustedRetriesError,
    InvalidResponseError,
    RequestTimeoutError,
    ServerError,
)
from resilient_api.outcome import ContentKind, Failure, FailureKind, Success
from resilient_api.request import RequestDescriptor
from resilient_api.retry import RequestExecutor
from resilient_api.utils.structured_logging import set_correlation_id
from tests.helpers import BASE_URL, Reply, ScriptedBackend


def make_executor(
    backend: ScriptedBackend, config: ClientConfig | None = None, **kwargs: object
) -> RequestExecutor:
    return RequestExecutor(backend.client(), config=config, base_url=BASE_URL, **kwargs)


####################################
#     Tests for build_headers      #
####################################


def test_build_headers_defaults() -> None:
    executor = make_executor(ScriptedBackend())
    headers = executor.build_headers(RequestDescriptor("GET", "/api/songs"))
    assert headers["Accept"] == "application/json"
    assert "Content-Type" not in headers
    assert "Authorization" not in headers


def test_build_headers_json_body() -> None:
    executor = make_executor(ScriptedBackend())
    headers = executor.build_headers(RequestDescriptor("POST", "/api/songs", body={"a": 1}))
    assert headers["Content-Type"] == "application/json"


def test_build_headers_caller_headers_override_defaults() -> None:
    executor = make_executor(ScriptedBackend())
    headers = executor.build_headers(
        RequestDescriptor("POST", "/x", body="a,b", headers={"content-type": "text/csv"})
    )
    assert headers["Content-Type"] == "text/csv"


def test_build_headers_bearer_token() -> None:
    executor = make_executor(ScriptedBackend(), token_provider=lambda: "secret")
    headers = executor.build_headers(RequestDescriptor("GET", "/x"))
    assert headers["Authorization"] == "Bearer secret"


def test_build_headers_skip_auth() -> None:
    provider = Mock(return_value="secret")
    executor = make_executor(ScriptedBackend(), token_provider=provider)
    headers = executor.build_headers(RequestDescriptor("GET", "/x", skip_auth=True))
    assert "Authorization" not in headers
    provider.assert_not_called()


@pytest.mark.parametrize("token", [None, ""])
def test_build_headers_no_token(token: str | None) -> None:
    executor = make_executor(ScriptedBackend(), token_provider=lambda: token)
    assert "Authorization" not in executor.build_headers(RequestDescriptor("GET", "/x"))


def test_build_headers_correlation_id() -> None:
    set_correlation_id("req-42")
    executor = make_executor(ScriptedBackend())
    headers = executor.build_headers(RequestDescriptor("GET", "/x"))
    assert headers["X-Correlation-ID"] == "req-42"


def test_build_headers_correlation_id_caller_wins() -> None:
    set_correlation_id("req-42")
    executor = make_executor(ScriptedBackend())
    headers = executor.build_headers(
        RequestDescriptor("GET", "/x", headers={"X-Correlation-ID": "mine"})
    )
    assert headers["X-Correlation-ID"] == "mine"


#############################################
#     Tests for execute - success paths     #
#############################################


@pytest.mark.asyncio
async def test_execute_json_success(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(200, json={"songs": [1, 2]}))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/api/songs"))
    assert isinstance(outcome, Success)
    assert outcome.payload == {"songs": [1, 2]}
    assert outcome.content_kind is ContentKind.JSON
    assert outcome.status_code == 200
    assert outcome.attempts == 1
    assert backend.call_count == 1
    assert str(backend.requests[0].url) == "http://api.test/api/songs"
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_execute_text_success() -> None:
    backend = ScriptedBackend(Reply(200, text="pong"))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/ping"))
    assert isinstance(outcome, Success)
    assert outcome.payload == "pong"
    assert outcome.content_kind is ContentKind.TEXT


@pytest.mark.asyncio
async def test_execute_empty_success() -> None:
    backend = ScriptedBackend(Reply(204))
    outcome = await make_executor(backend).execute(RequestDescriptor("DELETE", "/api/songs/1"))
    assert isinstance(outcome, Success)
    assert outcome.payload is None
    assert outcome.content_kind is ContentKind.EMPTY


@pytest.mark.asyncio
async def test_execute_invalid_json(mock_asleep: Mock) -> None:
    """Test that a malformed JSON body is a final failure."""
    backend = ScriptedBackend(
        Reply(200, text="{not json", headers={"Content-Type": "application/json"})
    )
    outcome = await make_executor(backend, ClientConfig(max_retries=3)).execute(
        RequestDescriptor("GET", "/api/songs")
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.INVALID_RESPONSE
    assert isinstance(outcome.cause, ValueError)
    assert not outcome.exhausted
    assert backend.call_count == 1
    mock_asleep.assert_not_called()
    with pytest.raises(InvalidResponseError):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_execute_sends_json_body() -> None:
    backend = ScriptedBackend(Reply(201, json={"id": 7}))
    await make_executor(backend).execute(
        RequestDescriptor("POST", "/api/playlists", body={"name": "Road trip"})
    )
    request = backend.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"name": "Road trip"}
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_execute_sends_raw_body() -> None:
    backend = ScriptedBackend(Reply(200))
    await make_executor(backend).execute(RequestDescriptor("PUT", "/raw", body=b"\x00\x01"))
    assert backend.requests[0].content == b"\x00\x01"


@pytest.mark.asyncio
async def test_execute_get_never_sends_body() -> None:
    backend = ScriptedBackend(Reply(200))
    await make_executor(backend).execute(RequestDescriptor("GET", "/x", body={"page": 2}))
    assert backend.requests[0].content == b""


###########################################
#     Tests for execute - retry paths     #
###########################################


@pytest.mark.asyncio
async def test_execute_retries_server_error(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(500), Reply(200, json={"ok": True}))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/api/trending"))
    assert isinstance(outcome, Success)
    assert outcome.payload == {"ok": True}
    assert outcome.attempts == 2
    assert backend.call_count == 2
    mock_asleep.assert_called_once_with(0.3)


@pytest.mark.asyncio
async def test_execute_exponential_delays(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(503), Reply(502), Reply(504), Reply(200))
    outcome = await make_executor(backend, ClientConfig(max_retries=3, base_delay=1.0)).execute(
        RequestDescriptor("GET", "/x")
    )
    assert outcome.ok
    assert [call.args[0] for call in mock_asleep.call_args_list] == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_execute_delay_capped_by_max_delay(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(500), Reply(500), Reply(500), Reply(200))
    await make_executor(
        backend, ClientConfig(max_retries=3, base_delay=1.0, max_delay=1.5)
    ).execute(RequestDescriptor("GET", "/x"))
    assert [call.args[0] for call in mock_asleep.call_args_list] == [1.0, 1.5, 1.5]


@pytest.mark.asyncio
async def test_execute_custom_backoff_strategy(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(500), Reply(200))
    config = ClientConfig(backoff_strategy=ConstantBackoff(delay=0.05))
    await make_executor(backend, config).execute(RequestDescriptor("GET", "/x"))
    mock_asleep.assert_called_once_with(0.05)


@pytest.mark.asyncio
async def test_execute_rate_limited_retry_after(mock_asleep: Mock) -> None:
    """Test that the server's Retry-After hint replaces the backoff delay."""
    backend = ScriptedBackend(Reply(429, headers={"Retry-After": "2"}), Reply(200, json=[]))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/api/search"))
    assert outcome.ok
    mock_asleep.assert_called_once_with(2.0)


@pytest.mark.asyncio
async def test_execute_retry_after_not_capped(mock_asleep: Mock) -> None:
    """Test that the Retry-After hint is honored even above max_delay."""
    backend = ScriptedBackend(Reply(429, headers={"Retry-After": "60"}), Reply(200))
    await make_executor(backend, ClientConfig(max_delay=5.0)).execute(
        RequestDescriptor("GET", "/x")
    )
    mock_asleep.assert_called_once_with(60.0)


@pytest.mark.asyncio
async def test_execute_server_error_ignores_retry_after(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(503, headers={"Retry-After": "2"}), Reply(200))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/x"))
    assert outcome.ok
    mock_asleep.assert_called_once_with(0.3)


@pytest.mark.asyncio
async def test_execute_invalid_retry_after_falls_back(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(429, headers={"Retry-After": "soon"}), Reply(200))
    await make_executor(backend).execute(RequestDescriptor("GET", "/x"))
    mock_asleep.assert_called_once_with(0.3)


@pytest.mark.asyncio
async def test_execute_exhausted(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(500), Reply(502), Reply(503))
    outcome = await make_executor(backend, ClientConfig(max_retries=2)).execute(
        RequestDescriptor("GET", "/api/trending")
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.SERVER_ERROR
    assert outcome.status_code == 503
    assert outcome.attempts == 3
    assert outcome.exhausted
    assert backend.call_count == 3
    assert mock_asleep.call_count == 2
    with pytest.raises(ExhaustedRetriesError, match=r"gave up after 3 attempts") as exc_info:
        outcome.unwrap()
    assert isinstance(exc_info.value.last_error, ServerError)
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_execute_max_retries_zero(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(500), Reply(200))
    outcome = await make_executor(backend, ClientConfig(max_retries=0)).execute(
        RequestDescriptor("GET", "/x")
    )
    assert isinstance(outcome, Failure)
    assert outcome.attempts == 1
    assert not outcome.exhausted
    assert backend.call_count == 1
    mock_asleep.assert_not_called()
    with pytest.raises(ServerError) as exc_info:
        outcome.unwrap()
    assert not isinstance(exc_info.value, ExhaustedRetriesError)


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 409, 422])
async def test_execute_client_error_not_retried(mock_asleep: Mock, status_code: int) -> None:
    backend = ScriptedBackend(Reply(status_code, json={"error": "nope"}), Reply(200))
    outcome = await make_executor(backend, ClientConfig(max_retries=3)).execute(
        RequestDescriptor("POST", "/api/playlists", body={"name": ""})
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.CLIENT_ERROR
    assert outcome.status_code == status_code
    assert not outcome.exhausted
    assert backend.call_count == 1
    mock_asleep.assert_not_called()
    with pytest.raises(ClientError, match=rf"failed with status {status_code}") as exc_info:
        outcome.unwrap()
    assert "nope" in exc_info.value.body


@pytest.mark.asyncio
async def test_execute_redirect_is_invalid_response(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(304))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/x"))
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.INVALID_RESPONSE
    assert backend.call_count == 1
    mock_asleep.assert_not_called()


@pytest.mark.asyncio
async def test_execute_skip_retry(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(Reply(503), Reply(200))
    outcome = await make_executor(backend, ClientConfig(max_retries=5)).execute(
        RequestDescriptor("GET", "/x", skip_retry=True)
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.SERVER_ERROR
    assert not outcome.exhausted
    assert backend.call_count == 1
    mock_asleep.assert_not_called()
    with pytest.raises(ServerError):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_execute_network_error_retried(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(httpx.ConnectError("connection refused"), Reply(200, json={}))
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/x"))
    assert isinstance(outcome, Success)
    assert outcome.attempts == 2
    mock_asleep.assert_called_once_with(0.3)


@pytest.mark.asyncio
async def test_execute_network_error_exhausted(mock_asleep: Mock) -> None:
    error = httpx.ConnectError("connection refused")
    backend = ScriptedBackend(error)
    outcome = await make_executor(backend).execute(RequestDescriptor("GET", "/x"))
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.NETWORK_ERROR
    assert outcome.status_code is None
    assert outcome.cause is error
    assert outcome.exhausted
    assert backend.call_count == 2


@pytest.mark.asyncio
async def test_execute_transport_timeout(mock_asleep: Mock) -> None:
    backend = ScriptedBackend(httpx.ReadTimeout("read timed out"))
    outcome = await make_executor(backend, ClientConfig(max_retries=0)).execute(
        RequestDescriptor("GET", "/x")
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.TIMEOUT
    with pytest.raises(RequestTimeoutError, match=r"timed out after 10.0s"):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_execute_attempt_deadline() -> None:
    """Test that an attempt outliving its deadline is abandoned."""
    backend = ScriptedBackend(Reply(200), gate=asyncio.Event())
    outcome = await make_executor(backend, ClientConfig(max_retries=0)).execute(
        RequestDescriptor("GET", "/slow", timeout=0.01)
    )
    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.TIMEOUT
    assert outcome.message.endswith("timed out after 0.01s")
    assert backend.call_count == 1


@pytest.mark.asyncio
async def test_execute_token_read_every_attempt(mock_asleep: Mock) -> None:
    tokens = iter(["old-token", "new-token"])
    backend = ScriptedBackend(Reply(500), Reply(200))
    await make_executor(backend, token_provider=lambda: next(tokens)).execute(
        RequestDescriptor("GET", "/x")
    )
    assert [request.headers["Authorization"] for request in backend.requests] == [
        "Bearer old-token",
        "Bearer new-token",
    ]


#####################################
#     Tests for execute callbacks   #
#####################################


@pytest.mark.asyncio
async def test_execute_callbacks_on_success(mock_asleep: Mock) -> None:
    on_request, on_retry, on_success, on_failure = Mock(), Mock(), Mock(), Mock()
    config = ClientConfig(
        on_request=on_request, on_retry=on_retry, on_success=on_success, on_failure=on_failure
    )
    backend = ScriptedBackend(Reply(500), Reply(200))
    await make_executor(backend, config).execute(RequestDescriptor("GET", "/x"))

    assert [call.args[0].attempt for call in on_request.call_args_list] == [1, 2]
    retry_info = on_retry.call_args.args[0]
    assert retry_info.attempt == 2
    assert retry_info.wait_time == 0.3
    assert retry_info.kind is FailureKind.SERVER_ERROR
    assert retry_info.status_code == 500
    success_info = on_success.call_args.args[0]
    assert success_info.attempt == 2
    assert success_info.url == "http://api.test/x"
    assert success_info.response.status_code == 200
    on_failure.assert_not_called()


@pytest.mark.asyncio
async def test_execute_callbacks_on_failure(mock_asleep: Mock) -> None:
    on_success, on_failure = Mock(), Mock()
    config = ClientConfig(on_success=on_success, on_failure=on_failure)
    backend = ScriptedBackend(Reply(404))
    await make_executor(backend, config).execute(RequestDescriptor("DELETE", "/api/songs/1"))

    on_success.assert_not_called()
    failure_info = on_failure.call_args.args[0]
    assert failure_info.method == "DELETE"
    assert failure_info.attempt == 1
    assert failure_info.kind is FailureKind.CLIENT_ERROR
    assert failure_info.status_code == 404
    assert isinstance(failure_info.error, ClientError)
