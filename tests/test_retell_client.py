"""Tests for the RetellClient service."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from pharmacy_voice.services.retell_client import (
    INITIAL_BACKOFF_SECONDS,
    MAX_RETRIES,
    RetellAPIError,
    RetellClient,
)


def _mock_response(data, status_code: int = 200) -> MagicMock:
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = data
    mock.text = str(data)
    return mock


class TestCreateWebCall:
    def test_returns_call_details(self):
        client = RetellClient(api_key="test-key")
        payload = {"call_id": "call_1", "access_token": "tok", "agent_id": "agent_1"}

        with patch.object(client._client, "request", return_value=_mock_response(payload)) as mock_req:
            data = client.create_web_call("agent_1")

        assert data["access_token"] == "tok"
        method, path = mock_req.call_args[0]
        assert (method, path) == ("POST", "/v2/create-web-call")
        assert mock_req.call_args[1]["json"]["agent_id"] == "agent_1"
        assert "metadata" in mock_req.call_args[1]["json"]

    def test_sends_bearer_token(self):
        client = RetellClient(api_key="secret-key")
        assert client._client.headers["Authorization"] == "Bearer secret-key"

    def test_timeout_is_not_retried(self):
        client = RetellClient(api_key="test-key")
        with patch.object(
            client._client, "request", side_effect=httpx.TimeoutException("timeout"),
        ) as mock_req:
            with pytest.raises(RetellAPIError) as exc_info:
                client.create_web_call("agent_1")
        assert mock_req.call_count == 1
        assert exc_info.value.retryable is True

    def test_client_error_carries_status(self):
        client = RetellClient(api_key="test-key")
        with patch.object(
            client._client, "request", return_value=_mock_response({"error": "bad"}, 422),
        ):
            with pytest.raises(RetellAPIError) as exc_info:
                client.create_web_call("agent_1")
        assert exc_info.value.status_code == 422
        assert exc_info.value.retryable is False


class TestListAgents:
    def test_returns_agent_list(self):
        client = RetellClient(api_key="test-key")
        agents = [{"agent_id": "a1", "agent_name": "Pharmacy", "voice_id": "v1"}]
        with patch.object(client._client, "request", return_value=_mock_response(agents)):
            assert client.list_agents() == agents

    @patch("pharmacy_voice.services.retell_client.time.sleep")
    def test_retries_on_server_error(self, mock_sleep):
        client = RetellClient(api_key="test-key")
        with patch.object(
            client._client,
            "request",
            side_effect=[_mock_response({}, 503), _mock_response([])],
        ):
            assert client.list_agents() == []
        mock_sleep.assert_called_once_with(INITIAL_BACKOFF_SECONDS)

    @patch("pharmacy_voice.services.retell_client.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        client = RetellClient(api_key="test-key")
        with patch.object(
            client._client, "request", side_effect=httpx.ConnectError("refused"),
        ) as mock_req:
            with pytest.raises(RetellAPIError):
                client.list_agents()
        assert mock_req.call_count == MAX_RETRIES
        assert mock_sleep.call_count == MAX_RETRIES - 1

    def test_does_not_retry_client_errors(self):
        client = RetellClient(api_key="test-key")
        with patch.object(
            client._client, "request", return_value=_mock_response({}, 401),
        ) as mock_req:
            with pytest.raises(RetellAPIError):
                client.list_agents()
        assert mock_req.call_count == 1


class TestMissingKey:
    def test_missing_key_raises_oserror(self, monkeypatch):
        monkeypatch.delenv("RETELL_API_KEY", raising=False)
        with pytest.raises(OSError, match="RETELL_API_KEY"):
            RetellClient()
