"""
Tests for the server client module.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from vault_bootstrap.exceptions import ServerAPIError
from vault_bootstrap.server_client import VaultServerClient


def make_client(response=None, side_effect=None):
    client = VaultServerClient(vault_addr="https://127.0.0.1:8200", retry_delay=0)
    mock_session = MagicMock()
    if side_effect is not None:
        mock_session.request.side_effect = side_effect
        mock_session.get.side_effect = side_effect
    else:
        mock_session.request.return_value = response
        mock_session.get.return_value = response
    client.session = mock_session
    return client, mock_session


def json_response(body):
    response = MagicMock()
    response.json.return_value = body
    response.content = b"{}"
    return response


class TestVaultServerClient:
    """Tests for VaultServerClient class."""

    def test_init(self):
        """Test client initialization."""
        client = VaultServerClient(vault_addr="https://127.0.0.1:8200/", verify="/ca.pem")

        assert client.vault_addr == "https://127.0.0.1:8200"
        assert client.session.verify == "/ca.pem"

    def test_init_status(self):
        """Test reading the initialization status."""
        client, session = make_client(json_response({"initialized": True}))

        assert client.is_initialized() is True
        call_args = session.request.call_args
        assert call_args[1]["method"] == "GET"
        assert call_args[1]["url"] == "https://127.0.0.1:8200/v1/sys/init"

    def test_seal_status(self):
        """Test reading the seal status."""
        client, session = make_client(json_response({"sealed": False, "t": 3, "n": 5}))

        assert client.is_sealed() is False
        assert session.request.call_args[1]["url"].endswith("/v1/sys/seal-status")

    def test_initialize_sends_share_counts(self):
        """Test the initialize request body."""
        client, session = make_client(
            json_response({"keys": ["a"] * 5, "root_token": "s.root"})
        )

        result = client.initialize(secret_shares=5, secret_threshold=3)

        call_args = session.request.call_args
        assert call_args[1]["method"] == "PUT"
        assert call_args[1]["json"] == {"secret_shares": 5, "secret_threshold": 3}
        assert result["root_token"] == "s.root"

    def test_initialize_is_not_retried(self):
        """Test that a failed initialize is sent exactly once."""
        client, session = make_client(side_effect=requests.ConnectionError("refused"))

        with pytest.raises(ServerAPIError):
            client.initialize(secret_shares=5, secret_threshold=3)

        assert session.request.call_count == 1

    def test_unseal_rejection(self):
        """Test that an HTTP error on unseal raises ServerAPIError with status."""
        response = MagicMock()
        error = requests.HTTPError("400 Client Error", response=MagicMock(status_code=400))
        response.raise_for_status.side_effect = error
        client, session = make_client(response)

        with pytest.raises(ServerAPIError) as excinfo:
            client.unseal("bad-key")

        assert excinfo.value.status_code == 400
        assert session.request.call_count == 1
        assert session.request.call_args[1]["json"] == {"key": "bad-key"}

    @patch("vault_bootstrap.server_client.time.sleep")
    def test_status_requests_are_retried(self, mock_sleep):
        """Test that status reads retry before succeeding."""
        client, session = make_client()
        session.request.side_effect = [
            requests.ConnectionError("refused"),
            json_response({"initialized": False}),
        ]

        assert client.is_initialized() is False
        assert session.request.call_count == 2
        mock_sleep.assert_called_once()

    def test_api_ready_when_both_endpoints_answer(self):
        """Test readiness ignores the response status."""
        response = MagicMock(status_code=503)
        client, session = make_client(response)

        assert client.api_ready() is True
        assert session.get.call_count == 2

    def test_api_not_ready_on_connection_error(self):
        """Test readiness is False while the server is unreachable."""
        client, _ = make_client(side_effect=requests.ConnectionError("refused"))

        assert client.api_ready() is False
