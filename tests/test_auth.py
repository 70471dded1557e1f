"""
Unit tests for the authentication module.

Tests the GoogleAuth class for OAuth2 authentication and credential
management of the Google account being synced.
"""

import json
import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from gcontact_notion_sync.auth.google_auth import (
    SCOPES,
    AuthenticationError,
    GoogleAuth,
)
from gcontact_notion_sync.utils.paths import CONFIG_DIR_ENV_VAR, DEFAULT_CONFIG_DIR


def write_client_secrets(config_dir):
    (config_dir / "credentials.json").write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "test_client",
                    "client_secret": "test_secret",
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                }
            }
        )
    )


class TestGoogleAuthInitialization:
    """Tests for GoogleAuth initialization."""

    def test_default_config_dir(self, monkeypatch):
        """Test that default config dir is used when no argument provided."""
        monkeypatch.delenv(CONFIG_DIR_ENV_VAR, raising=False)
        auth = GoogleAuth()
        assert auth.config_dir == DEFAULT_CONFIG_DIR.expanduser().resolve()

    def test_custom_config_dir_via_argument(self, tmp_path):
        auth = GoogleAuth(config_dir=tmp_path / "custom_config")
        assert auth.config_dir == tmp_path / "custom_config"

    def test_config_dir_from_environment(self, tmp_path):
        with patch.dict(os.environ, {CONFIG_DIR_ENV_VAR: str(tmp_path)}):
            auth = GoogleAuth()
            assert auth.config_dir == tmp_path.resolve()

    def test_file_paths(self, tmp_path):
        auth = GoogleAuth(config_dir=tmp_path)
        assert auth.credentials_path == tmp_path / "credentials.json"
        assert auth.token_path == tmp_path / "token.json"

    def test_ensure_config_dir_creates_with_permissions(self, tmp_path):
        config_dir = tmp_path / "new_config"
        auth = GoogleAuth(config_dir=config_dir)

        auth._ensure_config_dir()

        assert config_dir.exists()
        assert config_dir.stat().st_mode & 0o777 == 0o700


class TestCredentialLoading:
    """Tests for credential loading from the token file."""

    @pytest.fixture
    def auth(self, tmp_path):
        return GoogleAuth(config_dir=tmp_path)

    def test_load_credentials_no_file(self, auth):
        assert auth._load_credentials() is None

    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_load_credentials_from_file(self, mock_creds_class, auth, tmp_path):
        token_path = tmp_path / "token.json"
        token_path.write_text('{"token": "test"}')
        mock_creds = MagicMock()
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        result = auth._load_credentials()

        mock_creds_class.from_authorized_user_file.assert_called_once_with(
            str(token_path), SCOPES
        )
        assert result == mock_creds

    def test_load_credentials_invalid_json(self, auth, tmp_path):
        (tmp_path / "token.json").write_text("invalid json {{{")
        assert auth._load_credentials() is None


class TestCredentialSaving:
    """Tests for credential saving."""

    @pytest.fixture
    def auth(self, tmp_path):
        return GoogleAuth(config_dir=tmp_path)

    def test_save_credentials_creates_file(self, auth, tmp_path):
        mock_creds = MagicMock()
        mock_creds.to_json.return_value = '{"token": "test"}'

        auth._save_credentials(mock_creds)

        assert json.loads((tmp_path / "token.json").read_text()) == {"token": "test"}

    def test_save_credentials_sets_permissions(self, auth, tmp_path):
        """Test that saved token file has secure permissions."""
        mock_creds = MagicMock()
        mock_creds.to_json.return_value = '{"token": "test"}'

        auth._save_credentials(mock_creds)

        assert (tmp_path / "token.json").stat().st_mode & 0o777 == 0o600

    def test_save_credentials_with_email(self, auth, tmp_path):
        mock_creds = MagicMock()
        mock_creds.to_json.return_value = '{"token": "test"}'

        auth._save_credentials(mock_creds, email="jane@example.com")

        data = json.loads((tmp_path / "token.json").read_text())
        assert data["email"] == "jane@example.com"

    def test_save_credentials_keeps_stored_email(self, auth, tmp_path):
        """Test that a refresh doesn't lose the stored email."""
        (tmp_path / "token.json").write_text(
            '{"token": "old", "email": "jane@example.com"}'
        )
        mock_creds = MagicMock()
        mock_creds.to_json.return_value = '{"token": "new"}'

        auth._save_credentials(mock_creds)

        data = json.loads((tmp_path / "token.json").read_text())
        assert data == {"token": "new", "email": "jane@example.com"}


class TestGetCredentials:
    """Tests for get_credentials."""

    @pytest.fixture
    def auth(self, tmp_path):
        (tmp_path / "token.json").write_text('{"token": "test"}')
        return GoogleAuth(config_dir=tmp_path)

    def test_no_token_file(self, tmp_path):
        assert GoogleAuth(config_dir=tmp_path / "empty").get_credentials() is None

    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_valid_credentials(self, mock_creds_class, auth):
        mock_creds = MagicMock()
        mock_creds.valid = True
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        assert auth.get_credentials() == mock_creds

    @patch("gcontact_notion_sync.auth.google_auth.Request")
    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_expired_credentials_are_refreshed(
        self, mock_creds_class, mock_request, auth, tmp_path
    ):
        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = "refresh_token"
        mock_creds.to_json.return_value = '{"refreshed": true}'
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        result = auth.get_credentials()

        mock_creds.refresh.assert_called_once()
        assert result == mock_creds
        assert json.loads((tmp_path / "token.json").read_text()) == {
            "refreshed": True
        }

    @patch("gcontact_notion_sync.auth.google_auth.Request")
    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_refresh_failure_returns_none(self, mock_creds_class, mock_request, auth):
        from google.auth.exceptions import RefreshError

        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = "refresh_token"
        mock_creds.refresh.side_effect = RefreshError("Failed")
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        assert auth.get_credentials() is None

    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_expired_without_refresh_token(self, mock_creds_class, auth):
        mock_creds = MagicMock()
        mock_creds.valid = False
        mock_creds.expired = True
        mock_creds.refresh_token = None
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        assert auth.get_credentials() is None
        assert auth.is_authenticated() is False


class TestAuthenticate:
    """Tests for authenticate method."""

    @pytest.fixture
    def auth(self, tmp_path):
        write_client_secrets(tmp_path)
        return GoogleAuth(config_dir=tmp_path)

    def test_missing_credentials_file(self, tmp_path):
        auth = GoogleAuth(config_dir=tmp_path)

        with pytest.raises(FileNotFoundError, match="OAuth credentials file not found"):
            auth.authenticate()

    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_uses_existing_credentials(self, mock_creds_class, auth, tmp_path):
        (tmp_path / "token.json").write_text('{"token": "existing"}')
        mock_creds = MagicMock()
        mock_creds.valid = True
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        assert auth.authenticate() == mock_creds

    @patch.object(GoogleAuth, "_fetch_user_email", return_value="jane@example.com")
    @patch("gcontact_notion_sync.auth.google_auth.InstalledAppFlow")
    def test_starts_oauth_flow(self, mock_flow_class, mock_fetch, auth, tmp_path):
        mock_flow = MagicMock()
        mock_new_creds = MagicMock()
        mock_new_creds.to_json.return_value = '{"new": true}'
        mock_flow.run_local_server.return_value = mock_new_creds
        mock_flow_class.from_client_secrets_file.return_value = mock_flow

        result = auth.authenticate()

        mock_flow_class.from_client_secrets_file.assert_called_once_with(
            str(tmp_path / "credentials.json"), SCOPES
        )
        mock_flow.run_local_server.assert_called_once_with(port=0)
        assert result == mock_new_creds
        assert auth.get_account_email() == "jane@example.com"

    @patch.object(GoogleAuth, "_fetch_user_email", return_value=None)
    @patch("gcontact_notion_sync.auth.google_auth.InstalledAppFlow")
    @patch("gcontact_notion_sync.auth.google_auth.Credentials")
    def test_force_reauth(
        self, mock_creds_class, mock_flow_class, mock_fetch, auth, tmp_path
    ):
        (tmp_path / "token.json").write_text('{"token": "existing"}')
        mock_creds = MagicMock()
        mock_creds.valid = True
        mock_creds_class.from_authorized_user_file.return_value = mock_creds

        mock_flow = MagicMock()
        mock_new_creds = MagicMock()
        mock_new_creds.to_json.return_value = '{"new": true}'
        mock_flow.run_local_server.return_value = mock_new_creds
        mock_flow_class.from_client_secrets_file.return_value = mock_flow

        result = auth.authenticate(force_reauth=True)

        mock_flow.run_local_server.assert_called_once()
        assert result == mock_new_creds

    @patch("gcontact_notion_sync.auth.google_auth.InstalledAppFlow")
    def test_oauth_flow_failure(self, mock_flow_class, auth):
        mock_flow = MagicMock()
        mock_flow.run_local_server.side_effect = Exception("OAuth failed")
        mock_flow_class.from_client_secrets_file.return_value = mock_flow

        with pytest.raises(AuthenticationError, match="Failed to authenticate"):
            auth.authenticate(force_reauth=True)


class TestFetchUserEmail:
    """Tests for the userinfo lookup."""

    @patch("gcontact_notion_sync.auth.google_auth.requests.get")
    def test_returns_email(self, mock_get, tmp_path):
        mock_get.return_value.json.return_value = {"email": "jane@example.com"}
        creds = MagicMock(token="abc")

        auth = GoogleAuth(config_dir=tmp_path, auth_timeout=5)

        assert auth._fetch_user_email(creds) == "jane@example.com"
        assert mock_get.call_args.kwargs["timeout"] == 5
        assert mock_get.call_args.kwargs["headers"] == {
            "Authorization": "Bearer abc"
        }

    @patch("gcontact_notion_sync.auth.google_auth.requests.get")
    def test_network_error_returns_none(self, mock_get, tmp_path):
        mock_get.side_effect = requests.ConnectionError("offline")

        auth = GoogleAuth(config_dir=tmp_path)

        assert auth._fetch_user_email(MagicMock()) is None


class TestClearAndStatus:
    """Tests for clear_credentials and get_auth_status."""

    def test_clear_credentials_removes_token(self, tmp_path):
        (tmp_path / "token.json").write_text("{}")
        auth = GoogleAuth(config_dir=tmp_path)

        assert auth.clear_credentials() is True
        assert not (tmp_path / "token.json").exists()

    def test_clear_credentials_without_token(self, tmp_path):
        assert GoogleAuth(config_dir=tmp_path).clear_credentials() is False

    def test_auth_status_unauthenticated(self, tmp_path):
        status = GoogleAuth(config_dir=tmp_path).get_auth_status()

        assert status == {
            "authenticated": False,
            "token_path": str(tmp_path / "token.json"),
            "token_exists": False,
            "credentials_path": str(tmp_path / "credentials.json"),
            "credentials_exist": False,
            "config_dir": str(tmp_path),
        }

    def test_account_email_from_token_file(self, tmp_path):
        (tmp_path / "token.json").write_text('{"email": "jane@example.com"}')
        assert GoogleAuth(config_dir=tmp_path).get_account_email() == "jane@example.com"

    def test_account_email_without_token(self, tmp_path):
        assert GoogleAuth(config_dir=tmp_path).get_account_email() is None
