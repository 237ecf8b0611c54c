"""Unit tests for API key authentication and identity resolution."""

from unittest.mock import patch

import pytest

from admission_gate.core.auth import (
    ANONYMOUS_IDENTITY,
    hash_identity,
    parse_api_keys,
    resolve_identity,
    validate_api_key,
)
from admission_gate.core.errors import AuthenticationAppError


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_multiple_keys(self) -> None:
        assert parse_api_keys("key1,key2,key3") == {"key1", "key2", "key3"}

    def test_parse_keys_with_whitespace(self) -> None:
        assert parse_api_keys("key1 , key2  ,  key3") == {"key1", "key2", "key3"}

    @pytest.mark.parametrize("raw", [None, "", "   ,  ,  "])
    def test_parse_empty_inputs(self, raw) -> None:
        assert parse_api_keys(raw) == set()


class TestValidateAPIKey:
    """Test core API key validation logic."""

    @patch("admission_gate.core.auth.settings")
    def test_auth_disabled_yields_anonymous_identity(self, mock_settings) -> None:
        mock_settings.app.api_key_required = False

        assert validate_api_key("any-random-key") == ANONYMOUS_IDENTITY
        assert validate_api_key(None) == ANONYMOUS_IDENTITY

    @patch("admission_gate.core.auth.settings")
    def test_raises_when_no_keys_configured(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"

    @patch("admission_gate.core.auth.settings")
    def test_missing_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key(None)

        assert exc_info.value.code == "missing_api_key"

    @patch("admission_gate.core.auth.settings")
    def test_rejects_invalid_key(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "valid-key"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key("wrong")

        assert exc_info.value.code == "invalid_api_key"

    @patch("admission_gate.core.auth.settings")
    def test_valid_key_maps_to_stable_hashed_identity(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "key-a, key-b"

        identity = validate_api_key("key-a")

        assert identity == f"api_key:{hash_identity('key-a')}"
        assert "key-a" not in identity
        assert validate_api_key("key-a") == identity
        assert validate_api_key("key-b") != identity


class TestResolveIdentityDependency:
    """Test the FastAPI dependency wrapper."""

    @pytest.mark.asyncio
    @patch("admission_gate.core.auth.settings")
    async def test_resolves_identity_from_header(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "key-a"

        assert await resolve_identity(x_api_key="key-a") == f"api_key:{hash_identity('key-a')}"

    @pytest.mark.asyncio
    @patch("admission_gate.core.auth.settings")
    async def test_raises_for_missing_header(self, mock_settings) -> None:
        mock_settings.app.api_key_required = True
        mock_settings.app.api_keys = "key-a"

        with pytest.raises(AuthenticationAppError):
            await resolve_identity(x_api_key=None)


def test_hash_identity_is_short_and_deterministic() -> None:
    assert hash_identity("abc") == hash_identity("abc")
    assert len(hash_identity("abc")) == 16
    assert hash_identity("abc") != hash_identity("abd")
