"""Tests for KeychainSettingsSource integration in config.py."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from config import KeychainSettingsSource, Settings
from services.credential_manager import CREDENTIAL_KEYS

# Environment variables that would interfere with Settings defaults if
# set in the test runner's shell.  We clear them for isolation.
_ENV_VARS_TO_CLEAR = {
    "DATABASE_URL",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "PLAID_ENVIRONMENT",
    "PLAID_PRODUCTS",
    "PLAID_COUNTRY_CODES",
    "SYNC_MAX_PAGES",
    *CREDENTIAL_KEYS,
}


def _clean_env():
    """Return a dict suitable for ``os.environ`` patching that removes
    any variables the Settings class reads."""
    return {k: v for k, v in os.environ.items() if k not in _ENV_VARS_TO_CLEAR}


class TestKeychainSettingsSource:
    """Test the KeychainSettingsSource pydantic-settings source."""

    def test_keychain_value_overrides_default(self):
        """A credential in keychain should override the empty-string default."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.side_effect = lambda key: (
                "keychain-value" if key == "PLAID_CLIENT_ID" else None
            )
            s = Settings(_env_file=None)
            assert s.PLAID_CLIENT_ID == "keychain-value"
            assert s.PLAID_SECRET == ""

    def test_init_value_overrides_keychain(self):
        """An explicit init value should override keychain."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.return_value = "keychain-value"
            s = Settings(_env_file=None, PLAID_SECRET="init-value")
            assert s.PLAID_SECRET == "init-value"

    def test_non_credential_fields_skip_keychain(self):
        """Fields not in CREDENTIAL_KEYS should not hit keychain."""
        with (
            patch.dict(os.environ, _clean_env(), clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.return_value = "should-not-be-used"
            s = Settings(_env_file=None)
            assert s.DATABASE_URL == "sqlite:///./plaid_ledger.db"
            called_keys = [call.args[0] for call in mock_get.call_args_list]
            assert "DATABASE_URL" not in called_keys
            assert "PLAID_ENVIRONMENT" not in called_keys
            assert "LOG_LEVEL" not in called_keys

    def test_env_fallback_when_keychain_empty(self):
        """When keychain returns None, the .env/default chain still works."""
        env = _clean_env()
        env["PLAID_SECRET"] = "from-env"
        with (
            patch.dict(os.environ, env, clear=True),
            patch("config.get_credential", return_value=None),
        ):
            s = Settings(_env_file=None)
            assert s.PLAID_CLIENT_ID == ""
            assert s.PLAID_SECRET == "from-env"

    def test_source_is_in_priority_chain(self):
        """KeychainSettingsSource appears in the customised source tuple."""
        sources = Settings.settings_customise_sources(
            Settings,
            init_settings=object(),
            env_settings=object(),
            dotenv_settings=object(),
            file_secret_settings=object(),
        )
        source_types = [type(s) for s in sources]
        assert KeychainSettingsSource in source_types
        assert source_types.index(KeychainSettingsSource) == 1

    def test_keychain_overrides_env_var(self):
        """Keychain has higher priority than env vars in the source chain."""
        env = _clean_env()
        env["PLAID_CLIENT_ID"] = "from-env"
        with (
            patch.dict(os.environ, env, clear=True),
            patch("config.get_credential") as mock_get,
        ):
            mock_get.side_effect = lambda key: (
                "from-keychain" if key == "PLAID_CLIENT_ID" else None
            )
            s = Settings(_env_file=None)
            assert s.PLAID_CLIENT_ID == "from-keychain"


class TestPlaidSettings:
    def _settings(self, **env):
        clean = _clean_env()
        clean.update(env)
        with (
            patch.dict(os.environ, clean, clear=True),
            patch("config.get_credential", return_value=None),
        ):
            return Settings(_env_file=None)

    def test_defaults(self):
        s = self._settings()
        assert s.PLAID_ENVIRONMENT == "sandbox"
        assert s.plaid_products == ["transactions"]
        assert s.plaid_country_codes == ["US"]
        assert s.SYNC_MAX_PAGES == 1000

    def test_csv_lists_are_split_and_trimmed(self):
        s = self._settings(PLAID_PRODUCTS="transactions, auth,", PLAID_COUNTRY_CODES="us,ca")
        assert s.plaid_products == ["transactions", "auth"]
        assert s.plaid_country_codes == ["US", "CA"]

    def test_zero_max_pages_allowed(self):
        assert self._settings(SYNC_MAX_PAGES="0").SYNC_MAX_PAGES == 0

    def test_negative_max_pages_rejected(self):
        with pytest.raises(ValidationError, match="SYNC_MAX_PAGES"):
            self._settings(SYNC_MAX_PAGES="-1")
