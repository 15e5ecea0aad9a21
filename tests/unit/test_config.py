"""
Unit tests for configuration module
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sessionstore.core.config import Settings

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit


class TestSettings:
    """Test session store settings"""

    def test_default_settings(self):
        """Test default configuration values"""
        settings = Settings(_env_file=None)

        assert settings.DATABASE_URL == "sqlite+aiosqlite:///./data/sessions.db"
        assert settings.SCHEMA_NAME == "session_store"
        assert settings.TABLE_NAME == "session"
        assert settings.POOL_SIZE == 5
        assert settings.MAX_OVERFLOW == 10
        assert settings.POOL_TIMEOUT == 30.0
        assert settings.SESSION_ID_BYTES == 16
        assert settings.CREATE_MAX_ATTEMPTS == 10
        assert settings.ENCRYPTION_KEYS == []
        assert settings.encryption_enabled is False
        assert settings.LOG_LEVEL == "INFO"

    def test_environment_prefix(self):
        env = {
            "SESSION_STORE_DATABASE_URL": "postgresql+asyncpg://app@db/app",
            "SESSION_STORE_POOL_SIZE": "20",
            "SESSION_STORE_TABLE_NAME": "web_session",
        }
        with patch.dict(os.environ, env):
            settings = Settings(_env_file=None)

        assert settings.DATABASE_URL == "postgresql+asyncpg://app@db/app"
        assert settings.POOL_SIZE == 20
        assert settings.TABLE_NAME == "web_session"

    def test_encryption_keys_comma_separated(self):
        with patch.dict(os.environ, {"SESSION_STORE_ENCRYPTION_KEYS": "key-one, key-two"}):
            settings = Settings(_env_file=None)

        assert settings.ENCRYPTION_KEYS == ["key-one", "key-two"]
        assert settings.encryption_enabled is True

    def test_encryption_keys_json_list(self):
        with patch.dict(os.environ, {"SESSION_STORE_ENCRYPTION_KEYS": '["key-one", "key-two"]'}):
            settings = Settings(_env_file=None)

        assert settings.ENCRYPTION_KEYS == ["key-one", "key-two"]

    def test_empty_encryption_keys(self):
        with patch.dict(os.environ, {"SESSION_STORE_ENCRYPTION_KEYS": ""}):
            settings = Settings(_env_file=None)

        assert settings.ENCRYPTION_KEYS == []

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


class TestSettingsValidation:
    @pytest.mark.parametrize("name", ["", "9lives", "my-table", "users;drop", "white space"])
    def test_invalid_table_name(self, name):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, TABLE_NAME=name)

    @pytest.mark.parametrize("name", ["_private", "sessions$v2", "séance", "セッション"])
    def test_unicode_and_dollar_identifiers_accepted(self, name):
        assert Settings(_env_file=None, SCHEMA_NAME=name).SCHEMA_NAME == name

    def test_short_session_ids_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SESSION_ID_BYTES=8)

    def test_zero_create_attempts_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, CREATE_MAX_ATTEMPTS=0)

    def test_pool_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, POOL_TIMEOUT=0)

    def test_secret_requires_salt(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENCRYPTION_SECRET="passphrase")

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="chatty")
