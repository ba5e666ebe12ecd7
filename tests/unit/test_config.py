import os
from unittest.mock import patch

import pytest

from config.config import Settings, _mask_key, get_settings


@pytest.mark.unit
def test_settings_defaults():
    """Test that settings have expected default values."""
    # Clear cache to ensure fresh settings
    get_settings.cache_clear()

    # Patch env to be empty to test defaults
    with patch.dict(os.environ, {}, clear=True):
        # Pass _env_file=None to ignore .env file
        settings = Settings(_env_file=None)
        assert settings.OPENAI_API_KEY is None
        assert settings.EMBEDDING_MODEL == "text-embedding-3-small"
        assert settings.EMBEDDING_DIMENSION == 1536
        assert settings.EMBEDDING_MAX_BATCH == 2048
        assert settings.CHAT_MODEL == "gpt-4o-mini"
        assert settings.CHUNK_SIZE == 1000
        assert settings.CHUNK_OVERLAP == 200
        assert settings.MATCH_THRESHOLD == 0.1
        assert settings.MATCH_COUNT == 5
        assert settings.CONTEXT_MAX_TOKENS == 5000
        assert settings.SUMMARY_MAX_TOKENS == 1500
        assert settings.CHAT_MAX_TOKENS == 500
        assert settings.HISTORY_LIMIT == 10
        assert settings.LOG_LEVEL == "INFO"
        assert settings.TIMEOUT == 60


@pytest.mark.unit
def test_settings_env_override():
    """Test that environment variables override defaults."""
    env = {
        "LOG_LEVEL": "DEBUG",
        "TIMEOUT": "30",
        "OPENAI_API_KEY": "test_key",
        "MATCH_COUNT": "8",
        "CHAT_MODEL": "gpt-4o",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.TIMEOUT == 30
        assert settings.OPENAI_API_KEY == "test_key"
        assert settings.MATCH_COUNT == 8
        assert settings.CHAT_MODEL == "gpt-4o"


@pytest.mark.unit
def test_settings_reject_out_of_range_threshold():
    with patch.dict(os.environ, {"MATCH_THRESHOLD": "1.5"}, clear=True):
        with pytest.raises(ValueError):
            Settings(_env_file=None)


@pytest.mark.unit
def test_validate_keys_logging(caplog):
    """Test that validate_keys logs warnings for missing keys."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)
        settings.validate_keys()

    assert "OPENAI_API_KEY is not set" in caplog.text
    assert "Chat model: gpt-4o-mini" in caplog.text


@pytest.mark.unit
def test_validate_keys_no_warning_when_set(caplog):
    """Test that validate_keys does not log warnings when keys are present."""
    with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-present-1234"}, clear=True):
        settings = Settings(_env_file=None)
        settings.validate_keys()

    assert "OPENAI_API_KEY is not set" not in caplog.text
    assert "sk-present-1234" not in caplog.text


@pytest.mark.unit
def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()


@pytest.mark.unit
def test_mask_key():
    assert _mask_key(None) == "<missing>"
    assert _mask_key("abc") == "a**"
    assert _mask_key("sk-1234567890") == "sk-1*****7890"
