"""
Tests for configuration management.
"""

import pytest

from shared.config import ConfigError, Settings

BASE_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SERVICE_KEY": "test_service_key_1234567890123456789012345678901234567890",
    "REDIS_URL": "redis://localhost:6379",
    "OPENAI_API_KEY": "sk-test123456789012345678901234567890",
    "REPLICATE_API_TOKEN": "r8_test123456789012345678901234567890",
}


@pytest.fixture()
def base_env(monkeypatch):
    for key, value in BASE_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("ENVIRONMENT", "REDIS_QUEUE_NAME", "STORAGE_SCHEME", "REASONING_BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_settings_loads_valid_env(tmp_path, base_env):
    """Test that settings load from an .env file and apply defaults."""
    env_file = tmp_path / ".env"
    env_file.write_text("ENVIRONMENT=staging\nLOG_LEVEL=DEBUG\n")

    settings = Settings(_env_file=str(env_file))

    assert settings.supabase_url == "https://test.supabase.co"
    assert settings.environment == "staging"
    assert settings.log_level == "DEBUG"
    assert settings.reasoning_model == "gemini-2.5-flash-lite"
    assert settings.reasoning_seed == 0
    assert settings.job_ttl_seconds == 5400
    assert settings.compiler_max_attempts == 3
    assert settings.storage_scheme == "gs"


def test_queue_name_is_environment_aware(base_env):
    base_env.setenv("ENVIRONMENT", "production")

    assert Settings(_env_file=None).queue_name == "media_jobs_production"


def test_queue_name_override(base_env):
    base_env.setenv("REDIS_QUEUE_NAME", "custom_queue")

    assert Settings(_env_file=None).queue_name == "custom_queue"


@pytest.mark.parametrize(
    "key,value,message",
    [
        ("SUPABASE_URL", "invalid-url", "SUPABASE_URL must be a valid HTTP/HTTPS URL"),
        ("REDIS_URL", "http://localhost:6379", "REDIS_URL must start with redis://"),
        ("OPENAI_API_KEY", "   ", "API keys must not be empty"),
        ("REASONING_BASE_URL", "localhost:8000", "REASONING_BASE_URL must be a valid"),
        ("COMPILER_MAX_ATTEMPTS", "0", "Value must be >= 1"),
        ("JOB_TTL_SECONDS", "0", "Duration must be positive"),
        ("STORAGE_SCHEME", "g://", "STORAGE_SCHEME must be alphanumeric"),
    ],
)
def test_invalid_values_raise_config_error(base_env, key, value, message):
    base_env.setenv(key, value)

    with pytest.raises(ConfigError, match=message):
        Settings(_env_file=None)


def test_storage_scheme_is_normalized(base_env):
    base_env.setenv("STORAGE_SCHEME", " S3 ")

    assert Settings(_env_file=None).storage_scheme == "s3"


def test_empty_reasoning_base_url_means_default(base_env):
    base_env.setenv("REASONING_BASE_URL", "")

    assert Settings(_env_file=None).reasoning_base_url is None
