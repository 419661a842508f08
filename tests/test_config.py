"""Tests for configuration loading, tier policies and environment variables."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from jobping.config import (
    TIER_CONFIGS,
    AppConfig,
    ConfigurationError,
    Tier,
    UnknownTierError,
    get_matching_config,
    load_config,
    load_environment_config,
    parse_config_dict,
    resolve_tier,
)
from jobping.config.environment import DEFAULT_DATABASE_URL
from jobping.config.validators import check_for_warnings

ENV_VARS = ("OPENAI_API_KEY", "DATABASE_URL", "LOG_LEVEL", "ENVIRONMENT")


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the loader reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestTierPolicies:
    """Test the fixed per-tier matching policies."""

    def test_free_policy(self):
        config = get_matching_config(Tier.FREE)

        assert config.max_matches == 5
        assert config.job_freshness_days == 30
        assert config.use_ai is True
        assert config.max_jobs_for_ai == 10
        assert config.fallback_threshold == 3
        assert config.max_jobs_to_fetch == 5000

    @pytest.mark.parametrize("tier", [Tier.PREMIUM, Tier.PREMIUM_PENDING])
    def test_premium_policies(self, tier):
        config = get_matching_config(tier)

        assert config.tier == tier
        assert config.max_matches == 15
        assert config.job_freshness_days == 7
        assert config.max_jobs_for_ai == 30
        assert config.fallback_threshold == 5
        assert config.max_jobs_to_fetch == 10000

    def test_accepts_string_labels(self):
        assert get_matching_config("premium").tier == Tier.PREMIUM
        assert get_matching_config(" FREE ").tier == Tier.FREE

    def test_unknown_tier_raises_configuration_error(self):
        with pytest.raises(UnknownTierError) as exc_info:
            get_matching_config("enterprise")

        assert isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.tier == "enterprise"
        assert "premium_pending" in str(exc_info.value)

    def test_policies_are_immutable(self):
        config = get_matching_config(Tier.FREE)

        with pytest.raises(ValidationError):
            config.max_matches = 50
        with pytest.raises(TypeError):
            TIER_CONFIGS[Tier.FREE] = config

    def test_every_tier_has_a_policy(self):
        assert set(TIER_CONFIGS) == set(Tier)

    def test_resolve_tier_passes_enum_through(self):
        assert resolve_tier(Tier.PREMIUM_PENDING) is Tier.PREMIUM_PENDING

    def test_is_premium(self):
        assert not Tier.FREE.is_premium
        assert Tier.PREMIUM.is_premium
        assert Tier.PREMIUM_PENDING.is_premium


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, tmp_path, clean_env):
        path = write_config(
            tmp_path,
            """
ai:
  enabled: true
  model: gpt-4o-mini
  batch_size: 4
  batch_delay_seconds: 0.5
  min_match_score: 40
logging:
  level: DEBUG
  format: json
""",
        )

        app_config, env_config = load_config(path)

        assert app_config.ai.batch_size == 4
        assert app_config.ai.min_match_score == 40
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == "json"
        assert env_config.database_url == DEFAULT_DATABASE_URL

    def test_defaults_when_no_file_found(self, tmp_path, clean_env):
        """Test that built-in defaults apply when no config file exists."""
        clean_env.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.ai.model == "gpt-4o-mini"
        assert app_config.ai.temperature == 0.3
        assert app_config.ai.batch_size == 5
        assert app_config.ai.cache_ttl_seconds == 1800
        assert app_config.tables_path is None

    def test_finds_config_in_working_directory(self, tmp_path, clean_env):
        write_config(tmp_path, "ai:\n  batch_size: 3\n")
        clean_env.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.ai.batch_size == 3

    def test_explicit_missing_file_raises(self, tmp_path, clean_env):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "nonexistent.yaml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml_raises(self, tmp_path, clean_env):
        path = write_config(tmp_path, "ai:\n  batch_size: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert "YAML" in str(exc_info.value)

    def test_empty_file_raises(self, tmp_path, clean_env):
        path = write_config(tmp_path, "")

        with pytest.raises(ConfigurationError, match="empty"):
            load_config(path)

    def test_validation_errors_are_listed_per_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_dict({"ai": {"batch_size": 0, "temperature": 5}})

        errors = exc_info.value.errors
        assert any("batch_size" in error for error in errors)
        assert any("temperature" in error for error in errors)
        assert exc_info.value.suggestions

    def test_tables_path_is_parsed(self):
        config = parse_config_dict({"tables_path": "config/tables.yaml"})

        assert config.tables_path == Path("config/tables.yaml")

    def test_default_app_config(self):
        assert AppConfig().ai.enabled is True


class TestConfigurationWarnings:
    """Test non-fatal configuration warnings."""

    def test_disabled_ai_warns(self):
        warnings_found = check_for_warnings({"ai": {"enabled": False}})

        assert any("disabled" in w for w in warnings_found)

    def test_short_batch_delay_warns(self):
        warnings_found = check_for_warnings({"ai": {"batch_delay_seconds": 0.1}})

        assert any("batch_delay_seconds" in w for w in warnings_found)

    def test_sane_config_has_no_warnings(self):
        assert check_for_warnings({"ai": {"batch_size": 5, "temperature": 0.3}}) == []

    def test_parse_emits_user_warning(self):
        with pytest.warns(UserWarning, match="temperature"):
            parse_config_dict({"ai": {"temperature": 1.5}})


class TestEnvironmentConfig:
    """Test environment variable loading."""

    def test_defaults(self, clean_env):
        env_config = load_environment_config()

        assert env_config.openai_api_key is None
        assert env_config.ai_available is False
        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.log_level is None
        assert env_config.environment == "local"

    def test_reads_variables(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test-123")
        clean_env.setenv("DATABASE_URL", "sqlite:///:memory:")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("ENVIRONMENT", "staging")

        env_config = load_environment_config()

        assert env_config.ai_available is True
        assert env_config.database_url == "sqlite:///:memory:"
        assert env_config.log_level == "DEBUG"
        assert env_config.environment == "staging"

    def test_blank_api_key_disables_ai(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "   ")

        assert load_environment_config().ai_available is False

    def test_malformed_api_key_raises(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "not-a-key")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert any("OPENAI_API_KEY" in error for error in exc_info.value.errors)

    def test_invalid_log_level_raises(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "VERBOSE")

        with pytest.raises(ConfigurationError):
            load_environment_config()

    def test_empty_database_url_raises(self, clean_env):
        clean_env.setenv("DATABASE_URL", "  ")

        with pytest.raises(ConfigurationError):
            load_environment_config()

    def test_environment_errors_surface_through_load_config(self, tmp_path, clean_env):
        clean_env.chdir(tmp_path)
        clean_env.setenv("OPENAI_API_KEY", "bad")

        with pytest.raises(ConfigurationError):
            load_config()
