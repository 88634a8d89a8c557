"""Tests for layered configuration and environment selection."""

import pytest
from stackplan.config import load_settings, resolve_environment
from stackplan.config.manager import config_layers, load_config, _deep_merge
from stackplan.utils.errors import ConfigError


class TestLoadSettings:
    """Test configuration layering."""

    def test_packaged_defaults(self, isolated_home):
        """Without any config file the packaged defaults apply."""
        settings = load_settings()

        assert settings.executor.parallelism == 10
        assert settings.executor.operation_timeout == 1800
        assert settings.provider.kind == "http"
        assert settings.state.directory == ".stackplan/state"
        assert settings.state.lock is True

    def test_layers_in_precedence_order(self, isolated_home, tmp_path):
        """User, project and explicit files override in that order."""
        user_config = tmp_path / "home" / ".stackplan" / "config.yaml"
        user_config.parent.mkdir()
        user_config.write_text("executor:\n  parallelism: 4\n  operation_timeout: 60\n")
        project_config = isolated_home / ".stackplan" / "config.yaml"
        project_config.parent.mkdir()
        project_config.write_text("executor:\n  parallelism: 6\n")
        explicit = tmp_path / "ci.yaml"
        explicit.write_text("state:\n  lock: false\n")

        layers = config_layers(str(explicit))
        settings = load_settings(str(explicit))

        assert len(layers) == 4
        assert layers[1] == user_config
        assert layers[-1] == explicit
        assert settings.executor.parallelism == 6
        assert settings.executor.operation_timeout == 60
        assert settings.state.lock is False

    def test_overrides_ignore_none(self, isolated_home):
        """CLI overrides win, unset flags keep configured values."""
        settings = load_settings(overrides={"executor": {"parallelism": 2, "operation_timeout": None}})

        assert settings.executor.parallelism == 2
        assert settings.executor.operation_timeout == 1800

    def test_defaults_and_resource_types(self, isolated_home, tmp_path):
        """Attribute defaults and custom types are read from config."""
        config = tmp_path / "c.yaml"
        config.write_text(
            "defaults:\n  location: westeurope\n"
            "resource_types:\n  custom_dns_record:\n    required: [fqdn]\n"
        )

        settings = load_settings(str(config))

        assert settings.defaults == {"location": "westeurope"}
        assert settings.resource_types["custom_dns_record"]["required"] == ["fqdn"]

    def test_unknown_key_rejected(self, isolated_home, tmp_path):
        """Misspelled settings are an error."""
        config = tmp_path / "c.yaml"
        config.write_text("executor:\n  paralelism: 3\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(str(config))

    def test_invalid_value_rejected(self, isolated_home):
        """Values are validated."""
        with pytest.raises(ConfigError):
            load_settings(overrides={"executor": {"parallelism": 0}})

    def test_missing_explicit_file(self, isolated_home):
        """An explicit config path must exist."""
        with pytest.raises(ConfigError, match="not found"):
            load_config("missing.yaml")

    def test_non_mapping_file(self, isolated_home, tmp_path):
        """Config files must hold a mapping."""
        config = tmp_path / "c.yaml"
        config.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="must contain a dictionary"):
            load_config(str(config))

    def test_deep_merge(self):
        """Nested dictionaries merge, other values are replaced."""
        base = {"a": {"x": 1, "y": 2}, "b": [1]}
        _deep_merge(base, {"a": {"y": 3}, "b": [2]})

        assert base == {"a": {"x": 1, "y": 3}, "b": [2]}


class TestResolveEnvironment:
    """Test environment selection."""

    def test_default(self, isolated_home):
        assert resolve_environment() == "default"

    def test_explicit_wins(self, isolated_home, monkeypatch):
        """An explicit name beats the environment variable."""
        monkeypatch.setenv("STACKPLAN_ENV", "staging")

        assert resolve_environment("Prod") == "prod"
        assert resolve_environment() == "staging"

    def test_environment_file(self, isolated_home, monkeypatch):
        """.stackplan-env.yaml in a parent directory is found."""
        (isolated_home / ".stackplan-env.yaml").write_text("environment:\n  name: qa\n")
        nested = isolated_home / "infra" / "network"
        nested.mkdir(parents=True)

        monkeypatch.chdir(nested)

        assert resolve_environment() == "qa"

    def test_invalid_name(self, isolated_home):
        """Names must be usable as file names."""
        with pytest.raises(ConfigError, match="Invalid environment name"):
            resolve_environment("../etc")
