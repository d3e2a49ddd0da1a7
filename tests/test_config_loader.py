"""
Unit tests for configuration loading.

Tests multi-layer config merging, environment variable overrides, CLI
overrides and XDG directory handling.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from kaictl.core.config import (
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from kaictl.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_xdg_config_home,
    load_json_file,
)
from kaictl.core.config.models import KaiConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_nested_merge(self):
        """Test merging nested dicts."""
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        override = {"b": {"y": 30, "z": 40}, "c": 3}
        assert deep_merge(base, override) == {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}

    def test_base_not_mutated(self):
        base = {"b": {"x": 1}}
        deep_merge(base, {"b": {"x": 2}})
        assert base == {"b": {"x": 1}}


class TestLoadJsonFile:
    """Test JSON file loading."""

    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "missing.json") is None

    def test_invalid_json_is_skipped(self, tmp_path, caplog):
        path = tmp_path / "bad.json"
        path.write_text("{oops")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_is_ignored(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None


class TestPaths:
    """Test config file locations."""

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert get_xdg_config_home() == tmp_path / "xdg"
        assert get_user_config_path() == tmp_path / "xdg" / "kai" / "config.json"

    def test_xdg_default(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_project_config_path(self, tmp_path):
        assert get_project_config_path(tmp_path) == tmp_path / ".kai.json"


class TestEnvOverrides:
    """Test KAI_* environment overrides."""

    def test_overrides_applied(self, monkeypatch):
        monkeypatch.setenv("KAI_GITHUB_USER", "alice")
        monkeypatch.setenv("KAI_NETWORK", "other-net")
        result = apply_env_overrides({"registry": {"host": "ghcr.io"}})
        assert result == {
            "registry": {"host": "ghcr.io", "user": "alice"},
            "services": {"network": "other-net"},
        }

    def test_empty_values_ignored(self, monkeypatch):
        monkeypatch.setenv("KAI_BASE_DIR", "")
        assert apply_env_overrides({}) == {}

    def test_empty_api_base_url_kept(self, monkeypatch):
        """An empty API base URL explicitly selects proxy mode."""
        monkeypatch.setenv("KAI_API_BASE_URL", "")
        assert apply_env_overrides({}) == {"services": {"api_base_url": ""}}

    def test_input_not_mutated(self, monkeypatch):
        monkeypatch.setenv("KAI_REGISTRY", "quay.io")
        original = {"registry": {"host": "ghcr.io"}}
        apply_env_overrides(original)
        assert original == {"registry": {"host": "ghcr.io"}}


# ==============================================================================
# load_config Tests
# ==============================================================================


class TestLoadConfig:
    """Test full layered loading."""

    def test_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert config.services.network == "kai-net"
        assert config.registry.host == "ghcr.io"
        assert config.registry.user == "misterlex223"
        assert config.ports.backend == 9900
        assert config.ports.frontend == 9901
        assert config.ports.code_server == 8443
        assert config.health.backend_timeout == 120
        assert config.directories.base_dir == Path.home() / "KaiBase"
        assert config.directories.env_file_path == Path.home() / "cotandem" / "backend" / ".env.local"

    def test_precedence(self, tmp_path, monkeypatch):
        """defaults < user < project < env."""
        user_path = get_user_config_path()
        user_path.parent.mkdir(parents=True)
        user_path.write_text(
            json.dumps({"registry": {"user": "from-user"}, "services": {"network": "user-net"}})
        )
        (tmp_path / ".kai.json").write_text(json.dumps({"services": {"network": "project-net"}}))
        monkeypatch.setenv("KAI_CODE_SERVER_PASSWORD", "from-env")

        config = load_config(tmp_path)

        assert config.registry.user == "from-user"
        assert config.services.network == "project-net"
        assert config.services.code_server_password == "from-env"

    def test_env_beats_project(self, tmp_path, monkeypatch):
        (tmp_path / ".kai.json").write_text(json.dumps({"registry": {"user": "project"}}))
        monkeypatch.setenv("KAI_GITHUB_USER", "env")
        assert load_config(tmp_path).registry.user == "env"

    def test_invalid_value_raises(self, tmp_path):
        (tmp_path / ".kai.json").write_text(json.dumps({"ports": {"backend": 70000}}))
        with pytest.raises(ValidationError):
            load_config(tmp_path)

    def test_each_call_builds_a_new_config(self, tmp_path):
        assert load_config(tmp_path) is not load_config(tmp_path)


class TestOverrides:
    """Test KaiConfig.with_overrides()."""

    def test_none_values_ignored(self):
        config = KaiConfig()
        updated = config.with_overrides(registry={"user": None}, services={"network": "x"})
        assert updated.registry.user == config.registry.user
        assert updated.services.network == "x"

    def test_frozen(self):
        with pytest.raises(ValidationError):
            KaiConfig().ports = None  # type: ignore[misc]

    def test_paths_coerced(self, tmp_path):
        updated = KaiConfig().with_overrides(directories={"base_dir": str(tmp_path)})
        assert updated.directories.base_dir == tmp_path
        assert updated.directories.code_server_dir == tmp_path / ".kai" / "code-server"
