"""
Configuration and structured logging tests.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import io
import json

import pytest

from tokenfs.config import (
    ConfigError,
    ConfigManager,
    ConfigValidationError,
    get_config,
    get_config_manager,
)

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20


class TestConfigDefaults:
    """Built-in defaults."""

    def test_defaults(self):
        config = get_config()
        assert config.filesystem.emit_prefix_list.get() is True
        assert config.client.batch_size.get() == 100
        assert config.client.default_gateway.get() == ""
        assert config.observability.log_level.get() == "info"
        assert config.observability.log_format.get() == "json"

    def test_singleton(self):
        assert ConfigManager() is get_config_manager()

    def test_reset_restores_defaults(self):
        get_config_manager().set("client.batch_size", 7)
        ConfigManager.reset()
        assert get_config().client.batch_size.get() == 100


class TestConfigSources:
    """Files, runtime overrides and environment."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("client:\n  batch_size: 50\nfilesystem:\n  emit_prefix_list: false\n", encoding="utf-8")
        get_config_manager().load_from_file(path)
        assert get_config().client.batch_size.get() == 50
        assert get_config().filesystem.emit_prefix_list.get() is False

    def test_schema_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("client:\n  batchsize: 50\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError) as exc_info:
            get_config_manager().load_from_file(path)
        assert "batchsize" in str(exc_info.value)

    def test_schema_rejects_out_of_range(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("client:\n  batch_size: 501\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            get_config_manager().load_from_file(path)
        assert get_config().client.batch_size.get() == 100

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(tmp_path / "absent.yaml")

    def test_default_locations_in_order(self, tmp_path):
        """User file is applied after the project file."""
        (tmp_path / "tokenfs.yaml").write_text("client:\n  batch_size: 10\n  default_gateway: proj\n",
                                               encoding="utf-8")
        user_dir = tmp_path / "home" / ".tokenfs"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text("client:\n  batch_size: 20\n", encoding="utf-8")

        loaded = get_config_manager().load_defaults()
        assert len(loaded) == 2
        assert get_config().client.batch_size.get() == 20
        assert get_config().client.default_gateway.get() == "proj"

    def test_runtime_override_validated(self):
        mgr = get_config_manager()
        mgr.set("observability.log_format", "text")
        assert mgr.get("observability.log_format") == "text"
        with pytest.raises(ConfigValidationError):
            mgr.set("observability.log_format", "xml")
        with pytest.raises(ConfigError):
            mgr.set("observability.nope", 1)

    def test_environment_wins(self, monkeypatch):
        mgr = get_config_manager()
        mgr.set("client.batch_size", 30)
        monkeypatch.setenv("TOKENFS_CLIENT_BATCH_SIZE", "40")
        assert mgr.get("client.batch_size") == 40

    def test_bad_environment_value_reported(self, monkeypatch):
        monkeypatch.setenv("TOKENFS_CLIENT_BATCH_SIZE", "many")
        errors = get_config_manager().validate()
        assert any("client.batch_size" in e for e in errors)

    def test_environment_value_is_validated(self, monkeypatch):
        monkeypatch.setenv("TOKENFS_LOG_FORMAT", "xml")
        with pytest.raises(ConfigValidationError):
            get_config().observability.log_format.get()
        errors = get_config_manager().validate()
        assert any("observability.log_format" in e for e in errors)

    def test_environment_range_is_validated(self, monkeypatch):
        monkeypatch.setenv("TOKENFS_CLIENT_BATCH_SIZE", "501")
        with pytest.raises(ConfigValidationError):
            get_config().client.batch_size.get()

    def test_validate_clean(self):
        assert get_config_manager().validate() == []

    def test_export_schema(self):
        schema = get_config_manager().export_schema()
        batch = schema["properties"]["client"]["batch_size"]
        assert batch["env_var"] == "TOKENFS_CLIENT_BATCH_SIZE"
        assert batch["type"] == "int"

    def test_to_yaml(self):
        import yaml

        data = yaml.safe_load(get_config().to_yaml())
        assert data["client"]["batch_size"] == 100


class TestStructuredLogging:
    """JSON-lines and text handlers."""

    def test_denied_write_logged_as_warning(self, fs, nft, alice_token):
        from tokenfs.hardening import UnauthorizedPath
        from tokenfs.observability import configure_logging

        stream = io.StringIO()
        configure_logging("info", "json", stream)
        with pytest.raises(UnauthorizedPath):
            fs.write_file(ALICE, nft.address, alice_token, "/agent1/a.json", "cid")

        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        denied = [r for r in records if r["message"] == "Write denied"]
        assert len(denied) == 1
        assert denied[0]["level"] == "warning"
        assert denied[0]["error_code"] == "unauthorized_path"
        assert denied[0]["layer"] == "filesystem"
        assert denied[0]["operation"] == "write_file"

    def test_debug_suppressed_at_info(self, fs, nft):
        from tokenfs.observability import configure_logging

        stream = io.StringIO()
        configure_logging("info", "json", stream)
        fs.can_write_path(nft.address, 1, ALICE, "/x")
        assert "Write check failed" not in stream.getvalue()

    def test_text_format(self, fs):
        from tokenfs.observability import configure_logging

        stream = io.StringIO()
        configure_logging("debug", "text", stream)
        fs.transfer_ownership(ADMIN, ALICE)
        line = stream.getvalue().strip().splitlines()[-1]
        assert "INFO" in line
        assert "Administrator changed" in line
        assert f"new_owner={ALICE}" in line

    def test_unknown_level(self):
        from tokenfs.observability import configure_logging

        with pytest.raises(ValueError):
            configure_logging("loud")

    def test_unknown_format(self):
        from tokenfs.observability import configure_logging

        with pytest.raises(ValueError):
            configure_logging("info", "xml")

    def test_correlation_id(self):
        from tokenfs.observability import correlation_id_var, get_correlation_id, set_correlation_id

        token = set_correlation_id("corr-test")
        try:
            assert get_correlation_id() == "corr-test"
        finally:
            correlation_id_var.reset(token)
