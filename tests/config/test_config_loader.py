"""Tests for configuration loading and parsing."""

from datetime import timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from expense_config import CONFIG_PATH_ENV, DATABASE_URL_ENV, get_active_config
from expense_config.loader import compute_checksum, load_yaml_file, parse_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestPackagedDefaults:
    def test_defaults_load(self):
        config = get_active_config()

        assert config.database.url.startswith("sqlite")
        assert config.money.max_amount == Decimal("100000000.00")
        assert config.idempotency.header == "X-Idempotency-Key"
        assert config.idempotency.require_key is False
        assert config.idempotency.retention == timedelta(hours=24)
        assert config.idempotency.sweep_interval_seconds == 3600
        assert config.logging.level == "INFO"
        assert len(config.checksum) == 64

    def test_database_url_env_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://u:p@db/expenses")
        assert get_active_config().database.url == "postgresql://u:p@db/expenses"

    def test_config_loaded_logged(self, captured_logs):
        config = get_active_config()
        loaded = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert loaded[-1]["checksum"] == config.checksum


class TestExplicitFile:
    def test_path_argument(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "database": {"url": "sqlite:///custom.db", "statement_timeout_ms": 2000},
                "idempotency": {"require_key": True, "retention_hours": 1},
                "cors": {"allowed_origins": ["https://expenses.example.com"]},
            },
        )
        config = get_active_config(path)

        assert config.database.url == "sqlite:///custom.db"
        assert config.database.statement_timeout_ms == 2000
        assert config.idempotency.require_key is True
        assert config.idempotency.retention == timedelta(hours=1)
        assert config.cors.allowed_origins == ("https://expenses.example.com",)

    def test_env_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"database": {"url": "sqlite:///from-env.db"}})
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        assert get_active_config().database.url == "sqlite:///from-env.db"

    def test_argument_beats_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "missing.yaml"))
        path = _write(tmp_path, {"database": {"url": "sqlite:///arg.db"}})
        assert get_active_config(path).database.url == "sqlite:///arg.db"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")


class TestParseErrors:
    def test_missing_database_url(self):
        with pytest.raises(KeyError):
            parse_config({"database": {}})

    def test_override_supplies_url(self):
        assert parse_config({}, database_url="sqlite://").database.url == "sqlite://"

    @pytest.mark.parametrize(
        "section, values",
        [
            ("idempotency", {"retention_hours": 0}),
            ("idempotency", {"sweep_interval_seconds": -1}),
            ("database", {"url": "sqlite://", "statement_timeout_ms": 0}),
            ("money", {"max_amount": "lots"}),
            ("money", {"max_amount": "-5"}),
            ("logging", {"level": "CHATTY"}),
        ],
    )
    def test_invalid_values(self, section, values):
        data = {"database": {"url": "sqlite://"}}
        data[section] = {**data.get(section, {}), **values}
        with pytest.raises(ValueError):
            parse_config(data)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_cors_comma_string(self):
        config = parse_config(
            {"database": {"url": "sqlite://"}, "cors": {"allowed_origins": "http://a, http://b"}}
        )
        assert config.cors.allowed_origins == ("http://a", "http://b")


class TestChecksum:
    def test_deterministic(self):
        assert compute_checksum({"b": 1, "a": 2}) == compute_checksum({"a": 2, "b": 1})

    def test_changes_with_content(self):
        base = parse_config({"database": {"url": "sqlite://"}})
        other = parse_config({"database": {"url": "sqlite:///x.db"}})
        assert base.checksum != other.checksum
