"""
Tests for ledger_config.get_active_config() and the YAML loader.
"""

from decimal import Decimal

import pytest
import yaml

from ledger_config import (
    CONFIG_PATH_ENV,
    DATABASE_URL_ENV,
    DEFAULT_CONFIG_PATH,
    get_active_config,
)
from ledger_config.loader import merge_overrides, parse_config
from ledger_kernel.domain.values import Category
from ledger_kernel.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(data: dict, name: str = "ledger.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestDefaults:
    def test_packaged_default_loads(self):
        config = get_active_config()

        assert config.source == str(DEFAULT_CONFIG_PATH)
        assert config.database_url == "sqlite:///ledger.db"
        assert config.scheduler.tick_interval_seconds == 3600
        assert config.scheduler.run_on_start is True
        assert config.processing.max_workers == 1
        assert config.processing.timeout_seconds is None
        assert config.limits.min_amount == Decimal("0.01")
        assert config.limits.max_amount == Decimal("10000000")
        assert config.categories == tuple(Category)

    def test_empty_document_uses_dataclass_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = get_active_config(config_path=path)
        assert config.limits.description_max_length == 200

    def test_trace_logged(self, captured_logs):
        get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE"]
        assert traces[0]["database_backend"] == "sqlite"
        assert traces[0]["category_count"] == 14


class TestResolution:
    def test_env_path(self, monkeypatch, write_config):
        path = write_config({"scheduler": {"tick_interval_seconds": 60}})
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

        assert get_active_config().scheduler.tick_interval_seconds == 60

    def test_env_database_url(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://ledger@localhost/ledger")
        assert get_active_config().database_url == "postgresql://ledger@localhost/ledger"

    def test_overrides_win_over_env(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "sqlite:///env.db")
        config = get_active_config(
            overrides={"database_url": "sqlite:///override.db", "processing": {"max_workers": 4}},
        )
        assert config.database_url == "sqlite:///override.db"
        assert config.processing.max_workers == 4
        assert config.processing.materialize_on_create is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(config_path=tmp_path / "absent.yaml")

    def test_merge_is_deep_and_copies(self):
        base = {"limits": {"min_amount": "1", "max_amount": "5"}}
        merged = merge_overrides(base, {"limits": {"max_amount": "9"}})
        assert merged == {"limits": {"min_amount": "1", "max_amount": "9"}}
        assert base["limits"]["max_amount"] == "5"


class TestValidation:
    @pytest.mark.parametrize(
        "data, key",
        [
            ({"unexpected": 1}, "unexpected"),
            ({"database_url": ""}, "database_url"),
            ({"database_url": "not a url"}, "database_url"),
            ({"timezone": "Europe/Paris"}, "timezone"),
            ({"scheduler": {"tick_interval_seconds": 0}}, "scheduler.tick_interval_seconds"),
            ({"processing": {"max_workers": True}}, "processing.max_workers"),
            ({"processing": {"timeout_seconds": -1}}, "processing.timeout_seconds"),
            (
                {"database_url": "sqlite://", "processing": {"max_workers": 4}},
                "processing.max_workers",
            ),
            ({"limits": {"min_amount": 0}}, "limits.min_amount"),
            ({"limits": {"min_amount": "5", "max_amount": "1"}}, "limits.max_amount"),
            ({"limits": {"max_amount": "lots"}}, "limits.max_amount"),
            ({"categories": ["Groceries"]}, "categories"),
        ],
    )
    def test_rejected(self, data, key):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(data)
        assert exc_info.value.key == key
        assert exc_info.value.code == "CONFIGURATION_INVALID"

    def test_float_amounts_keep_literal(self):
        config = parse_config({"limits": {"min_amount": 0.1, "max_amount": 99.99}})
        assert config.limits.min_amount == Decimal("0.1")
        assert config.limits.max_amount == Decimal("99.99")

    def test_category_subset(self):
        config = parse_config({"categories": ["Salary", "Rent/Mortgage"]})
        assert config.categories == (Category.SALARY, Category.RENT_MORTGAGE)

    def test_config_is_frozen(self):
        config = parse_config({})
        with pytest.raises(AttributeError):
            config.database_url = "sqlite://"
