"""Tests for envelope_config: YAML settings loading and module config wiring."""

from datetime import date

import pytest
import yaml

from envelope_config import DEFAULTS_PATH, Settings, get_active_settings
from envelope_config.loader import load_yaml_file, parse_period_type, parse_settings
from envelope_kernel.domain.period import PeriodKind
from envelope_modules.budget import BudgetConfig
from envelope_modules.reconciliation import ReconciliationConfig


def _write(tmp_path, data) -> str:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:
    def test_packaged_defaults_match_schema(self):
        assert get_active_settings() == Settings()

    def test_defaults_file_lists_every_key(self):
        from envelope_config.schema import SETTINGS_KEYS

        assert set(load_yaml_file(DEFAULTS_PATH)) == SETTINGS_KEYS

    def test_load_is_logged(self, captured_logs):
        get_active_settings()
        record = [r for r in captured_logs() if r["message"] == "config_loaded"][0]
        assert record["budget_period_type"] == "monthly"


class TestOverrides:
    def test_user_file_layers_over_defaults(self, tmp_path):
        path = _write(tmp_path, {
            "budget_period_type": "bi-weekly",
            "biweekly_anchor": "2025-01-06",
            "log_level": "debug",
        })
        settings = get_active_settings(path)
        assert settings.budget_period_type is PeriodKind.BI_WEEKLY
        assert settings.biweekly_anchor == date(2025, 1, 6)
        assert settings.log_level == "DEBUG"
        assert settings.currency_symbol == "$"

    def test_empty_file_keeps_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert get_active_settings(path) == Settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "nope.yaml")

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ValueError, match="colour"):
            get_active_settings(_write(tmp_path, {"colour": "blue"}))

    def test_non_mapping(self, tmp_path):
        with pytest.raises(ValueError):
            get_active_settings(_write(tmp_path, ["monthly"]))


class TestValidation:
    @pytest.mark.parametrize("text,kind", [
        ("monthly", PeriodKind.MONTHLY),
        ("Weekly", PeriodKind.WEEKLY),
        ("biweekly", PeriodKind.BI_WEEKLY),
        ("bi_weekly", PeriodKind.BI_WEEKLY),
    ])
    def test_period_type_aliases(self, text, kind):
        assert parse_period_type(text) is kind

    @pytest.mark.parametrize("text", ["custom", "daily", ""])
    def test_bad_period_type(self, text):
        with pytest.raises(ValueError):
            parse_settings({"budget_period_type": text})

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            parse_settings({"log_level": "loud"})

    def test_bad_anchor(self):
        with pytest.raises(ValueError):
            parse_settings({"biweekly_anchor": "next tuesday"})

    def test_custom_rejected_by_schema(self):
        with pytest.raises(ValueError):
            Settings(budget_period_type=PeriodKind.CUSTOM)


class TestModuleConfigs:
    def test_budget_config_from_settings(self):
        settings = parse_settings({
            "budget_period_type": "weekly",
            "currency_symbol": "EUR ",
        })
        config = BudgetConfig.from_settings(settings)
        assert config.period_type is PeriodKind.WEEKLY
        assert config.currency_symbol == "EUR "
        assert config.biweekly_anchor is None

    def test_reconciliation_config_from_settings(self):
        settings = parse_settings({"adjustment_payee": "Bank Difference"})
        assert ReconciliationConfig.from_settings(settings).adjustment_payee == "Bank Difference"

    def test_empty_adjustment_payee(self):
        with pytest.raises(ValueError):
            ReconciliationConfig(adjustment_payee="  ")

    def test_empty_currency_symbol(self):
        with pytest.raises(ValueError):
            BudgetConfig(currency_symbol="")
