"""
Settings Loader (``envelope_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``envelope_config.schema.Settings``.  The public entry point for runtime
settings is ``envelope_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key, bad period type, bad date  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from envelope_config.schema import SETTINGS_KEYS, Settings
from envelope_kernel.domain.period import PeriodKind

_PERIOD_ALIASES = {
    "monthly": PeriodKind.MONTHLY,
    "weekly": PeriodKind.WEEKLY,
    "bi_weekly": PeriodKind.BI_WEEKLY,
    "biweekly": PeriodKind.BI_WEEKLY,
    "bi-weekly": PeriodKind.BI_WEEKLY,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_period_type(value: Any) -> PeriodKind:
    kind = _PERIOD_ALIASES.get(str(value).strip().lower())
    if kind is None:
        raise ValueError(
            f"Invalid budget_period_type {value!r}; expected monthly, weekly or bi_weekly"
        )
    return kind


def parse_settings(data: dict[str, Any], base: Settings | None = None) -> Settings:
    """
    Parse a settings dict, layering it over ``base`` (defaults when None).

    Raises:
        ValueError: for unknown keys or invalid values.
    """
    unknown = sorted(set(data) - SETTINGS_KEYS)
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")

    base = base or Settings()
    values: dict[str, Any] = {}
    if "budget_period_type" in data:
        values["budget_period_type"] = parse_period_type(data["budget_period_type"])
    for key in ("currency_symbol", "database_url", "adjustment_payee"):
        if key in data:
            values[key] = str(data[key])
    if "log_level" in data:
        values["log_level"] = str(data["log_level"]).upper()
    if "biweekly_anchor" in data:
        raw = data["biweekly_anchor"]
        values["biweekly_anchor"] = parse_date(raw) if raw else None

    return dataclasses.replace(base, **values)
