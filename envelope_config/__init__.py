"""
envelope_config -- single public entrypoint for application settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Returns a frozen ``Settings``.

Architecture position:
    Configuration -- sits above ``envelope_kernel`` and beside
    ``envelope_modules``.  The kernel MUST NEVER import from
    ``envelope_config``; modules receive plain config dataclasses built
    from ``Settings``.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

from pathlib import Path

from envelope_config.loader import load_yaml_file, parse_settings
from envelope_config.schema import Settings
from envelope_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(path: Path | str | None = None) -> Settings:
    """
    Load settings: packaged defaults, then ``path`` layered on top.

    Guarantees:
        - The returned ``Settings`` is frozen and validated.
        - A ``config_loaded`` log entry is emitted on every call.
    """
    settings = parse_settings(load_yaml_file(DEFAULTS_PATH))
    source = str(DEFAULTS_PATH)
    if path is not None:
        settings = parse_settings(load_yaml_file(Path(path)), base=settings)
        source = str(path)

    _logger.info(
        "config_loaded",
        extra={
            "source": source,
            "budget_period_type": settings.budget_period_type.value,
            "log_level": settings.log_level,
        },
    )
    return settings


__all__ = [
    "DEFAULTS_PATH",
    "Settings",
    "get_active_settings",
]
