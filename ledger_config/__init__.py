"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Resolution order (later wins):
    1. Packaged defaults (``ledger_config/defaults.yaml``).
    2. The YAML file named by ``config_path`` or, failing that, by the
       ``LEDGER_CONFIG`` environment variable.
    3. ``DATABASE_URL`` environment variable for ``database.url``.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below ``ledger_api``
    and ``scripts``.  The kernel MUST NEVER import from ``ledger_config``;
    ``ledger_config.bridges`` translates the parsed config into kernel
    inputs.

Failure modes:
    - ``FileNotFoundError`` -- an override file was named but does not exist.
    - ``ValueError`` / ``KeyError`` -- invalid or missing values.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from ledger_config.loader import deep_merge, load_yaml_file, parse_config
from ledger_config.schema import LedgerConfig

_logger = logging.getLogger("ledger_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

_active: LedgerConfig | None = None
_lock = threading.Lock()


def load_config(config_path: Path | str | None = None) -> LedgerConfig:
    """Build a fresh LedgerConfig (no caching)."""
    data = load_yaml_file(DEFAULTS_PATH)
    source = str(DEFAULTS_PATH)

    override_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if override_path:
        data = deep_merge(data, load_yaml_file(Path(override_path)))
        source = str(override_path)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        data = deep_merge(data, {"database": {"url": database_url}})

    config = parse_config(data, source=source)
    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_source": source,
            "database_url_from_env": bool(database_url),
            "numbering_failure_policy": config.numbering.failure_policy,
            "guard_key_column_missing": config.guard.key_column_missing,
            "guard_insufficient_data": config.guard.insufficient_data,
        },
    )
    return config


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """
    The ONLY public configuration entrypoint.

    The first call loads and caches the configuration; later calls return
    the cached object.  Passing ``config_path`` forces a reload.
    """
    global _active
    with _lock:
        if _active is None or config_path is not None:
            _active = load_config(config_path)
        return _active


def reset_active_config() -> None:
    """Drop the cached configuration. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None


__all__ = [
    "LedgerConfig",
    "get_active_config",
    "load_config",
    "reset_active_config",
]
