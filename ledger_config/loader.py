"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``ledger_config.schema``
dataclass instances.  The single public entry point for runtime config
is ``ledger_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* Override files are deep-merged over the packaged defaults, so an
  override only needs to name the keys it changes.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError``.
* Unknown policy name or negative tolerance  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DatabaseSettings,
    GuardSettings,
    LedgerConfig,
    LoggingSettings,
    NumberingSettings,
)

DUPLICATE_CHECK_POLICIES = ("fail_open", "fail_closed")
NUMBERING_FAILURE_POLICIES = ("fail_soft", "fail_hard")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge recursively."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def parse_decimal(value: Any, name: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if result < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return result


def _parse_choice(value: Any, allowed: tuple[str, ...], name: str) -> str:
    text = str(value).strip().lower()
    if text not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(allowed)}, got {value!r}")
    return text


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    url = data["url"]
    if not url:
        raise ValueError("database.url must not be empty")
    return DatabaseSettings(
        url=str(url),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        pool_recycle=int(data.get("pool_recycle", 1800)),
    )


def parse_guard(data: dict[str, Any]) -> GuardSettings:
    window = int(data.get("window_seconds", 30))
    if window < 0:
        raise ValueError(f"guard.window_seconds must not be negative, got {window}")
    return GuardSettings(
        window_seconds=window,
        amount_tolerance=parse_decimal(
            data.get("amount_tolerance", "0.01"), "guard.amount_tolerance"
        ),
        key_column_missing=_parse_choice(
            data.get("key_column_missing", "fail_open"),
            DUPLICATE_CHECK_POLICIES,
            "guard.key_column_missing",
        ),
        insufficient_data=_parse_choice(
            data.get("insufficient_data", "fail_open"),
            DUPLICATE_CHECK_POLICIES,
            "guard.insufficient_data",
        ),
    )


def parse_numbering(data: dict[str, Any]) -> NumberingSettings:
    width = int(data.get("sequence_width", 4))
    if width < 1:
        raise ValueError(f"numbering.sequence_width must be positive, got {width}")
    return NumberingSettings(
        payment_prefix=str(data.get("payment_prefix", "PAY")),
        transfer_prefix=str(data.get("transfer_prefix", "TR")),
        sequence_width=width,
        unknown_warehouse_code=str(data.get("unknown_warehouse_code", "DEF")),
        warehouse_code_length=int(data.get("warehouse_code_length", 3)),
        failure_policy=_parse_choice(
            data.get("failure_policy", "fail_soft"),
            NUMBERING_FAILURE_POLICIES,
            "numbering.failure_policy",
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    return LoggingSettings(level=str(data.get("level", "INFO")).upper())


def parse_config(data: dict[str, Any], source: str | None = None) -> LedgerConfig:
    """
    Parse a merged configuration mapping into a LedgerConfig.

    Raises:
        KeyError: if the ``database`` section or its ``url`` is missing.
        ValueError: on invalid values.
    """
    ledger = data.get("ledger") or {}
    return LedgerConfig(
        database=parse_database(data["database"]),
        status_tolerance=parse_decimal(
            ledger.get("status_tolerance", "0.01"), "ledger.status_tolerance"
        ),
        guard=parse_guard(data.get("guard") or {}),
        numbering=parse_numbering(data.get("numbering") or {}),
        logging=parse_logging(data.get("logging") or {}),
        source=source,
    )
