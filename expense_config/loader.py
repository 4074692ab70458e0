"""
Configuration loader (``expense_config.loader``).

Responsibility
--------------
Reads the YAML configuration file and parses each section into the
frozen dataclasses of ``expense_config.schema``.  Runtime callers go
through ``expense_config.get_active_config()``; this module is the
parsing half only.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (non-positive timeouts, bad amounts)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from expense_config.schema import (
    AppConfig,
    CorsConfig,
    DatabaseConfig,
    ExpenseTrackerConfig,
    IdempotencyConfig,
    LoggingConfig,
    MoneyConfig,
)


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
        raise ValueError(f"{path}: top-level YAML must be a mapping, got {type(data).__name__}")
    return data


def parse_app(data: dict[str, Any]) -> AppConfig:
    return AppConfig(
        name=str(data.get("name", AppConfig.name)),
        version=str(data.get("version", AppConfig.version)),
        environment=str(data.get("environment", AppConfig.environment)),
    )


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse the ``database`` section.  ``url`` is required."""
    config = DatabaseConfig(
        url=str(data["url"]),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 5)),
        pool_timeout_seconds=int(data.get("pool_timeout_seconds", 30)),
        statement_timeout_ms=int(data.get("statement_timeout_ms", 5000)),
    )
    if config.pool_timeout_seconds <= 0:
        raise ValueError("database.pool_timeout_seconds must be positive")
    if config.statement_timeout_ms <= 0:
        raise ValueError("database.statement_timeout_ms must be positive")
    return config


def parse_money(data: dict[str, Any]) -> MoneyConfig:
    raw = data.get("max_amount", "100000000.00")
    try:
        # str() keeps YAML floats from picking up binary noise
        max_amount = Decimal(str(raw))
    except InvalidOperation as exc:
        raise ValueError(f"money.max_amount is not a number: {raw!r}") from exc
    if not max_amount.is_finite() or max_amount <= 0:
        raise ValueError(f"money.max_amount must be positive, got {raw!r}")
    return MoneyConfig(max_amount=max_amount)


def parse_idempotency(data: dict[str, Any]) -> IdempotencyConfig:
    config = IdempotencyConfig(
        header=str(data.get("header", IdempotencyConfig.header)),
        require_key=bool(data.get("require_key", False)),
        retention_hours=float(data.get("retention_hours", 24)),
        sweep_interval_seconds=float(data.get("sweep_interval_seconds", 3600)),
    )
    if config.retention_hours <= 0:
        raise ValueError("idempotency.retention_hours must be positive")
    if config.sweep_interval_seconds <= 0:
        raise ValueError("idempotency.sweep_interval_seconds must be positive")
    return config


_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_cors(data: dict[str, Any]) -> CorsConfig:
    origins = data.get("allowed_origins") or []
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    return CorsConfig(allowed_origins=tuple(str(o) for o in origins))


def parse_config(
    data: dict[str, Any],
    database_url: str | None = None,
) -> ExpenseTrackerConfig:
    """
    Build an ``ExpenseTrackerConfig`` from a parsed YAML mapping.

    Args:
        data: Top-level mapping with optional ``app``, ``database``,
            ``money``, ``idempotency``, ``logging`` and ``cors`` sections.
        database_url: When given, replaces ``database.url``.

    Raises:
        KeyError: ``database.url`` missing and no override supplied.
    """
    database = dict(data.get("database") or {})
    if database_url:
        database["url"] = database_url

    return ExpenseTrackerConfig(
        app=parse_app(data.get("app") or {}),
        database=parse_database(database),
        money=parse_money(data.get("money") or {}),
        idempotency=parse_idempotency(data.get("idempotency") or {}),
        logging=parse_logging(data.get("logging") or {}),
        cors=parse_cors(data.get("cors") or {}),
        checksum=compute_checksum({**data, "database": database}),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical input, identical hash."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
