"""
expense_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only place configuration files and
    environment variables are read.  The kernel never imports this
    package; the HTTP layer and scripts translate the returned
    ``ExpenseTrackerConfig`` into constructor arguments.

Resolution order:
    1. ``config_path`` argument
    2. ``$EXPENSE_TRACKER_CONFIG``
    3. the packaged ``defaults/expense_tracker.yaml``

    ``$DATABASE_URL``, when set, overrides ``database.url`` in every case.

Failure modes:
    - ``FileNotFoundError`` -- the resolved file does not exist.
    - ``KeyError`` / ``ValueError`` -- a section fails to parse.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from expense_config.loader import load_yaml_file, parse_config
from expense_config.schema import (
    AppConfig,
    CorsConfig,
    DatabaseConfig,
    ExpenseTrackerConfig,
    IdempotencyConfig,
    LoggingConfig,
    MoneyConfig,
)

_logger = logging.getLogger("expense_kernel.config")

CONFIG_PATH_ENV = "EXPENSE_TRACKER_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults" / "expense_tracker.yaml"


def get_active_config(config_path: Path | str | None = None) -> ExpenseTrackerConfig:
    """
    Load and parse the active configuration.

    Emits a ``config_loaded`` log entry with the source file and the
    checksum of the effective settings.

    Args:
        config_path: Explicit YAML file; overrides the environment.

    Returns:
        A frozen ``ExpenseTrackerConfig``.
    """
    if config_path is not None:
        path = Path(config_path)
    elif os.environ.get(CONFIG_PATH_ENV):
        path = Path(os.environ[CONFIG_PATH_ENV])
    else:
        path = _DEFAULT_CONFIG_FILE

    data = load_yaml_file(path)
    config = parse_config(data, database_url=os.environ.get(DATABASE_URL_ENV) or None)

    _logger.info(
        "config_loaded",
        extra={
            "source": str(path),
            "checksum": config.checksum,
            "environment": config.app.environment,
            "require_idempotency_key": config.idempotency.require_key,
        },
    )
    return config


__all__ = [
    "AppConfig",
    "CorsConfig",
    "DatabaseConfig",
    "ExpenseTrackerConfig",
    "IdempotencyConfig",
    "LoggingConfig",
    "MoneyConfig",
    "get_active_config",
]
