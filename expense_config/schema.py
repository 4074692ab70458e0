"""
Expense tracker configuration schema.

Frozen dataclasses parsed from YAML by ``expense_config.loader``.  Nothing
outside ``expense_config`` builds these by hand except tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal


@dataclass(frozen=True)
class AppConfig:
    name: str = "Expense Tracker API"
    version: str = "0.1.0"
    environment: str = "development"


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings; timeouts bound every storage call."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout_seconds: int = 30
    statement_timeout_ms: int = 5000


@dataclass(frozen=True)
class MoneyConfig:
    max_amount: Decimal = Decimal("100000000.00")


@dataclass(frozen=True)
class IdempotencyConfig:
    """Idempotency key handling and retention."""

    header: str = "X-Idempotency-Key"
    require_key: bool = False
    retention_hours: float = 24
    sweep_interval_seconds: float = 3600

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CorsConfig:
    allowed_origins: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExpenseTrackerConfig:
    """Root configuration object returned by ``get_active_config()``."""

    database: DatabaseConfig
    app: AppConfig = field(default_factory=AppConfig)
    money: MoneyConfig = field(default_factory=MoneyConfig)
    idempotency: IdempotencyConfig = field(default_factory=IdempotencyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    checksum: str = ""
