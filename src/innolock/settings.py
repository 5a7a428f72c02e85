"""Settings for a lock test run.

Connection details, the settle delay and the lock monitor mode are read
once at startup from ``INNOLOCK_*`` environment variables or a ``.env``
file. CLI flags override them.

Examples:
    >>> settings = LockTestSettings(settle_delay_ms=200)
    >>> settings.settle_delay
    0.2
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from innolock.fixture import LockMonitorMode
from innolock.protocol import SettleStrategy


class LockTestSettings(BaseSettings):
    """Settings shared by every command.

    Fields
    ──────
    host, port, user, password, database : MySQL connection
    table_name       : Fixture table whose locks are reported
    settle_delay_ms  : How long session 1 waits before sampling the status
    settle_strategy  : ``sleep`` for the whole delay, or ``poll`` for a lock wait
    poll_interval_ms : Poll period for the ``poll`` strategy
    lock_monitor     : How to make InnoDB list held locks
    connect_timeout  : Seconds
    log_level        : Structlog log level
    json_logs        : JSON log lines (None = auto-detect from the terminal)
    """

    model_config = SettingsConfigDict(
        env_prefix="INNOLOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Connection ───────────────────────────────────────────────
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "test"
    connect_timeout: int = Field(default=10, gt=0)

    # ── Lock test ────────────────────────────────────────────────
    table_name: str = Field(default="test", min_length=1)
    settle_delay_ms: int = Field(
        default=50,
        ge=0,
        description="Wait before sampling the status; too short misses the lock wait",
    )
    settle_strategy: SettleStrategy = SettleStrategy.SLEEP
    poll_interval_ms: int = Field(default=10, gt=0)
    lock_monitor: LockMonitorMode = LockMonitorMode.BOTH

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    json_logs: bool | None = None

    @property
    def settle_delay(self) -> float:
        """Settle delay in seconds."""
        return self.settle_delay_ms / 1000

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000
