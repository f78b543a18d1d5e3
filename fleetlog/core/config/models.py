"""Pydantic configuration models for FleetLog.

For loading and environment expansion, see loader.py.
"""

from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class LoggingConfig(BaseModel):
    """Configuration for logging system."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    directory: str = Field(default="logs", description="Directory for log files")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=5, description="Number of backup log files to keep")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError("logging.level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG")
        return normalized


class DatabaseConfig(BaseModel):
    """Relational store settings."""

    path: Path = Field(default=Path("fleetlog.db"), description="SQLite database file")
    echo: bool = Field(default=False, description="Log every SQL statement (debugging)")
    busy_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="How long a writer waits for a concurrent write to finish",
    )


class TelegramConfig(BaseModel):
    """Telegram bot settings."""

    token: str | None = Field(default=None, description="Bot token (falls back to TELEGRAM_BOT_TOKEN)")
    allowed_users: list[int] = Field(default_factory=list, description="Allowed user IDs")
    allow_all: bool = Field(default=False, description="Allow all users (tenant mapping still applies)")


class KilometerConfig(BaseModel):
    """Odometer validation settings."""

    high_increment_threshold: Decimal = Field(
        default=Decimal("1000"),
        description="Increments above this are accepted with a HIGH_INCREMENT warning",
    )
    max_decimal_places: int = Field(default=2, description="Maximum decimal digits in a reading")
    stats_window_days: int = Field(default=7, description="Days covered by the statistics view")

    @field_validator("high_increment_threshold")
    @classmethod
    def _positive_threshold(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("kilometers.high_increment_threshold must be > 0")
        return value


class TenantConfig(BaseModel):
    """A company and the chats that belong to it."""

    id: str = Field(description="Tenant identifier used to scope all data")
    name: str = Field(default="", description="Display name")
    chat_ids: list[int] = Field(default_factory=list, description="Telegram chats mapped to this tenant")
    admin_user_ids: list[int] = Field(
        default_factory=list,
        description="Users allowed to edit or omit entries (empty allows every member)",
    )


class Config(BaseModel):
    """Root configuration for FleetLog."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    kilometers: KilometerConfig = Field(default_factory=KilometerConfig)
    tenants: list[TenantConfig] = Field(default_factory=list)
    timezone: str = Field(
        default="UTC",
        description="IANA timezone of the fleet; shift dates and timestamps are read on this clock",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone is a valid IANA timezone identifier."""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, KeyError, ValueError):
            raise ValueError(
                f"Invalid timezone '{v}'. Use IANA timezone identifiers "
                f"(e.g., 'America/Mexico_City', 'Europe/Madrid', 'UTC')."
            )
        return v

    @field_validator("tenants")
    @classmethod
    def _unique_chats(cls, tenants: list[TenantConfig]) -> list[TenantConfig]:
        seen: dict[int, str] = {}
        for tenant in tenants:
            for chat_id in tenant.chat_ids:
                if chat_id in seen and seen[chat_id] != tenant.id:
                    raise ValueError(
                        f"Chat {chat_id} is mapped to both '{seen[chat_id]}' and '{tenant.id}'"
                    )
                seen[chat_id] = tenant.id
        return tenants
