"""Engine configuration using Pydantic Settings.

This module centralizes runtime configuration for the deployment engine.
Values can be provided via environment variables (preferred) or fall back to
the defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

Environment variable prefix: ``DEPLOY_ENGINE_`` (e.g. ``DEPLOY_ENGINE_PORT``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deploy_engine.constants import ENV_STAGING


def _default_integrity_probe_paths() -> dict[str, str]:
    return {
        "database_connection": "/health/database",
        "configuration_files": "/health/config",
        "application_startup": "/health",
        "api_endpoints": "/health/api",
        "security_monitoring": "/health/security",
    }


class Settings(BaseSettings):
    """Runtime engine settings.

    Attributes map directly to environment variables using the ``DEPLOY_ENGINE_``
    prefix (case-insensitive). For example, ``port`` <- ``DEPLOY_ENGINE_PORT``.
    """

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Host interface to bind the server",
    )  # fmt: skip
    port: int = Field(
        default=8080,
        description="Server port",
    )  # fmt: skip
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload in development",
    )  # fmt: skip
    audit_log_path: str | None = Field(
        default=None,
        description="File receiving audit entries as JSON lines; audit entries only reach the console when unset",
    )  # fmt: skip

    # Record store
    database_url: str | None = Field(
        default=None,
        description="Database connection string; records are kept in memory when unset",
    )  # fmt: skip
    sql_log: bool = Field(
        default=False,
        description="Enable SQL query logging",
    )  # fmt: skip

    # Pipeline
    default_environment: str = Field(
        default=ENV_STAGING,
        description="Target environment when a change request carries no hint",
    )  # fmt: skip
    workspace_root: str = Field(
        default=".",
        description="Working directory for stage commands and snapshot capture",
    )  # fmt: skip
    config_file_patterns: list[str] = Field(
        default_factory=lambda: ["*.yaml", "*.yml", "*.toml", "*.json", "*.env", "config/**/*"],
        description="Glob patterns enumerating configuration files for snapshots",
    )

    rollback_commands: list[str] = Field(
        default_factory=lambda: ['echo "Restoring {environment} to {source_revision}"'],
        description="Restore command templates run when a rollback executes",
    )
    rollback_timeout_seconds: float = Field(
        default=600.0,
        description="Timeout for the restore commands of one rollback",
    )  # fmt: skip

    # Monitoring and health checks
    probe_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL for relative health probe targets",
    )  # fmt: skip
    health_check_path: str = Field(
        default="/health",
        description="Post-deploy health probe target",
    )  # fmt: skip
    health_check_timeout_seconds: float = Field(
        default=30.0,
        description="Health probe timeout",
    )  # fmt: skip
    health_check_interval_seconds: float = Field(
        default=30.0,
        description="Period of health checks while a monitored deployment runs",
    )  # fmt: skip
    fail_on_unhealthy_probe: bool = Field(
        default=False,
        description="Fail a deployment when its post-deploy health probe is unhealthy",
    )  # fmt: skip
    build_log_capacity: int = Field(
        default=1000,
        ge=1,
        description="Maximum build log entries retained per deployment",
    )  # fmt: skip
    session_retention_seconds: float = Field(
        default=300.0,
        description="Grace period before a completed monitor session is discarded",
    )  # fmt: skip
    subscriber_queue_size: int = Field(
        default=256,
        ge=1,
        description="Per-subscriber status queue size",
    )  # fmt: skip
    integrity_probe_paths: dict[str, str] = Field(
        default_factory=_default_integrity_probe_paths,
        description="Probe path per post-rollback integrity checklist item",
    )

    # Retention
    test_history_limit: int = Field(
        default=50,
        ge=1,
        description="Test executions retained per project",
    )  # fmt: skip
    approval_retention_seconds: float = Field(
        default=3600.0,
        description="Retention of resolved approval requests",
    )  # fmt: skip
    rollback_retention_seconds: float = Field(
        default=86400.0,
        description="Retention of finished rollback requests",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    def probe_url(self, target: str) -> str:
        """Resolve a probe target against ``probe_base_url`` unless it is absolute."""
        if target.startswith(("http://", "https://")):
            return target
        return f"{self.probe_base_url.rstrip('/')}/{target.lstrip('/')}"

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_ENGINE_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
