"""Application configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="hrflow", description="Application name")
    environment: Literal["development", "testing", "staging", "production"] = Field(
        default="development", description="Runtime environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # Database
    db_host: str = Field(default="localhost", description="PostgreSQL host")
    db_port: int = Field(default=5432, description="PostgreSQL port")
    db_user: str = Field(default="postgres", description="PostgreSQL user")
    db_password: str = Field(default="postgres", description="PostgreSQL password")
    db_name: str = Field(default="hrflow", description="PostgreSQL database name")

    # Redis (Celery broker and result backend)
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, description="Redis port")
    redis_db: int = Field(default=0, description="Redis database number")
    redis_password: str | None = Field(default=None, description="Redis password")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json", description="Log output format"
    )

    # Approval SLA defaults
    default_sla_hours: float = Field(
        default=24.0, gt=0, description="Step SLA when a workflow step omits it"
    )
    default_escalation_grace_hours: float = Field(
        default=12.0,
        ge=0,
        description="Hours past the step SLA before escalation when omitted",
    )
    unresolved_approver_policy: Literal["unassigned", "fail"] = Field(
        default="unassigned",
        description="Mark unresolved steps for manual assignment, or block creation",
    )
    escalation_role: str = Field(
        default="company_admin", description="Role notified when a step breaches SLA"
    )
    sla_sweep_interval_seconds: float = Field(
        default=300.0, gt=0, description="Cadence of the escalation sweep"
    )

    # Notifications
    notification_backend: Literal["log", "webhook", "celery"] = Field(
        default="log", description="How notification intents are delivered"
    )
    notification_channel: Literal["email", "sms", "push", "in-app"] = Field(
        default="email", description="Channel recorded on notification intents"
    )
    notification_webhook_url: str | None = Field(
        default=None, description="Webhook receiving notification intents"
    )

    @computed_field
    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @computed_field
    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
