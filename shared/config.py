"""
Shared configuration management for the web chat settings service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="WEBCHAT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Remote workgroup service
    workgroup_service_url: str = Field(default="http://localhost:9090")
    workgroup_request_timeout: float = Field(default=10.0)
    workgroup_retry_attempts: int = Field(default=3)
    workgroup_retry_base_delay: float = Field(default=0.5)
    workgroup_failure_threshold: int = Field(default=5)
    workgroup_recovery_timeout: float = Field(default=30.0)

    # Settings cache
    settings_cache_max_entries: Optional[int] = Field(default=None)
    blank_image_path: Optional[str] = Field(default=None)

    # Change notifications
    kafka_notifications_enabled: bool = Field(default=False)
    kafka_bootstrap: str = Field(default="localhost:9092")
    kafka_group_id: str = Field(default="webchat-settings")
    workgroup_changes_topic: str = Field(default="webchat.workgroup.changed")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
