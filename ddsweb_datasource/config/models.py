"""Config models and loader.

This module defines Pydantic models for file- and environment-based
configuration. A config file maps logical gateway ids to connection settings;
each gateway gets its own adapter instance and therefore its own fixed DDS
entity identity (application, participant, subscriber).
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APPLICATION_NAME = "GrafanaApp"
DEFAULT_PARTICIPANT_NAME = "GrafanaParticipant"
DEFAULT_SUBSCRIBER_NAME = "GrafanaSubscriber"


class GatewayConfig(BaseModel):
    """Configuration for a single DDS-Web gateway.

    Attributes
    ----------
    url: str
        Base URL of the gateway (e.g., "http://localhost:8080").
    domain_id: int
        DDS domain id used when creating the domain participant.
    keep_last_samples: int
        Default KeepLast history depth for data readers.
    timeout_seconds: int
        HTTP request timeout in seconds for all gateway operations.
    reconcile_existing: bool
        When set, a topic that already exists is re-PUT with the requested
        definition instead of being left as-is. Existing data readers are
        always re-PUT.
    """

    url: str = Field(..., description="DDS-Web gateway base URL")
    domain_id: int = Field(0, ge=0, description="DDS domain id")
    keep_last_samples: int = Field(
        1000, ge=1, description="Default reader history depth (KeepLast)"
    )
    timeout_seconds: int = Field(30, ge=1)
    application_name: str = Field(DEFAULT_APPLICATION_NAME, min_length=1)
    participant_name: str = Field(DEFAULT_PARTICIPANT_NAME, min_length=1)
    subscriber_name: str = Field(DEFAULT_SUBSCRIBER_NAME, min_length=1)
    reconcile_existing: bool = Field(
        False, description="PUT desired topic definition on conflict"
    )


class AppConfig(BaseModel):
    """Top-level application configuration.

    Attributes
    ----------
    gateways: Dict[str, GatewayConfig]
        Mapping from logical ``gateway_id`` to connection settings.
    """

    gateways: Dict[str, GatewayConfig] = Field(default_factory=dict)

    @staticmethod
    def load(path: Path) -> "AppConfig":
        """Load application config from a JSON file."""
        return AppConfig.model_validate_json(path.read_bytes())


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    config: Optional[str]
        Path to the JSON config file loaded by the HTTP host at startup.
    http_token: Optional[str]
        Bearer token required on gateway endpoints; disabled when unset.
    cors_origins: str
        Comma-separated list of allowed CORS origins.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DDSWEB_")

    log_level: str = Field("INFO")
    config: Optional[str] = None
    http_token: Optional[str] = None
    cors_origins: str = ""
