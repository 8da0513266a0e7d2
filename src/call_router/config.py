"""Application configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///call_router.db"
    echo: bool = False


class TwilioSettings(BaseModel):
    """Twilio integration configuration."""

    account_sid: str = ""
    auth_token: str = ""
    # Practice number shown as caller ID on bridged and outbound legs
    phone_number: str = ""
    # Public base URL the carrier calls back into (action/status URLs)
    backend_url: str = "https://api.crowndesk.ai"
    # Path the Twilio webhook router is mounted under
    webhook_path: str = "/api/v1/webhooks/twilio"
    # Base URL of the media-stream endpoint; derived from backend_url when empty
    stream_url: str = ""
    api_base: str = "https://api.twilio.com/2010-04-01"
    request_timeout: float = 30.0


class WebhookSettings(BaseModel):
    """Webhook security configuration."""

    validate_signatures: bool = True


class TelephonySettings(BaseModel):
    """Telephony subsystem configuration."""

    twilio: TwilioSettings = Field(default_factory=TwilioSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)


class RoutingSettings(BaseModel):
    """Call routing and TwiML rendering defaults."""

    # Reference zone when an agent has no (or an invalid) timezone
    default_timezone: str = "America/New_York"

    voice: str = "Polly.Joanna"
    language: str = "en-US"

    dial_timeout: int = 30
    emergency_dial_timeout: int = 45
    gather_timeout: int = 5
    transfer_gather_timeout: int = 10

    record_max_length: int = 120
    voicemail_max_length: int = 180

    queue_name: str = "support"
    hold_music_url: str = "http://com.twilio.sounds.music.s3.amazonaws.com/MARKOVICHAMP-B4.mp3"

    max_transfer_menu_options: int = 9


class Settings(BaseSettings):
    """Application settings.

    Loaded from:
    1. Environment variables (CR_*)
    2. configs/{environment}.yaml
    3. configs/default.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="CR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    service_name: str = "dental-call-router"

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Subsystems
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    telephony: TelephonySettings = Field(default_factory=TelephonySettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)

    @property
    def webhook_validate_signatures(self) -> bool:
        """Whether to validate webhook signatures."""
        return self.telephony.webhooks.validate_signatures

    @property
    def twilio_auth_token(self) -> str | None:
        """Twilio auth token for signature validation."""
        return self.telephony.twilio.auth_token or None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings object loaded from config files and environment.
    """
    import os
    from dynaconf import Dynaconf

    config_dir = Path("configs")
    env = os.getenv("CR_ENV", "development")

    settings_files = []
    if (config_dir / "default.yaml").exists():
        settings_files.append(str(config_dir / "default.yaml"))
    if (config_dir / f"{env}.yaml").exists():
        settings_files.append(str(config_dir / f"{env}.yaml"))

    dynaconf = Dynaconf(
        envvar_prefix="CR",
        settings_files=settings_files,
        load_dotenv=True,
    )

    config_dict: dict[str, Any] = {}
    for key in dynaconf.keys():
        if not key.startswith("_"):
            config_dict[key.lower()] = dynaconf[key]

    config_dict["environment"] = env

    return Settings(**config_dict)


def validate_production_settings(settings: Settings) -> list[str]:
    """Validate settings for production readiness.

    Args:
        settings: Application settings to validate.

    Returns:
        List of validation error messages (empty if all valid).
    """
    errors: list[str] = []

    if settings.environment not in ("production", "staging", "prod"):
        return errors

    twilio = settings.telephony.twilio
    if not twilio.auth_token:
        errors.append("CR_TELEPHONY__TWILIO__AUTH_TOKEN must be set in production")
    if not twilio.account_sid:
        errors.append("CR_TELEPHONY__TWILIO__ACCOUNT_SID must be set in production")
    if not twilio.phone_number:
        errors.append("CR_TELEPHONY__TWILIO__PHONE_NUMBER must be set in production")
    if not settings.telephony.webhooks.validate_signatures:
        errors.append("Webhook signature validation must be enabled in production")

    return errors


def require_valid_settings() -> Settings:
    """Get settings and raise if production validation fails.

    Raises:
        ValueError: If production settings are invalid.

    Returns:
        Validated settings.
    """
    settings = get_settings()
    errors = validate_production_settings(settings)

    if errors:
        error_list = "\n  - ".join(errors)
        raise ValueError(
            f"Production configuration errors:\n  - {error_list}"
        )

    return settings
