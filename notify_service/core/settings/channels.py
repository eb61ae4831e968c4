"""Delivery channel provider settings (SMTP email and Twilio SMS)."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailChannelSettings(BaseSettings):
    """SMTP provider used by the email channel.

    Environment variables use EMAIL_ prefix.
    Example: EMAIL_SMTP_HOST=smtp.example.com, EMAIL_SMTP_PORT=587
    """

    smtp_host: str | None = Field(
        default=None,
        max_length=255,
        description="SMTP server hostname; email delivery is disabled when unset",
    )
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_username: str | None = Field(default=None, description="SMTP username")
    smtp_password: SecretStr | None = Field(default=None, description="SMTP password")
    use_tls: bool = Field(
        default=False, description="Connect with implicit TLS (SMTPS, usually port 465)"
    )
    start_tls: bool = Field(
        default=True, description="Upgrade the connection with STARTTLS"
    )
    from_address: str = Field(
        default="no-reply@example.com",
        max_length=255,
        description="Sender address for outgoing notifications",
    )
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="SMTP timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)


class SmsChannelSettings(BaseSettings):
    """Twilio provider used by the SMS channel.

    Environment variables use TWILIO_ prefix.
    Example: TWILIO_ACCOUNT_SID=AC..., TWILIO_FROM_NUMBER=+15550001111
    """

    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: SecretStr | None = Field(default=None, description="Twilio auth token")
    from_number: str | None = Field(
        default=None, description="Sender phone number in E.164 format"
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL",
    )
    timeout: float = Field(default=15.0, ge=1.0, le=120.0, description="HTTP timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="TWILIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)
