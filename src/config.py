"""
Configuration module for the hotel booking chat agent.

Loads environment variables (and an optional .env file) into a typed settings
object shared by the entry points.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

MAX_CATALOG_RESULTS = 10


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string
        twilio_account_sid: Optional Twilio account SID
        twilio_auth_token: Optional Twilio auth token
        twilio_whatsapp_number: Optional WhatsApp-enabled Twilio sender number
        payment_simulation_delay_seconds: Delay before the simulated M-Pesa payment resolves
        catalog_result_limit: Maximum hotels returned per search (never above 10)
        currency: Currency label used in chat messages
    """

    # Database configuration
    database_url: str = Field(
        default="sqlite:///hotel_booking.db",
        alias="DATABASE_URL",
        description="SQLAlchemy connection string"
    )

    # Twilio WhatsApp Configuration
    twilio_account_sid: Optional[str] = Field(
        default=None,
        alias="TWILIO_ACCOUNT_SID",
        description="Twilio Account SID"
    )

    twilio_auth_token: Optional[str] = Field(
        default=None,
        alias="TWILIO_AUTH_TOKEN",
        description="Twilio Auth Token"
    )

    twilio_whatsapp_number: Optional[str] = Field(
        default=None,
        alias="TWILIO_WHATSAPP_NUMBER",
        description="WhatsApp-enabled Twilio sender number"
    )

    # Payment Configuration
    payment_simulation_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        alias="PAYMENT_SIMULATION_DELAY_SECONDS",
        description="Seconds before the simulated M-Pesa STK push resolves"
    )

    # Catalog Configuration
    catalog_result_limit: int = Field(
        default=MAX_CATALOG_RESULTS,
        ge=1,
        alias="CATALOG_RESULT_LIMIT",
        description="Maximum number of hotels returned per search"
    )

    currency: str = Field(
        default="KSh",
        alias="CURRENCY",
        description="Currency label for prices and totals"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Minimum log level"
    )

    log_to_file: bool = Field(
        default=False,
        alias="LOG_TO_FILE",
        description="Also write rotating log files under logs/"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("catalog_result_limit")
    @classmethod
    def cap_catalog_limit(cls, v: int) -> int:
        """Searches never return more than ten hotels."""
        return min(v, MAX_CATALOG_RESULTS)

    @property
    def twilio_configured(self) -> bool:
        """Whether all Twilio credentials needed for WhatsApp delivery are present."""
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_whatsapp_number
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
