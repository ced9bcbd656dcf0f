"""Application configuration via pydantic settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Trippat Booking API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    admin_api_token: str | None = Field(default=None, alias="ADMIN_API_TOKEN")

    default_currency: str = Field("SAR", alias="DEFAULT_CURRENCY")
    fx_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {"USD": Decimal("1"), "SAR": Decimal("3.75")},
        alias="FX_RATES",
    )

    hotel_feed_base_url: str = Field(
        "http://api.tbotechnology.in/TBOHolidays_HotelAPI",
        alias="HOTEL_FEED_BASE_URL",
    )
    hotel_feed_username: str | None = Field(default=None, alias="HOTEL_FEED_USERNAME")
    hotel_feed_password: str | None = Field(default=None, alias="HOTEL_FEED_PASSWORD")
    hotel_feed_timeout_seconds: float = Field(30.0, alias="HOTEL_FEED_TIMEOUT_SECONDS")
    hotel_feed_guest_nationality: str = Field(
        "AE", alias="HOTEL_FEED_GUEST_NATIONALITY"
    )

    storefront_api_base_url: str = Field(
        "http://localhost:8000/api/v1", alias="STOREFRONT_API_BASE_URL"
    )
    storefront_timeout_seconds: float = Field(
        20.0, alias="STOREFRONT_TIMEOUT_SECONDS"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:3001",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], alias="CORS_ALLOWLIST"
    )

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_pricing: str = Field("20/minute", alias="RATE_LIMIT_PRICING")
    rate_limit_coupons: str = Field("30/minute", alias="RATE_LIMIT_COUPONS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
    )

    @field_validator("cors_allow_origins", "cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("default_currency", "hotel_feed_guest_nationality")
    @classmethod
    def _upper_codes(cls, value: str) -> str:
        return value.strip().upper()


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
