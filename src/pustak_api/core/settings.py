from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./pustak.db"
    database_echo: bool = False
    database_busy_timeout_seconds: float = Field(default=15.0, gt=0)

    # Tracing
    tracing_enabled: bool = True

    # Claim codes
    claim_code_length: int = Field(default=8, ge=4, le=32)

    # Milestone discounts
    milestone_order_threshold: int = Field(default=10, ge=1)
    milestone_discount_percentage: float = Field(default=10.0, gt=0, le=100)
    milestone_notification_type: str = "Discount Alert"
    milestone_notification_message: str = (
        "Congratulations! You have completed {threshold} orders and earned a "
        "{percentage:g}% stackable discount on your future purchases."
    )

    # Realtime notification push
    realtime_push_enabled: bool = True
    realtime_push_timeout_seconds: float = 2.0

    @field_validator("milestone_notification_type", mode="before")
    @classmethod
    def _strip_notification_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or "Discount Alert"
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
