from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CARTFLOW_", extra="ignore")

    # Shipping quotes
    quote_debounce_seconds: float = Field(default=0.5, ge=0)
    light_tier_max_grams: int = Field(default=7500, gt=0)
    default_item_weight_kg: float = Field(default=0.5, gt=0)

    # Pending checkout record; None keeps it until submission clears it
    pending_checkout_ttl_seconds: int | None = None

    log_level: str = "INFO"

    @property
    def pending_checkout_ttl(self) -> timedelta | None:
        if self.pending_checkout_ttl_seconds is None:
            return None
        return timedelta(seconds=self.pending_checkout_ttl_seconds)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
