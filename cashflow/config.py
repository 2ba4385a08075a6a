"""Application configuration."""
from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Projection defaults
    DEFAULT_HORIZON_DAYS: int = 30
    MAX_HORIZON_DAYS: int = 365
    DEFAULT_RESERVE_AMOUNT: Decimal = Decimal("0")

    # Marketplace settlement timing
    ASSUMED_SETTLEMENT_LENGTH_DAYS: int = 15
    PAYOUT_TRANSFER_LAG_DAYS: int = 1
    FORECASTS_ENABLED: bool = True

    # Two opportunity amounts closer than this are treated as the same figure
    OPPORTUNITY_EPSILON: Decimal = Decimal("0.01")

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
