# backend/forecast_engine/config.py
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # environment: "dev" for running locally, "test" for pytest
    ENV: str = "dev"

    DATABASE_URL: str | None = None
    TEST_DATABASE_URL: str | None = None
    DB_REQUIRE_SSL: bool = True

    LOG_LEVEL: str = "INFO"

    # --- Forecasting ---
    # Days of history read before the forecast start date.
    FORECAST_LOOKBACK_DAYS: int = 180
    SMA_DEFAULT_WINDOW: int = 7
    EWMA_DEFAULT_ALPHA: float = 0.3
    SEASON_DEFAULT_LENGTH: int = 7
    # Backtests below this many observed days return no rows.
    BACKTEST_MIN_POINTS: int = 7
    # Densify the daily series with zeros for days without activity.
    ZERO_FILL_GAPS: bool = False
    # Worker threads shared by forecast/backtest/anomaly computations.
    FORECAST_MAX_WORKERS: int = 8

    # --- Result cache ---
    CACHE_ENABLED: bool = True
    CACHE_MAX_ENTRIES: int = 512
    CACHE_TTL_SECONDS: float = 900.0

    # --- Scheduler ---
    SCHEDULER_ENABLED: bool = True
    # IANA timezone name used by APScheduler (e.g., "UTC", "America/New_York").
    SCHEDULER_TZ: str = "UTC"
    # Optional persistent job store. If None, jobs live in memory.
    SCHEDULER_DB_URL: str | None = None
    NIGHTLY_HORIZON_DAYS: int = 7

    @model_validator(mode="after")
    def _check_forecast_defaults(self):
        if not 0.0 < self.EWMA_DEFAULT_ALPHA < 1.0:
            raise ValueError("EWMA_DEFAULT_ALPHA must be in (0, 1).")
        for name in (
            "FORECAST_LOOKBACK_DAYS",
            "SMA_DEFAULT_WINDOW",
            "FORECAST_MAX_WORKERS",
            "CACHE_MAX_ENTRIES",
            "NIGHTLY_HORIZON_DAYS",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1.")
        if self.SEASON_DEFAULT_LENGTH < 2:
            raise ValueError("SEASON_DEFAULT_LENGTH must be > 1.")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
