from typing import Annotated, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ScoreThresholds(BaseModel):
    baseline: int = 50
    trend_bonus: int = 20
    oversold_rsi: float = 30.0
    oversold_bonus: int = 20
    overbought_rsi: float = 70.0
    overbought_penalty: int = 20
    calm_vix: float = 20.0
    calm_bonus: int = 10
    stressed_vix: float = 30.0
    stressed_penalty: int = 20
    breadth_bonus: int = 15
    pe_safety_threshold: float = 22.0
    pe_safety_cap: int = 45


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    alpha_vantage_api_key: str = ""
    alpha_vantage_base_url: str = "https://www.alphavantage.co"
    database_url: str = "sqlite+aiosqlite:///./market_cache.db"

    cache_key: str = "market_data_history_full_v3"
    cache_ttl_seconds: float = 3600.0
    request_delay_seconds: float = 1.0
    request_timeout: float = 20.0

    primary_symbol: str = "SPY"
    volatility_symbol: str = "VIX"
    breadth_symbol: str = "RSP"
    valuation_symbol: str = "SPY"
    # Off by default: the free tier allows five calls per minute and the
    # three series already use most of it.
    fetch_valuation: bool = False
    default_pe_ratio: float = 23.1

    # Frontend dev server origins allowed to call the API.
    # In production, set ALLOWED_ORIGINS as a comma-separated string of domains.
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    )

    score_thresholds: ScoreThresholds = ScoreThresholds()

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        if not isinstance(v, str):
            return v
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://") and "+asyncpg" not in v:
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def has_api_key(self) -> bool:
        return bool(self.alpha_vantage_api_key.strip())


def get_settings() -> Settings:
    return Settings()
