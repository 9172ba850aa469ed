from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from app.db.models.anomaly_settings_model import (
    AnomalyEngineSettings, SpikeSettings, TopEarnerSettings
)


class Settings(BaseSettings):
    PROJECT_NAME: str = "Reward Anomaly Engine"
    LOG_LEVEL: str = "INFO"

    # MongoDB Config
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "fancoin"
    MONGO_SNAPSHOT_READS: bool = False

    # Redis (shared report cache); unset disables the second cache level
    REDIS_URL: Optional[str] = None

    # Admin JWT
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ])

    # Engine
    STORE_QUERY_TIMEOUT_SECONDS: float = 5.0
    REPORT_CACHE_TTL_SECONDS: float = 30.0
    PARALLEL_ANALYSIS: bool = True

    # Spike thresholds have no defaults: the operator must supply both
    SPIKE_COUNT_THRESHOLD: Optional[int] = None
    SPIKE_MULTIPLIER: Optional[float] = None

    TOP_EARNERS_LIMIT: int = 10
    TOP_EARNERS_CONFIRMED_ONLY: bool = False
    DUPLICATE_GROUP_LIMIT: Optional[int] = 20

    class Config:
        env_file = ".env"

    def engine_settings(self) -> AnomalyEngineSettings:
        """Typed engine configuration built from the flat environment values."""
        return AnomalyEngineSettings(
            spike=SpikeSettings(
                count_threshold=self.SPIKE_COUNT_THRESHOLD,
                multiplier=self.SPIKE_MULTIPLIER,
            ),
            top_earners=TopEarnerSettings(
                top_n=self.TOP_EARNERS_LIMIT,
                confirmed_only=self.TOP_EARNERS_CONFIRMED_ONLY,
            ),
            duplicate_group_limit=self.DUPLICATE_GROUP_LIMIT,
        )


settings = Settings()
