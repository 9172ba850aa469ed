# app/db/models/anomaly_settings_model.py
"""
Typed configuration for the reward anomaly engine.

Types are enforced when Settings loads, so a value that is not a number
(e.g. SPIKE_COUNT_THRESHOLD=abc) stops the app at import. Ranges are not
checked here: missing or non-positive values pass, and each detector raises
InvalidConfiguration for the part it consumes, failing the report request.
"""

from typing import Optional
from pydantic import BaseModel, Field


class SpikeSettings(BaseModel):
    """Per-user daily velocity thresholds"""

    count_threshold: Optional[int] = None   # absolute daily action count
    multiplier: Optional[float] = None      # multiple of the trailing daily average

    class Config:
        frozen = True


class TopEarnerSettings(BaseModel):
    """Top earner ranking bounds"""

    top_n: Optional[int] = 10
    confirmed_only: bool = False

    class Config:
        frozen = True


class AnomalyEngineSettings(BaseModel):
    """Complete engine configuration"""

    spike: SpikeSettings = Field(default_factory=SpikeSettings)
    top_earners: TopEarnerSettings = Field(default_factory=TopEarnerSettings)
    duplicate_group_limit: Optional[int] = 20   # None reports every group

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "spike": {"count_threshold": 20, "multiplier": 3.0},
                "top_earners": {"top_n": 10, "confirmed_only": False},
                "duplicate_group_limit": 20,
            }
        }
