# app/anomaly_engine/window.py
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Optional

from app.anomaly_engine.models import TimeWindow
from app.core.exceptions import InvalidTimeframe


class Timeframe(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"


TIMEFRAME_DURATIONS: Dict[Timeframe, timedelta] = {
    Timeframe.LAST_24H: timedelta(hours=24),
    Timeframe.LAST_7D: timedelta(days=7),
    Timeframe.LAST_30D: timedelta(days=30),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timeframe(tag) -> Timeframe:
    """Validate a raw tag against the closed set {24h, 7d, 30d}."""
    try:
        return Timeframe(tag)
    except ValueError:
        allowed = ", ".join(t.value for t in Timeframe)
        raise InvalidTimeframe(f"Unsupported timeframe '{tag}'. Expected one of: {allowed}.")


def resolve_window(tag, now: Optional[datetime] = None) -> TimeWindow:
    """
    Resolve a timeframe tag to [until - duration, until).
    `now` defaults to the engine clock (UTC).
    """
    timeframe = parse_timeframe(tag)
    until = now if now is not None else utc_now()
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return TimeWindow(
        tag=timeframe.value,
        since=until - TIMEFRAME_DURATIONS[timeframe],
        until=until,
    )
