# app/anomaly_engine/spike_detector.py
"""
Reward Velocity Spike Detection
-------------------------------
Buckets reward events by (user, UTC calendar day) and flags buckets where:

1. daily_count > count_threshold                         (absolute rule)
2. daily_count > multiplier × trailing_average_count     (relative rule)

trailing_average_count is the mean daily count over the user's earlier
active days inside the window. A user's first active day has no history,
so only the absolute rule applies to it.

When the window starts mid-day, the UTC day containing its start holds only
part of that day's events. It is neither reported nor used as a baseline.
The current day, containing the window end, is kept.
"""

import math
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from app.anomaly_engine.models import SpikeRecord
from app.core.exceptions import InvalidConfiguration
from app.db.models.anomaly_settings_model import SpikeSettings
from app.db.models.reward_event_model import RewardEvent


def validate_spike_settings(config: SpikeSettings) -> Tuple[int, float]:
    threshold = config.count_threshold
    multiplier = config.multiplier

    if threshold is None or multiplier is None:
        raise InvalidConfiguration(
            "Spike detection requires both spike.count_threshold and spike.multiplier."
        )
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
        raise InvalidConfiguration(
            f"spike.count_threshold must be a positive integer, got {threshold!r}."
        )
    if isinstance(multiplier, bool) or not math.isfinite(multiplier) or multiplier <= 0:
        raise InvalidConfiguration(
            f"spike.multiplier must be a positive number, got {multiplier!r}."
        )
    return threshold, float(multiplier)


def partial_start_day(window_start: Optional[datetime]) -> Optional[date]:
    """UTC day cut by a window that starts after midnight, else None"""
    if window_start is None:
        return None
    start = window_start.astimezone(timezone.utc)
    if start.time() == time(0, 0):
        return None
    return start.date()


def _daily_buckets(events: Iterable[RewardEvent], skip_day: Optional[date] = None) -> pd.DataFrame:
    rows = []
    for e in events:
        action_date = e.occurred_at.astimezone(timezone.utc).date()
        if action_date == skip_day:
            continue
        rows.append({"user_id": e.user_id, "action_date": action_date, "amount": e.amount})
    if not rows:
        return pd.DataFrame(columns=["user_id", "action_date", "daily_count", "daily_amount"])

    df = pd.DataFrame(rows)
    daily = (
        df.groupby(["user_id", "action_date"], sort=True)
        .agg(daily_count=("amount", "size"), daily_amount=("amount", math.fsum))
        .reset_index()
    )
    return daily


def detect_spikes(
    events: Iterable[RewardEvent],
    config: SpikeSettings,
    window_start: Optional[datetime] = None,
) -> List[SpikeRecord]:
    """
    Flag per-user daily reward velocity anomalies.

    Args:
        window_start: start of the analysed window; a partial first day is
            left out of both the results and the trailing baseline

    Returns:
        SpikeRecords sorted by daily_amount desc (then daily_count desc,
        user_id asc, action_date asc for a total order)
    """
    threshold, multiplier = validate_spike_settings(config)

    daily = _daily_buckets(events, skip_day=partial_start_day(window_start))
    if daily.empty:
        return []

    # groupby(sort=True) leaves each user's days in ascending date order
    daily["trailing_avg"] = daily.groupby("user_id")["daily_count"].transform(
        lambda counts: counts.shift(1).expanding().mean()
    )

    over_absolute = daily["daily_count"] > threshold
    over_relative = daily["trailing_avg"].notna() & (
        daily["daily_count"] > multiplier * daily["trailing_avg"]
    )
    flagged = daily[over_absolute | over_relative].sort_values(
        ["daily_amount", "daily_count", "user_id", "action_date"],
        ascending=[False, False, True, True],
    )

    return [
        SpikeRecord(
            user_id=str(row.user_id),
            action_date=row.action_date,
            daily_count=int(row.daily_count),
            daily_amount=float(row.daily_amount),
        )
        for row in flagged.itertuples(index=False)
    ]
