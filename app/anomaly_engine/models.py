# app/anomaly_engine/models.py
"""
Value objects produced by the reward anomaly engine.

All of them are frozen: a report is a computed projection over one event
snapshot and is never edited after assembly.
"""

from datetime import date, datetime
from typing import Optional, Tuple
from pydantic import BaseModel


class TimeWindow(BaseModel):
    """Half-open interval [since, until) for one timeframe tag"""

    tag: str
    since: datetime
    until: datetime

    class Config:
        frozen = True

    def contains(self, moment: datetime) -> bool:
        return self.since <= moment < self.until


class AggregateStats(BaseModel):
    total_actions: int = 0
    total_amount: float = 0.0
    unique_users: int = 0
    unique_posts: int = 0
    pending_confirmations: int = 0

    class Config:
        frozen = True


class TopEarner(BaseModel):
    user_id: str
    total_earned: float
    action_count: int

    class Config:
        frozen = True


class DuplicateGroup(BaseModel):
    """Reward events sharing one content fingerprint (always 2 or more)"""

    fingerprint: str
    occurrence_count: int
    total_amount: float
    sample_user_id: str
    sample_excerpt: Optional[str] = None

    class Config:
        frozen = True


class SpikeRecord(BaseModel):
    """One (user, UTC calendar day) bucket that crossed the spike threshold"""

    user_id: str
    action_date: date
    daily_count: int
    daily_amount: float

    class Config:
        frozen = True


class AnomalyReport(BaseModel):
    window: TimeWindow
    stats: AggregateStats
    top_earners: Tuple[TopEarner, ...] = ()
    duplicate_groups: Tuple[DuplicateGroup, ...] = ()
    spikes: Tuple[SpikeRecord, ...] = ()

    class Config:
        frozen = True

    def user_ids(self) -> Tuple[str, ...]:
        """Every user referenced by the report, sorted, for profile lookup"""
        ids = {e.user_id for e in self.top_earners}
        ids.update(g.sample_user_id for g in self.duplicate_groups)
        ids.update(s.user_id for s in self.spikes)
        return tuple(sorted(ids))
