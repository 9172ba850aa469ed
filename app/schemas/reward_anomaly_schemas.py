# app/schemas/reward_anomaly_schemas.py
"""
Reward Anomaly Schemas for the admin dashboard.

Field names match the dashboard payload exactly. The wire shape is validated
once here; callers do not need fallbacks for missing name fields.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel

from app.anomaly_engine.models import AnomalyReport
from app.db.models.reward_event_model import UserProfile


class RewardStats(BaseModel):
    """Scalar statistics for the window"""
    total_actions: int
    total_amount: float
    unique_users: int
    unique_posts: int
    pending_confirmations: int


class TopEarnerItem(BaseModel):
    user_id: str
    username: str
    display_name: Optional[str] = None
    total_earned: float
    action_count: int


class DuplicateHashItem(BaseModel):
    """Same content rewarded multiple times"""
    hash: str
    occurrence_count: int
    total_amount: float
    sample_user: str
    sample_excerpt: Optional[str] = None


class SpikeItem(BaseModel):
    """Unusual burst of rewarded actions for one user on one day"""
    user_id: str
    username: str
    display_name: Optional[str] = None
    action_date: str  # YYYY-MM-DD
    daily_count: int
    daily_amount: float


class RewardAnomalyResponse(BaseModel):
    timeframe: str
    since: str  # ISO-8601, UTC
    stats: RewardStats
    top_earners: List[TopEarnerItem]
    duplicate_hashes: List[DuplicateHashItem]
    spikes: List[SpikeItem]

    class Config:
        frozen = True


class ErrorItem(BaseModel):
    title: str
    detail: str
    code: str


class ErrorResponse(BaseModel):
    errors: List[ErrorItem]


def build_response(report: AnomalyReport, profiles: Dict[str, UserProfile]) -> RewardAnomalyResponse:
    """Render an AnomalyReport with usernames; unknown users fall back to their id."""

    def profile(user_id: str) -> UserProfile:
        return profiles.get(user_id) or UserProfile.placeholder(user_id)

    return RewardAnomalyResponse(
        timeframe=report.window.tag,
        since=report.window.since.isoformat(),
        stats=RewardStats(**report.stats.model_dump()),
        top_earners=[
            TopEarnerItem(
                user_id=e.user_id,
                username=profile(e.user_id).username,
                display_name=profile(e.user_id).display_name,
                total_earned=e.total_earned,
                action_count=e.action_count,
            )
            for e in report.top_earners
        ],
        duplicate_hashes=[
            DuplicateHashItem(
                hash=g.fingerprint,
                occurrence_count=g.occurrence_count,
                total_amount=g.total_amount,
                sample_user=profile(g.sample_user_id).username,
                sample_excerpt=g.sample_excerpt,
            )
            for g in report.duplicate_groups
        ],
        spikes=[
            SpikeItem(
                user_id=s.user_id,
                username=profile(s.user_id).username,
                display_name=profile(s.user_id).display_name,
                action_date=s.action_date.isoformat(),
                daily_count=s.daily_count,
                daily_amount=s.daily_amount,
            )
            for s in report.spikes
        ],
    )
