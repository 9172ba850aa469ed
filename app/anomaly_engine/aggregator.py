# app/anomaly_engine/aggregator.py
import math
from typing import Iterable, List, Set

from app.anomaly_engine.models import AggregateStats
from app.db.models.reward_event_model import RewardEvent


def aggregate_stats(events: Iterable[RewardEvent]) -> AggregateStats:
    """
    Scalar statistics over the window's events, in one pass.
    An empty window yields all-zero stats.
    """
    total_actions = 0
    pending = 0
    amounts: List[float] = []
    users: Set[str] = set()
    posts: Set[str] = set()

    for event in events:
        total_actions += 1
        amounts.append(event.amount)
        users.add(event.user_id)
        if event.post_id is not None:
            posts.add(event.post_id)
        if not event.confirmed:
            pending += 1

    return AggregateStats(
        total_actions=total_actions,
        # fsum is exact, so the total does not depend on event order
        total_amount=math.fsum(amounts),
        unique_users=len(users),
        unique_posts=len(posts),
        pending_confirmations=pending,
    )
