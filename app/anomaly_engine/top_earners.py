# app/anomaly_engine/top_earners.py
import math
from collections import defaultdict
from typing import Dict, Iterable, List

from app.anomaly_engine.models import TopEarner
from app.core.exceptions import InvalidConfiguration
from app.db.models.anomaly_settings_model import TopEarnerSettings
from app.db.models.reward_event_model import RewardEvent


def validate_top_earner_settings(config: TopEarnerSettings) -> int:
    top_n = config.top_n
    if top_n is None or isinstance(top_n, bool) or not isinstance(top_n, int) or top_n <= 0:
        raise InvalidConfiguration(f"top_earners.top_n must be a positive integer, got {top_n!r}.")
    return top_n


def rank_top_earners(events: Iterable[RewardEvent], config: TopEarnerSettings) -> List[TopEarner]:
    """
    Rank users by total rewarded amount in the window.

    Ordered by total_earned desc, ties by user_id asc, truncated to top_n.
    In confirmed_only mode users without a single confirmed reward are
    dropped; the totals of the remaining users still cover all their events.
    """
    top_n = validate_top_earner_settings(config)

    amounts: Dict[str, List[float]] = defaultdict(list)
    confirmed_users = set()
    for event in events:
        amounts[event.user_id].append(event.amount)
        if event.confirmed:
            confirmed_users.add(event.user_id)

    earners = [
        TopEarner(user_id=user_id, total_earned=math.fsum(values), action_count=len(values))
        for user_id, values in amounts.items()
        if not config.confirmed_only or user_id in confirmed_users
    ]
    earners.sort(key=lambda e: (-e.total_earned, e.user_id))
    return earners[:top_n]
