# app/anomaly_engine/duplicate_detector.py
"""
Duplicate content detection.

Surfaces reward abuse through repeated content: the same (normalized) comment
text rewarded more than once. Events without a fingerprint are non-content
rewards and never form a group.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from app.anomaly_engine.models import DuplicateGroup
from app.core.exceptions import InvalidConfiguration
from app.db.models.reward_event_model import RewardEvent


def detect_duplicates(
    events: Iterable[RewardEvent],
    limit: Optional[int] = None,
) -> List[DuplicateGroup]:
    """
    Group events by content fingerprint and report groups of size >= 2.

    Ordering: occurrence_count desc, total_amount desc, fingerprint asc.
    The sample is the earliest event of the group (ties by event id), so
    repeated runs over the same data pick the same sample.
    """
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise InvalidConfiguration(f"Duplicate group limit must be a positive integer, got {limit!r}.")

    groups: Dict[str, List[RewardEvent]] = defaultdict(list)
    for event in events:
        if event.content_fingerprint:
            groups[event.content_fingerprint].append(event)

    duplicates: List[DuplicateGroup] = []
    for fingerprint, members in groups.items():
        if len(members) < 2:
            continue
        sample = min(members, key=lambda e: (e.occurred_at, e.id))
        duplicates.append(DuplicateGroup(
            fingerprint=fingerprint,
            occurrence_count=len(members),
            total_amount=math.fsum(e.amount for e in members),
            sample_user_id=sample.user_id,
            sample_excerpt=sample.content_excerpt,
        ))

    duplicates.sort(key=lambda g: (-g.occurrence_count, -g.total_amount, g.fingerprint))
    if limit is not None:
        duplicates = duplicates[:limit]
    return duplicates
