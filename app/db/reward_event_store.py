# app/db/reward_event_store.py
"""
Reward Event Store access layer.

The engine consumes the store through a narrow read interface:
    query(since, until) -> ordered sequence of RewardEvent   ([since, until))
plus a profile directory used to render usernames on the report.

MongoRewardEventStore is the production backend (Motor, `reward_events`
collection). The in-memory variants back local runs and tests and count
store accesses.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from bson import ObjectId
from pydantic import ValidationError
from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure, ExecutionTimeout, PyMongoError

from app.core.exceptions import StoreTimeout, StoreUnavailable
from app.db.models.reward_event_model import RewardEvent, UserProfile, to_utc

logger = logging.getLogger(__name__)


class RewardEventStore:
    """Read interface over the append-only reward log"""

    async def query(self, since: datetime, until: datetime) -> Sequence[RewardEvent]:
        raise NotImplementedError

    async def append(self, event: RewardEvent) -> None:
        raise NotImplementedError


class ProfileDirectory:
    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        raise NotImplementedError


# ========================================
# IN-MEMORY BACKENDS
# ========================================

class InMemoryRewardEventStore(RewardEventStore):
    def __init__(self, events: Optional[Iterable[RewardEvent]] = None):
        self._events: List[RewardEvent] = []
        self._ids = set()
        self.query_count = 0
        for event in events or ():
            self._append(event)

    def _append(self, event: RewardEvent) -> None:
        if event.id in self._ids:
            raise ValueError(f"Reward event {event.id} already recorded")
        self._ids.add(event.id)
        self._events.append(event)

    async def append(self, event: RewardEvent) -> None:
        self._append(event)

    async def query(self, since: datetime, until: datetime) -> Sequence[RewardEvent]:
        self.query_count += 1
        since, until = to_utc(since), to_utc(until)
        matched = [e for e in self._events if since <= e.occurred_at < until]
        matched.sort(key=lambda e: (e.occurred_at, e.id))
        return tuple(matched)


class InMemoryProfileDirectory(ProfileDirectory):
    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self._profiles = {p.user_id: p for p in profiles or ()}
        self.lookup_count = 0

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        self.lookup_count += 1
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


# ========================================
# MONGODB BACKENDS
# ========================================

class MongoRewardEventStore(RewardEventStore):
    """
    db is Motor database object (async)
    e.g. db = await get_database()
    """

    def __init__(self, db, max_time_ms: Optional[int] = None, snapshot_reads: bool = False):
        self.db = db
        self.collection = db.reward_events
        self.max_time_ms = max_time_ms
        self.snapshot_reads = snapshot_reads

    async def ensure_indexes(self):
        await self.collection.create_index([("occurred_at", ASCENDING), ("_id", ASCENDING)])
        await self.collection.create_index([("user_id", ASCENDING), ("occurred_at", ASCENDING)])
        await self.collection.create_index(
            [("content_fingerprint", ASCENDING), ("occurred_at", ASCENDING)],
            sparse=True,
        )

    async def append(self, event: RewardEvent) -> None:
        """Insert one event; a repeated id raises pymongo DuplicateKeyError."""
        try:
            await self.collection.insert_one(event.to_document())
        except ConnectionFailure as e:
            raise StoreUnavailable(f"Reward event store is unreachable: {e}")

    async def _fetch(self, q: dict, session=None) -> List[dict]:
        cursor = self.collection.find(q, session=session).sort(
            [("occurred_at", ASCENDING), ("_id", ASCENDING)]
        )
        if self.max_time_ms:
            cursor = cursor.max_time_ms(self.max_time_ms)
        return await cursor.to_list(length=None)

    async def query(self, since: datetime, until: datetime) -> Sequence[RewardEvent]:
        q = {"occurred_at": {"$gte": since, "$lt": until}}
        try:
            if self.snapshot_reads:
                # snapshot sessions need a replica set or sharded cluster
                async with await self.db.client.start_session(snapshot=True) as session:
                    docs = await self._fetch(q, session=session)
            else:
                docs = await self._fetch(q)
        except ExecutionTimeout:
            raise StoreTimeout("Reward event query exceeded its time limit.")
        except ConnectionFailure as e:
            raise StoreUnavailable(f"Reward event store is unreachable: {e}")
        except PyMongoError as e:
            logger.error("Reward event query failed: %s", e)
            raise StoreUnavailable("Reward event query failed.")

        try:
            return tuple(RewardEvent.from_document(doc) for doc in docs)
        except (KeyError, ValidationError) as e:
            logger.error("Malformed reward event document: %s", e)
            raise StoreUnavailable("Reward event store returned a malformed record.")


class MongoProfileDirectory(ProfileDirectory):
    def __init__(self, db):
        self.db = db

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
        user_ids = list(user_ids)
        if not user_ids:
            return {}

        # users may be keyed by ObjectId or by plain string id
        lookup_ids = [ObjectId(uid) for uid in user_ids if ObjectId.is_valid(uid)] + user_ids
        try:
            cursor = self.db.users.find(
                {"_id": {"$in": lookup_ids}},
                {"_id": 1, "username": 1, "display_name": 1},
            )
            docs = await cursor.to_list(length=len(lookup_ids))
        except ConnectionFailure as e:
            raise StoreUnavailable(f"User directory is unreachable: {e}")
        except PyMongoError as e:
            logger.error("Profile lookup failed: %s", e)
            raise StoreUnavailable("User directory lookup failed.")

        profiles: Dict[str, UserProfile] = {}
        for doc in docs:
            uid = str(doc["_id"])
            profiles[uid] = UserProfile(
                user_id=uid,
                username=doc.get("username") or uid,
                display_name=doc.get("display_name"),
            )
        return profiles
