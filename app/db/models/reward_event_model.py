# app/db/models/reward_event_model.py
"""
RewardEvent Model for the append-only reward log.

One document per engagement that earned a payout. Written by the upstream
engagement-reward pipeline, never updated afterwards.
"""

import hashlib
import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator

EXCERPT_MAX_LENGTH = 140

_WHITESPACE = re.compile(r"\s+")


def normalize_content(text: str) -> str:
    """NFKC, casefold and collapse whitespace so trivial edits share a fingerprint."""
    normalized = unicodedata.normalize("NFKC", text).casefold()
    return _WHITESPACE.sub(" ", normalized).strip()


def compute_fingerprint(text: Optional[str]) -> Optional[str]:
    """SHA-256 of the normalized content, or None when there is no content"""
    if text is None:
        return None
    normalized = normalize_content(text)
    if not normalized:
        return None
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def make_excerpt(text: Optional[str], max_length: int = EXCERPT_MAX_LENGTH) -> Optional[str]:
    if text is None:
        return None
    collapsed = _WHITESPACE.sub(" ", text).strip()
    if not collapsed:
        return None
    if len(collapsed) <= max_length:
        return collapsed
    return collapsed[: max_length - 1].rstrip() + "…"


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (Mongo returns naive values by default)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RewardEvent(BaseModel):
    """Immutable record of one rewarded engagement"""

    id: str
    user_id: str
    post_id: Optional[str] = None
    amount: float = Field(gt=0)
    occurred_at: datetime
    content_fingerprint: Optional[str] = None
    confirmed: bool = True

    action_type: Optional[str] = None       # "like" | "comment" | "share" | "watch"
    content_excerpt: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("occurred_at")
    @classmethod
    def _occurred_at_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @classmethod
    def from_document(cls, doc: dict) -> "RewardEvent":
        """Validate a raw `reward_events` document once, at the store boundary."""
        return cls(
            id=str(doc["_id"]),
            user_id=str(doc["user_id"]),
            post_id=str(doc["post_id"]) if doc.get("post_id") is not None else None,
            amount=doc["amount"],
            occurred_at=doc["occurred_at"],
            content_fingerprint=doc.get("content_fingerprint"),
            confirmed=doc.get("confirmed", True),
            action_type=doc.get("action_type"),
            content_excerpt=doc.get("content_excerpt"),
        )

    def to_document(self) -> dict:
        doc = self.model_dump(exclude={"id"})
        doc["_id"] = self.id
        return doc


def build_reward_event(
    user_id: str,
    amount: float,
    occurred_at: datetime,
    post_id: Optional[str] = None,
    content: Optional[str] = None,
    action_type: Optional[str] = None,
    confirmed: bool = True,
    event_id: Optional[str] = None,
) -> RewardEvent:
    """
    Build a RewardEvent from raw engagement data.
    Fingerprint and excerpt are derived from `content`; non-content rewards
    (likes, watches) carry neither.
    """
    return RewardEvent(
        id=event_id or uuid.uuid4().hex,
        user_id=user_id,
        post_id=post_id,
        amount=amount,
        occurred_at=occurred_at,
        content_fingerprint=compute_fingerprint(content),
        content_excerpt=make_excerpt(content),
        action_type=action_type,
        confirmed=confirmed,
    )


class UserProfile(BaseModel):
    """Display fields for a rewarded user"""

    user_id: str
    username: str
    display_name: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def placeholder(cls, user_id: str) -> "UserProfile":
        return cls(user_id=user_id, username=user_id, display_name=None)
