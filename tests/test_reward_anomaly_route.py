"""
HTTP tests for GET /api/v1/admin/reward-anomalies
"""
import sys
import os
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from app.api.v1.routes.reward_anomaly_route import get_reward_anomaly_service
from app.core.admin_security import create_access_token
from app.core.exceptions import StoreUnavailable
from app.db.models.anomaly_settings_model import AnomalyEngineSettings, SpikeSettings
from app.db.models.reward_event_model import UserProfile, build_reward_event
from app.db.reward_event_store import InMemoryProfileDirectory, InMemoryRewardEventStore
from app.main import app
from app.services.reward_anomaly_service import RewardAnomalyService

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)
URL = "/api/v1/admin/reward-anomalies"


class DownStore(InMemoryRewardEventStore):
    async def query(self, since, until):
        self.query_count += 1
        raise StoreUnavailable("Reward event store is unavailable.")


def _events():
    events = [
        build_reward_event(
            user_id="alice", amount=1.0, occurred_at=NOW - timedelta(minutes=5 + i),
            post_id="p1", action_type="like", event_id=f"like-{i}",
        )
        for i in range(30)
    ]
    events += [
        build_reward_event(
            user_id=user, amount=15.0, occurred_at=NOW - timedelta(hours=1, minutes=i),
            post_id="p2", content="Same old comment", action_type="comment",
            event_id=f"comment-{i}",
        )
        for i, user in enumerate(["bob", "carol"])
    ]
    return events


def _service(store=None):
    return RewardAnomalyService(
        store=store or InMemoryRewardEventStore(_events()),
        profiles=InMemoryProfileDirectory([
            UserProfile(user_id="alice", username="alice", display_name="Alice"),
        ]),
        config=AnomalyEngineSettings(spike=SpikeSettings(count_threshold=20, multiplier=3.0)),
        clock=lambda: NOW,
    )


def _headers(role="admin"):
    token = create_access_token({"id": "admin-1", "email": "ops@example.com", "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    app.dependency_overrides[get_reward_anomaly_service] = lambda: _service()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_admin_gets_report_in_data_envelope(client):
    response = client.get(URL, params={"timeframe": "24h"}, headers=_headers())
    assert response.status_code == 200

    data = response.json()["data"]
    assert set(data) == {"timeframe", "since", "stats", "top_earners", "duplicate_hashes", "spikes"}
    assert data["timeframe"] == "24h"
    assert data["since"] == (NOW - timedelta(hours=24)).isoformat()
    assert set(data["stats"]) == {
        "total_actions", "total_amount", "unique_users", "unique_posts", "pending_confirmations",
    }
    assert data["stats"]["total_actions"] == 32

    assert set(data["top_earners"][0]) == {
        "user_id", "username", "display_name", "total_earned", "action_count",
    }
    assert set(data["duplicate_hashes"][0]) == {
        "hash", "occurrence_count", "total_amount", "sample_user", "sample_excerpt",
    }
    assert data["duplicate_hashes"][0]["occurrence_count"] == 2

    assert set(data["spikes"][0]) == {
        "user_id", "username", "display_name", "action_date", "daily_count", "daily_amount",
    }
    assert data["spikes"][0]["user_id"] == "alice"
    assert data["spikes"][0]["action_date"] == "2024-05-10"


def test_timeframe_defaults_to_24h(client):
    response = client.get(URL, headers=_headers())
    assert response.status_code == 200
    assert response.json()["data"]["timeframe"] == "24h"


def test_invalid_timeframe_is_400(client):
    response = client.get(URL, params={"timeframe": "1y"}, headers=_headers())
    assert response.status_code == 400
    error = response.json()["errors"][0]
    assert error["code"] == "invalid_timeframe"
    assert set(error) == {"title", "detail", "code"}


def test_non_admin_is_forbidden(client):
    response = client.get(URL, headers=_headers(role="user"))
    assert response.status_code == 403
    assert response.json()["errors"][0]["code"] == "permission_denied"


def test_missing_token_is_unauthenticated(client):
    response = client.get(URL)
    assert response.status_code == 401
    assert response.json()["errors"][0]["code"] == "not_authenticated"


def test_garbage_token_is_unauthenticated(client):
    response = client.get(URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_store_outage_is_503_without_internals():
    store = DownStore()
    app.dependency_overrides[get_reward_anomaly_service] = lambda: _service(store=store)
    try:
        response = TestClient(app).get(URL, headers=_headers())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    body = response.json()
    assert list(body) == ["errors"]
    assert body["errors"][0]["code"] == "store_unavailable"
    # one internal retry before giving up
    assert store.query_count == 2


def test_uninitialised_engine_reports_unavailable():
    response = TestClient(app).get(URL, headers=_headers())
    assert response.status_code == 503
    assert response.json()["errors"][0]["code"] == "store_unavailable"


def test_health_endpoint():
    response = TestClient(app).get("/")
    assert response.status_code == 200
    assert response.json()["version"] == "1.0.0"
