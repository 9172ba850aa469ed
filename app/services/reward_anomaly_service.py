# app/services/reward_anomaly_service.py
"""
Reward Anomaly Service: one report per timeframe request.

Flow:
1. Validate the timeframe tag (no store access on failure)
2. Serve a fresh cached report when available
3. Resolve the window and read one snapshot from the store, under a timeout,
   with a single bounded retry on transient store errors
4. Assemble the report and render it with user profiles
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from app.anomaly_engine.models import TimeWindow
from app.anomaly_engine.report_assembler import assemble_report_async, validate_engine_settings
from app.anomaly_engine.window import parse_timeframe, resolve_window, utc_now
from app.core.exceptions import StoreTimeout, StoreUnavailable
from app.db.models.anomaly_settings_model import AnomalyEngineSettings
from app.db.models.reward_event_model import RewardEvent
from app.db.reward_event_store import ProfileDirectory, RewardEventStore
from app.schemas.reward_anomaly_schemas import RewardAnomalyResponse, build_response
from app.services.report_cache import ReportCache

logger = logging.getLogger(__name__)

SNAPSHOT_READ_ATTEMPTS = 2  # first read plus one internal retry


class RewardAnomalyService:
    def __init__(
        self,
        store: RewardEventStore,
        profiles: ProfileDirectory,
        config: AnomalyEngineSettings,
        query_timeout: float = 5.0,
        cache: Optional[ReportCache] = None,
        parallel: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.profiles = profiles
        self.config = config
        self.query_timeout = query_timeout
        self.cache = cache
        self.parallel = parallel
        self.clock = clock

    async def get_report(self, timeframe) -> RewardAnomalyResponse:
        tag = parse_timeframe(timeframe).value
        # bad configuration fails every request, cached or not
        validate_engine_settings(self.config)

        if self.cache is None:
            return await self.compute_report(tag)
        return await self.cache.get_or_compute(tag, lambda: self.compute_report(tag))

    async def compute_report(self, timeframe) -> RewardAnomalyResponse:
        window = resolve_window(timeframe, now=self.clock())
        events = await self.read_snapshot(window)
        report = await assemble_report_async(window, events, self.config, parallel=self.parallel)
        profiles = await self._with_timeout(
            self.profiles.get_profiles(report.user_ids()), "profile lookup"
        )
        return build_response(report, profiles)

    async def read_snapshot(self, window: TimeWindow) -> Sequence[RewardEvent]:
        """One consistent read of [since, until); retried once on transient errors."""
        last_error = None
        for attempt in range(1, SNAPSHOT_READ_ATTEMPTS + 1):
            try:
                return await self._with_timeout(
                    self.store.query(window.since, window.until), "reward event query"
                )
            except (StoreUnavailable, StoreTimeout) as e:
                last_error = e
                logger.warning(
                    "Snapshot read for %s failed (attempt %d/%d): %s",
                    window.tag, attempt, SNAPSHOT_READ_ATTEMPTS, e.detail,
                )
        raise last_error

    async def _with_timeout(self, awaitable, what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.query_timeout)
        except asyncio.TimeoutError:
            raise StoreTimeout(f"The {what} timed out after {self.query_timeout:g}s.")
