# app/anomaly_engine/report_assembler.py
"""
Anomaly Report Assembler
------------------------
Composes stats, top earners, duplicate groups and spikes into one
AnomalyReport. All four analyses read the same immutable snapshot restricted
to the same window, so the sections never disagree about the data.

Any analysis failure propagates: a partial report is never returned.
"""

import asyncio
import logging
from typing import Iterable, Tuple

from app.anomaly_engine.aggregator import aggregate_stats
from app.anomaly_engine.duplicate_detector import detect_duplicates
from app.anomaly_engine.models import AnomalyReport, TimeWindow
from app.anomaly_engine.spike_detector import detect_spikes, validate_spike_settings
from app.anomaly_engine.top_earners import rank_top_earners, validate_top_earner_settings
from app.core.exceptions import InvalidConfiguration
from app.db.models.anomaly_settings_model import AnomalyEngineSettings
from app.db.models.reward_event_model import RewardEvent

logger = logging.getLogger(__name__)


def validate_engine_settings(config: AnomalyEngineSettings) -> None:
    """Fail fast on bad configuration before any analysis runs."""
    validate_spike_settings(config.spike)
    validate_top_earner_settings(config.top_earners)
    limit = config.duplicate_group_limit
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise InvalidConfiguration(f"duplicate_group_limit must be a positive integer, got {limit!r}.")


def snapshot_window(window: TimeWindow, events: Iterable[RewardEvent]) -> Tuple[RewardEvent, ...]:
    """Freeze the in-window events, in store order."""
    return tuple(e for e in events if window.contains(e.occurred_at))


def assemble_report(
    window: TimeWindow,
    events: Iterable[RewardEvent],
    config: AnomalyEngineSettings,
) -> AnomalyReport:
    """Sequential assembly; the reference behavior for the parallel path."""
    validate_engine_settings(config)
    snapshot = snapshot_window(window, events)

    return AnomalyReport(
        window=window,
        stats=aggregate_stats(snapshot),
        top_earners=tuple(rank_top_earners(snapshot, config.top_earners)),
        duplicate_groups=tuple(detect_duplicates(snapshot, config.duplicate_group_limit)),
        spikes=tuple(detect_spikes(snapshot, config.spike, window.since)),
    )


async def assemble_report_async(
    window: TimeWindow,
    events: Iterable[RewardEvent],
    config: AnomalyEngineSettings,
    parallel: bool = True,
) -> AnomalyReport:
    """
    Same result as assemble_report. With `parallel`, the four analyses run
    concurrently in worker threads; they write disjoint report sections.
    """
    if not parallel:
        return await asyncio.to_thread(assemble_report, window, events, config)

    validate_engine_settings(config)
    snapshot = snapshot_window(window, events)

    # gather propagates the first failure, which aborts the report
    stats, top_earners, duplicates, spikes = await asyncio.gather(
        asyncio.to_thread(aggregate_stats, snapshot),
        asyncio.to_thread(rank_top_earners, snapshot, config.top_earners),
        asyncio.to_thread(detect_duplicates, snapshot, config.duplicate_group_limit),
        asyncio.to_thread(detect_spikes, snapshot, config.spike, window.since),
    )
    logger.debug(
        "Assembled %s report over %d events (%d duplicate groups, %d spikes)",
        window.tag, len(snapshot), len(duplicates), len(spikes),
    )
    return AnomalyReport(
        window=window,
        stats=stats,
        top_earners=tuple(top_earners),
        duplicate_groups=tuple(duplicates),
        spikes=tuple(spikes),
    )
