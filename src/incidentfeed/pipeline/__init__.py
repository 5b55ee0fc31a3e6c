"""Incident pipeline: Sources → Aggregator → Deduplicator → Ranker.

Components:
- Aggregator: fan-out over all locations, concatenated in location order
- dedupe: one incident per id, last write wins
- rank: priority ascending, then newest first
- PipelineCoordinator: runs the stages and publishes the pipeline state
"""

from incidentfeed.pipeline.aggregator import Aggregation, Aggregator
from incidentfeed.pipeline.coordinator import (
    Failed,
    Idle,
    Loading,
    PipelineCoordinator,
    PipelineState,
    Succeeded,
)
from incidentfeed.pipeline.dedupe import dedupe
from incidentfeed.pipeline.ranker import RankedIncidents, compare, parse_instant, rank, rank_incidents

__all__ = [
    "Aggregation",
    "Aggregator",
    "Failed",
    "Idle",
    "Loading",
    "PipelineCoordinator",
    "PipelineState",
    "Succeeded",
    "dedupe",
    "RankedIncidents",
    "compare",
    "parse_instant",
    "rank",
    "rank_incidents",
]
