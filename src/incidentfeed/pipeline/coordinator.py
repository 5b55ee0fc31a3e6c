"""Pipeline Coordinator: Aggregator → Deduplicator → Ranker.

Owns the observable pipeline state, an explicit tagged variant:

    Idle → Loading → Succeeded(incidents) | Failed(error)

Loading is entered as soon as run() is called. Every exception raised by the
sources or the pipeline stages is classified here, and only here, into a
PipelineError published as Failed. A failed run never publishes a partial
list.

Usage:
    coordinator = PipelineCoordinator(api, api, fan_out="concurrent")
    coordinator.subscribe(lambda state: print(type(state).__name__))
    incidents = await coordinator.run()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from incidentfeed.config import Settings
from incidentfeed.errors import DataQualityWarning, ErrorKind, PipelineBusyError, PipelineError
from incidentfeed.models import Incident
from incidentfeed.pipeline.aggregator import Aggregator, FanOut
from incidentfeed.pipeline.dedupe import dedupe
from incidentfeed.pipeline.ranker import rank_incidents
from incidentfeed.sources.base import IncidentSource, LocationSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    """No run has started (or the coordinator was reset)."""


@dataclass(frozen=True)
class Loading:
    """A run is in flight."""

    generation: int


@dataclass(frozen=True)
class Succeeded:
    """The last run finished and produced a ranked list.

    Attributes:
        incidents: Ranked, deduplicated incidents
        warnings: Data-quality problems found while ranking
        skipped_location_ids: Locations skipped after failing (only with
            skip_failed_locations)
    """

    incidents: tuple[Incident, ...]
    warnings: tuple[DataQualityWarning, ...] = ()
    skipped_location_ids: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Failed:
    """The last run failed; no incidents are available."""

    error: PipelineError

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


PipelineState = Union[Idle, Loading, Succeeded, Failed]
StateObserver = Callable[[PipelineState], None]


class PipelineCoordinator:
    """Runs the incident pipeline and publishes its state.

    Args:
        location_source: Supplies the locations
        incident_source: Supplies incidents per location
        fan_out: "sequential" (default) or "concurrent"
        concurrency: Max in-flight location retrievals in concurrent mode
        skip_failed_locations: Skip failing locations instead of failing the run
        timeout: Seconds before a run fails with ErrorKind.TIMEOUT (None = no limit)
    """

    def __init__(
        self,
        location_source: LocationSource,
        incident_source: IncidentSource,
        fan_out: FanOut = "sequential",
        concurrency: int = 8,
        skip_failed_locations: bool = False,
        timeout: float | None = None,
    ) -> None:
        self.aggregator = Aggregator(
            location_source,
            incident_source,
            fan_out=fan_out,
            concurrency=concurrency,
            skip_failed=skip_failed_locations,
        )
        self.timeout = timeout
        self._state: PipelineState = Idle()
        self._generation = 0
        self._observers: list[StateObserver] = []

    @classmethod
    def from_settings(cls, source: Any, config: Settings) -> "PipelineCoordinator":
        """Build a coordinator for a source implementing both read operations."""
        return cls(
            source,
            source,
            fan_out=config.fan_out,
            concurrency=config.fetch_concurrency,
            skip_failed_locations=config.skip_failed_locations,
            timeout=config.run_timeout,
        )

    @property
    def state(self) -> PipelineState:
        return self._state

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register an observer for state changes; returns an unsubscribe function."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def reset(self) -> None:
        """Return to Idle. An in-flight run can no longer publish its result."""
        self._generation += 1
        self._publish(Idle(), self._generation)

    def _publish(self, state: PipelineState, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale %s from run %d", type(state).__name__, generation)
            return
        self._state = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                logger.exception("State observer %r failed", observer)

    async def run(self) -> list[Incident]:
        """Run the pipeline once.

        Returns:
            Deduplicated incidents, priority ascending then newest first

        Raises:
            PipelineBusyError: If a run is already loading
            PipelineError: If the run failed; the state is then Failed
        """
        if isinstance(self._state, Loading):
            raise PipelineBusyError("a pipeline run is already in progress")

        self._generation += 1
        generation = self._generation
        self._publish(Loading(generation), generation)

        try:
            if self.timeout is not None:
                result = await asyncio.wait_for(self._execute(), timeout=self.timeout)
            else:
                result = await self._execute()
        except asyncio.CancelledError as e:
            # Abandoned by the caller (typically an outer timeout)
            self._publish(Failed(PipelineError(ErrorKind.TIMEOUT, e)), generation)
            raise
        except Exception as e:
            error = PipelineError.classify(e)
            logger.error("Pipeline run failed (%s): %s", error.kind.value, e)
            self._publish(Failed(error), generation)
            if error is e:
                raise
            raise error from e

        logger.info(
            "Pipeline run succeeded: %d incidents, %d warnings",
            len(result.incidents), len(result.warnings),
        )
        self._publish(result, generation)
        return list(result.incidents)

    async def _execute(self) -> Succeeded:
        aggregation = await self.aggregator.aggregate()
        unique = dedupe(aggregation.incidents)
        logger.debug("Deduplicated %d → %d incidents", len(aggregation.incidents), len(unique))
        ranked = rank_incidents(unique)
        return Succeeded(
            incidents=tuple(ranked.incidents),
            warnings=tuple(ranked.warnings),
            skipped_location_ids=tuple(aggregation.skipped_location_ids),
        )
