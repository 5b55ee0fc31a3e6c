"""Aggregator: fan-out retrieval across all locations.

Calls the Location Source once, then the Incident Source once per location,
and concatenates the results in location order (and, within a location, in
the order the source returned them).

Two fan-out modes:
- sequential: one location at a time
- concurrent: all locations at once (bounded by a semaphore); results are
  gathered by location index, so the concatenation order is the same as in
  sequential mode
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from incidentfeed.errors import IncidentFeedError, SourceUnavailable
from incidentfeed.models import Incident, Location
from incidentfeed.sources.base import IncidentSource, LocationSource

logger = logging.getLogger(__name__)

FanOut = Literal["sequential", "concurrent"]


@dataclass
class Aggregation:
    """Raw result of one fan-out.

    Attributes:
        locations: Locations as returned by the Location Source
        incidents: Concatenated incidents, no dedupe, no sorting
        skipped_location_ids: Locations skipped after a failed retrieval
            (only when skip_failed is enabled)
    """

    locations: list[Location]
    incidents: list[Incident]
    skipped_location_ids: list[Any] = field(default_factory=list)


class Aggregator:
    """Collects incidents from every location.

    Args:
        location_source: Supplies the locations
        incident_source: Supplies incidents per location id
        fan_out: "sequential" (default) or "concurrent"
        concurrency: Max in-flight retrievals in concurrent mode (default: 8)
        skip_failed: Skip locations whose retrieval raises SourceUnavailable
            instead of failing (default: False)
    """

    def __init__(
        self,
        location_source: LocationSource,
        incident_source: IncidentSource,
        fan_out: FanOut = "sequential",
        concurrency: int = 8,
        skip_failed: bool = False,
    ) -> None:
        if fan_out not in ("sequential", "concurrent"):
            raise ValueError(f"fan_out must be 'sequential' or 'concurrent', got '{fan_out}'")
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.location_source = location_source
        self.incident_source = incident_source
        self.fan_out = fan_out
        self.concurrency = concurrency
        self.skip_failed = skip_failed

    async def aggregate(self) -> Aggregation:
        """Retrieve and concatenate incidents from all locations.

        Raises:
            SourceUnavailable: If the location listing fails, or (unless
                skip_failed is set) any per-location retrieval fails.
                Any other error raised by a source is wrapped in it.
            InvariantViolation: If a source delivers an unrankable incident
        """
        try:
            locations = list(await self.location_source.get_locations())
        except IncidentFeedError:
            raise
        except Exception as e:
            raise SourceUnavailable(f"location listing failed: {e!r}") from e
        logger.info("Fetching incidents for %d locations (%s)", len(locations), self.fan_out)

        if self.fan_out == "concurrent":
            per_location = await self._fetch_concurrent(locations)
        else:
            per_location = [await self._fetch_one(loc) for loc in locations]

        incidents: list[Incident] = []
        skipped: list[Any] = []
        for location, batch in zip(locations, per_location):
            if batch is None:
                skipped.append(location.id)
                continue
            incidents.extend(batch)

        logger.debug("Aggregated %d incidents (%d locations skipped)", len(incidents), len(skipped))
        return Aggregation(locations=locations, incidents=incidents, skipped_location_ids=skipped)

    async def _fetch_one(self, location: Location) -> list[Incident] | None:
        """Fetch one location; None means it failed and was skipped."""
        try:
            try:
                incidents = list(await self.incident_source.get_incidents_by_location_id(location.id))
            except IncidentFeedError:
                raise
            except Exception as e:
                raise SourceUnavailable(f"incident retrieval failed: {e!r}", location_id=location.id) from e
        except SourceUnavailable as e:
            if not self.skip_failed:
                raise
            logger.warning("Skipping location %r: %s", location.id, e)
            return None
        logger.debug("Location %r: %d incidents", location.id, len(incidents))
        return incidents

    async def _fetch_concurrent(self, locations: list[Location]) -> list[list[Incident] | None]:
        """Fetch all locations at once, keeping results indexed by location."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _fetch_indexed(index: int, location: Location) -> tuple[int, list[Incident] | None]:
            async with semaphore:
                return index, await self._fetch_one(location)

        tasks = [
            asyncio.ensure_future(_fetch_indexed(index, location))
            for index, location in enumerate(locations)
        ]
        try:
            completed = await asyncio.gather(*tasks)
        except BaseException:
            # First failure wins; the remaining retrievals are abandoned
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results: list[list[Incident] | None] = [None] * len(locations)
        for index, batch in completed:
            results[index] = batch
        return results
