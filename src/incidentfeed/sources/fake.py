"""In-memory incident source.

Serves locations and incidents from plain dict records, with optional
per-call latency and injected failures. Used for the CLI demo, for local
development against the pipeline, and in tests.

Records are validated into fresh model instances on every call, the same way
a remote source would produce new objects per request.
"""

import asyncio
import logging
from typing import Any, Iterable, Mapping

from incidentfeed.errors import SourceUnavailable
from incidentfeed.models import Incident, Location

logger = logging.getLogger(__name__)

DEMO_LOCATIONS: list[dict[str, Any]] = [
    {"id": "loc-1", "name": "Warehouse North"},
    {"id": "loc-2", "name": "Depot East"},
    {"id": "loc-3", "name": "Head Office"},
]

DEMO_INCIDENTS: dict[str, list[dict[str, Any]]] = {
    "loc-1": [
        {"id": "inc-101", "name": "Fire alarm", "datetime": "2024-03-02T08:15:00Z",
         "priority": 1, "locationId": "loc-1"},
        {"id": "inc-102", "name": "Door left open", "datetime": "2024-03-01T22:40:00Z",
         "priority": 3, "locationId": "loc-1"},
        {"id": "inc-shared", "name": "Power outage", "datetime": "2024-03-02T06:00:00Z",
         "priority": 2, "locationId": "loc-1"},
    ],
    "loc-2": [
        {"id": "inc-201", "name": "Forklift collision", "datetime": "2024-03-02T11:05:00Z",
         "priority": 1, "locationId": "loc-2"},
        {"id": "inc-shared", "name": "Power outage", "datetime": "2024-03-02T06:30:00Z",
         "priority": 2, "locationId": "loc-2"},
    ],
    "loc-3": [
        {"id": "inc-301", "name": "Badge reader offline", "datetime": "2024-03-01T09:00:00Z",
         "priority": 2, "locationId": "loc-3"},
    ],
}


class FakeIncidentApi:
    """In-memory LocationSource and IncidentSource.

    Args:
        locations: Location records (default: demo data)
        incidents: Incident records keyed by location id (default: demo data)
        latency: Seconds to sleep on every call (default: 0)
        fail_locations: Make get_locations() raise SourceUnavailable
        failing_location_ids: Location ids whose incident retrieval raises
            SourceUnavailable

    Usage:
        api = FakeIncidentApi(latency=0.1, failing_location_ids={"loc-2"})
        locations = await api.get_locations()
    """

    def __init__(
        self,
        locations: Iterable[Mapping[str, Any]] | None = None,
        incidents: Mapping[Any, Iterable[Mapping[str, Any]]] | None = None,
        latency: float = 0.0,
        fail_locations: bool = False,
        failing_location_ids: Iterable[Any] = (),
    ) -> None:
        self._locations = [dict(r) for r in (DEMO_LOCATIONS if locations is None else locations)]
        source = DEMO_INCIDENTS if incidents is None else incidents
        self._incidents = {key: [dict(r) for r in records] for key, records in source.items()}
        self.latency = latency
        self.fail_locations = fail_locations
        self.failing_location_ids = set(failing_location_ids)
        self.calls: list[tuple[str, Any]] = []

    async def _delay(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    async def get_locations(self) -> list[Location]:
        self.calls.append(("get_locations", None))
        await self._delay()
        if self.fail_locations:
            raise SourceUnavailable("location listing unavailable")
        return [Location.model_validate(record) for record in self._locations]

    async def get_incidents_by_location_id(self, location_id: Any) -> list[Incident]:
        self.calls.append(("get_incidents_by_location_id", location_id))
        await self._delay()
        if location_id in self.failing_location_ids:
            raise SourceUnavailable(f"incidents unavailable for location {location_id!r}", location_id)
        records = self._incidents.get(location_id, [])
        logger.debug("Serving %d incidents for location %r", len(records), location_id)
        return [Incident.from_payload(record) for record in records]
