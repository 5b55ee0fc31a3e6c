"""HTTP incident API client.

Implements both LocationSource and IncidentSource against a JSON API:

    GET /locations                  -> [{"id": ..., "name": ...}, ...]
    GET /locations/{id}/incidents   -> [{"id": ..., "name": ..., "datetime": ...,
                                         "priority": ..., "locationId": ...}, ...]

Either endpoint may wrap its list in {"data": [...]}.

Usage:
    from incidentfeed.sources.http import IncidentApiClient

    async with IncidentApiClient(base_url="https://incidents.example.com") as api:
        locations = await api.get_locations()
        incidents = await api.get_incidents_by_location_id(locations[0].id)
"""

from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from incidentfeed.errors import SourceUnavailable
from incidentfeed.models import Incident, Location
from incidentfeed.sources.base import BaseAsyncClient


def _unwrap_list(payload: Any, what: str, location_id: Any = None) -> list:
    """Return the record list from a bare or {"data": [...]} payload."""
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        raise SourceUnavailable(
            f"Malformed {what} response: expected a list, got {type(payload).__name__}",
            location_id,
        )
    return payload


class IncidentApiClient(BaseAsyncClient):
    """Async client for the incident API.

    Args:
        base_url: API base URL
        api_key: Bearer token, sent as Authorization header when given
        rate_limit: Max requests per second (default: 10)
        timeout: Request timeout in seconds (default: 10)
        max_retries: Retries on transient failures (default: 3)
        backoff: Base retry backoff in seconds (default: 1.0)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        rate_limit: int = 10,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: float = 1.0,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        super().__init__(
            base_url=base_url,
            headers=headers,
            rate_limit=rate_limit,
            timeout=timeout,
            max_retries=max_retries,
            backoff=backoff,
        )

    async def get_locations(self) -> list[Location]:
        """Get every location.

        Raises:
            SourceUnavailable: If the request fails or a record is malformed
        """
        records = _unwrap_list(await self.get("/locations"), "locations")
        try:
            return [Location.model_validate(record) for record in records]
        except ValidationError as e:
            raise SourceUnavailable(f"Malformed location record: {e.error_count()} invalid field(s)") from e

    async def get_incidents_by_location_id(self, location_id: Any) -> list[Incident]:
        """Get the incidents reported by one location.

        Args:
            location_id: Location.id as returned by get_locations()

        Raises:
            SourceUnavailable: If the request fails or the payload is not a list
            InvariantViolation: If an incident has no id or no integer priority
        """
        endpoint = f"/locations/{quote(str(location_id), safe='')}/incidents"
        payload = await self.get(endpoint, location_id=location_id)
        records = _unwrap_list(payload, "incidents", location_id)
        for record in records:
            if not isinstance(record, dict):
                raise SourceUnavailable(
                    f"Malformed incident record: {record!r}",
                    location_id,
                )
        return [Incident.from_payload(record) for record in records]
