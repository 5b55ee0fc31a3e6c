"""Deduplicator: one incident per id, last write wins.

Incidents are written into a mapping keyed by id in traversal order; when an
id recurs, the later record replaces the earlier one. The order of the result
is not meaningful, the Ranker establishes the final order.
"""

from typing import Any, Iterable

from incidentfeed.models import Incident


def dedupe(incidents: Iterable[Incident]) -> list[Incident]:
    """Collapse incidents to one record per id (last-write-wins)."""
    by_id: dict[Any, Incident] = {}
    for incident in incidents:
        by_id[incident.id] = incident
    return list(by_id.values())
