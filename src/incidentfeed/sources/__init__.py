"""Incident data sources.

- LocationSource / IncidentSource: the two read contracts the pipeline consumes
- IncidentApiClient: async HTTP source (httpx)
- FakeIncidentApi: in-memory source for demos and tests
"""

from incidentfeed.sources.base import BaseAsyncClient, IncidentSource, LocationSource, RateLimiter
from incidentfeed.sources.fake import FakeIncidentApi
from incidentfeed.sources.http import IncidentApiClient

__all__ = [
    "BaseAsyncClient",
    "IncidentSource",
    "LocationSource",
    "RateLimiter",
    "FakeIncidentApi",
    "IncidentApiClient",
]
