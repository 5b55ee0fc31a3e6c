"""Ranker: priority ascending, then recency descending.

Ordering rules, applied in turn:
    1. Known priorities (1 High, 2 Medium, 3 Low) ascending, then any unknown
       priority values, ascending numerically
    2. Datetime descending (newest first), compared as absolute instants.
       Unparseable datetimes sort as the oldest possible instant and are
       reported as DataQualityWarning, never as a failure
    3. Incident id, so that equal keys still give the same order on every run
       regardless of the order the sources returned them in

Datetime values may be:
    - datetime objects (naive values are taken as UTC)
    - ISO-8601 strings, with or without offset ("Z" accepted)
    - epoch numbers: seconds, or milliseconds when larger than 1e11
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from incidentfeed.errors import DataQualityWarning
from incidentfeed.models import Incident, Priority

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)
# Epoch numbers above this are milliseconds (1e11 s is in the year 5138)
_EPOCH_MS_THRESHOLD = 1e11


class InvalidDatetime(ValueError):
    """A datetime value that cannot be converted to an instant."""


def parse_instant(value: Any) -> datetime:
    """Convert a raw incident datetime into an aware UTC datetime.

    Raises:
        InvalidDatetime: If the value is missing or cannot be parsed
    """
    if value is None:
        raise InvalidDatetime("missing")

    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, bool):
        raise InvalidDatetime("boolean is not a point in time")
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidDatetime("not a finite number")
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            instant = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidDatetime(f"epoch out of range: {e}") from e
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDatetime("empty string")
        try:
            instant = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidDatetime(str(e)) from e
    else:
        raise InvalidDatetime(f"unsupported type {type(value).__name__}")

    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    try:
        return instant.astimezone(timezone.utc)
    except OverflowError as e:
        raise InvalidDatetime(f"out of range: {e}") from e


def _epoch_micros(instant: datetime) -> int:
    return (instant - _EPOCH) // _MICROSECOND


def _id_key(incident_id: Any) -> tuple[str, str]:
    return (type(incident_id).__name__, str(incident_id))


def sort_key(incident: Incident, instant: datetime | None) -> tuple:
    """Total-order sort key for one incident.

    Args:
        incident: Incident to rank
        instant: Parsed datetime, or None when it could not be parsed
    """
    known = Priority.is_known(incident.priority)
    recency = (0, -_epoch_micros(instant)) if instant is not None else (1, 0)
    return (0 if known else 1, incident.priority, recency, _id_key(incident.id))


@dataclass
class RankedIncidents:
    """Ranked incidents plus the data-quality problems found on the way."""

    incidents: list[Incident]
    warnings: list[DataQualityWarning] = field(default_factory=list)


def rank_incidents(incidents: Iterable[Incident]) -> RankedIncidents:
    """Sort incidents and collect DataQualityWarning for bad datetimes."""
    warnings: list[DataQualityWarning] = []
    keyed: list[tuple[tuple, Incident]] = []

    for incident in incidents:
        try:
            instant: datetime | None = parse_instant(incident.datetime)
        except InvalidDatetime as e:
            instant = None
            warning = DataQualityWarning(incident.id, incident.datetime, str(e))
            warnings.append(warning)
            logger.warning("Data quality: %s; ranked as oldest", warning)
        keyed.append((sort_key(incident, instant), incident))

    keyed.sort(key=lambda pair: pair[0])
    return RankedIncidents(incidents=[incident for _, incident in keyed], warnings=warnings)


def rank(incidents: Iterable[Incident]) -> list[Incident]:
    """Sort incidents by priority ascending, then datetime descending."""
    return rank_incidents(incidents).incidents


def compare(a: Incident, b: Incident) -> int:
    """Three-way comparison matching rank() order (negative: a first)."""

    def _key(incident: Incident) -> tuple:
        try:
            instant: datetime | None = parse_instant(incident.datetime)
        except InvalidDatetime:
            instant = None
        return sort_key(incident, instant)

    key_a, key_b = _key(a), _key(b)
    return (key_a > key_b) - (key_a < key_b)
