"""Data model for incidentfeed.

Locations and incidents are immutable pydantic models, created fresh by the
sources on every run. Ranked output therefore never shares mutable state with
the sources that produced it.

Priority is an integer ordinal where a lower value means a more severe
incident:

    1 = High, 2 = Medium, 3 = Low

Any other integer is kept and labelled "Unknown".
"""

import datetime as dt
from enum import IntEnum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from incidentfeed.errors import InvariantViolation

UNKNOWN_PRIORITY_LABEL = "Unknown"


class Priority(IntEnum):
    """Known incident priorities, most severe first."""

    HIGH = 1
    MEDIUM = 2
    LOW = 3

    @property
    def label(self) -> str:
        """Display label ("High", "Medium", "Low")."""
        return self.name.capitalize()

    @classmethod
    def is_known(cls, value: int) -> bool:
        return value in {member.value for member in cls}


def priority_label(value: int) -> str:
    """Return the display label for a priority value, or "Unknown"."""
    if Priority.is_known(value):
        return Priority(value).label
    return UNKNOWN_PRIORITY_LABEL


class Location(BaseModel):
    """A place that produces incidents.

    Attributes:
        id: Opaque identifier, compared for equality only
        name: Display label, passed through untouched
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | int
    name: str = ""


class Incident(BaseModel):
    """A single incident reported by a location.

    Attributes:
        id: Identity key used for deduplication
        name: Display label
        datetime: Point in time as delivered by the source (ISO-8601 string,
            epoch seconds, or a datetime). Parsed only when ranking.
        priority: Severity ordinal, lower is more severe
        location_id: Location that reported the incident (lookup key only)
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str | int
    name: str = ""
    datetime: dt.datetime | int | float | str | None = None
    priority: int
    location_id: str | int | None = Field(default=None, alias="locationId")

    @field_validator("priority", mode="before")
    @classmethod
    def reject_boolean_priority(cls, v: Any) -> Any:
        """Reject booleans, which pydantic would otherwise accept as 0 or 1."""
        if isinstance(v, bool):
            raise ValueError("priority must be an integer, got a boolean")
        return v

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Incident":
        """Build an incident from a raw source record.

        Raises:
            InvariantViolation: If the record has no id, or no integer priority
        """
        if data.get("id") is None:
            raise InvariantViolation(f"incident without id: {dict(data)!r}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvariantViolation(
                f"incident {data.get('id')!r} cannot be ranked: {e.error_count()} invalid field(s)"
            ) from e

    @property
    def priority_label(self) -> str:
        return priority_label(self.priority)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        value = self.datetime
        if isinstance(value, dt.datetime):
            value = value.isoformat()
        return {
            "id": self.id,
            "name": self.name,
            "datetime": value,
            "priority": self.priority,
            "priority_label": self.priority_label,
            "location_id": self.location_id,
        }
