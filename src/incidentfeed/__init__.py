"""incidentfeed: merged, deduplicated and ranked incidents from many locations."""

__version__ = "0.1.0"
