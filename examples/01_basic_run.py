"""Example 1: Basic Run

This example shows the most basic usage of incidentfeed: running the
pipeline once against the in-memory demo source and printing the result.

In production, you would use IncidentApiClient instead of FakeIncidentApi.
"""

import asyncio

from incidentfeed.pipeline import PipelineCoordinator
from incidentfeed.sources import FakeIncidentApi


async def run() -> None:
    api = FakeIncidentApi(latency=0.05)
    coordinator = PipelineCoordinator(api, api, fan_out="concurrent")
    coordinator.subscribe(lambda state: print(f"  state → {type(state).__name__}"))

    print("Step 1: Running pipeline...")
    incidents = await coordinator.run()
    print(f"  ✓ {len(incidents)} incidents after deduplication")
    print()

    print("Step 2: Ranked incidents (priority, newest first)")
    for incident in incidents:
        print(f"  [{incident.priority_label:<7}] {incident.datetime}  {incident.name} ({incident.location_id})")


def main():
    """Run basic example."""
    print("=" * 60)
    print("incidentfeed | Example 1: Basic Run")
    print("=" * 60)
    print()
    asyncio.run(run())


if __name__ == "__main__":
    main()
