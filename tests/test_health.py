from __future__ import annotations

from datetime import timedelta

import pytest

from src.ops_metrics.schemas.common import SystemStatus
from src.ops_metrics.services.health import classify_health, evaluate_system_health


@pytest.mark.parametrize(
    "probe_ok,long_running,active,online,expected",
    [
        (True, 0, 0, 0, SystemStatus.healthy),
        (True, 0, 10, 5, SystemStatus.healthy),
        (True, 0, 11, 5, SystemStatus.warning),
        (True, 1, 0, 50, SystemStatus.critical),
        # Probe failure outranks the warning ratio.
        (False, 0, 11, 5, SystemStatus.critical),
    ],
)
def test_classify_health_precedence(probe_ok, long_running, active, online, expected):
    assert (
        classify_health(
            probe_ok=probe_ok,
            long_running_rides=long_running,
            active_rides=active,
            online_drivers=online,
        )
        == expected
    )


@pytest.mark.anyio
async def test_failed_probe_with_overloaded_fleet_is_critical(source, clock):
    source.add_drivers("online", 1)
    for _ in range(5):
        source.add_ride("accepted")
    source.probe_ok = False

    assert await evaluate_system_health(source, clock.now) == SystemStatus.critical


@pytest.mark.anyio
async def test_ride_in_progress_past_two_hours_is_critical(source, clock):
    source.add_drivers("online", 10)
    source.add_ride("in_progress", created=clock.now - timedelta(hours=3), updated=clock.now - timedelta(hours=2, minutes=1))

    assert await evaluate_system_health(source, clock.now) == SystemStatus.critical


@pytest.mark.anyio
async def test_demand_outstripping_supply_is_warning(source, clock):
    source.add_drivers("online", 2)
    for status in ("accepted", "driver_confirmed", "arrived", "in_progress", "accepted"):
        source.add_ride(status, updated=clock.now - timedelta(minutes=5))

    assert await evaluate_system_health(source, clock.now) == SystemStatus.warning


@pytest.mark.anyio
async def test_data_source_failure_is_reported_as_critical(source, clock, failure):
    source.fail_with = failure
    assert await evaluate_system_health(source, clock.now) == SystemStatus.critical
