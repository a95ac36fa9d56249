from __future__ import annotations

import logging
from datetime import datetime, timedelta

from src.ops_metrics.errors import DataSourceError
from src.ops_metrics.schemas.common import SystemStatus
from src.ops_metrics.services.data_source import ACTIVE_RIDE_STATUSES, DRIVER_ONLINE, DataSource
from src.ops_metrics.services.fanout import run_concurrently

logger = logging.getLogger(__name__)


def classify_health(
    *,
    probe_ok: bool,
    long_running_rides: int,
    active_rides: int,
    online_drivers: int,
    demand_ratio: float = 2.0,
) -> SystemStatus:
    """Apply the fixed precedence: critical, then warning, then healthy."""
    if not probe_ok or long_running_rides > 0:
        return SystemStatus.critical
    if active_rides > online_drivers * demand_ratio:
        return SystemStatus.warning
    return SystemStatus.healthy


# PUBLIC_INTERFACE
async def evaluate_system_health(
    source: DataSource,
    now: datetime,
    *,
    long_ride_after: timedelta = timedelta(hours=2),
    demand_ratio: float = 2.0,
) -> SystemStatus:
    """
    Classify overall system health from live data.

    - critical: connectivity probe fails, or any ride has sat in_progress longer than long_ride_after
    - warning: active rides exceed demand_ratio x online drivers
    - healthy: otherwise

    Data source failures here do not fail the caller; they are reported as critical.
    """
    try:
        if not await source.probe_connectivity():
            logger.warning("System health probe failed; reporting critical")
            return SystemStatus.critical

        long_running, active_rides, online_drivers = await run_concurrently(
            source.count_stuck_rides(updated_before=now - long_ride_after),
            source.count_rides(statuses=ACTIVE_RIDE_STATUSES),
            source.count_drivers(DRIVER_ONLINE),
        )
    except DataSourceError:
        logger.exception("System health check failed; reporting critical")
        return SystemStatus.critical

    return classify_health(
        probe_ok=True,
        long_running_rides=long_running,
        active_rides=active_rides,
        online_drivers=online_drivers,
        demand_ratio=demand_ratio,
    )
