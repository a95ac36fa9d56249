from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.schemas.common import round_currency, round_rating
from src.ops_metrics.schemas.metrics import MetricsSnapshot
from src.ops_metrics.services.data_source import (
    ACTIVE_RIDE_STATUSES,
    DRIVER_BUSY,
    DRIVER_ONLINE,
    RIDE_CANCELLED,
    RIDE_COMPLETED,
    DataSource,
)
from src.ops_metrics.services.fanout import run_concurrently
from src.ops_metrics.services.health import evaluate_system_health
from src.ops_metrics.services.windows import TimeWindows, compute_windows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RideStats:
    completed: int
    cancelled: int
    total: int


@dataclass(frozen=True)
class RevenueStats:
    today: float
    week: float
    average_fare: float
    total_transactions: int


@dataclass(frozen=True)
class DriverStats:
    online: int
    busy: int
    available: int
    average_rating: float


@dataclass(frozen=True)
class UserStats:
    active_today: int
    new_this_week: int
    total: int
    average_rating: float


def _mean(values: List[float]) -> float:
    return (sum(values) / len(values)) if values else 0.0


async def active_rides_count(source: DataSource) -> int:
    return await source.count_rides(statuses=ACTIVE_RIDE_STATUSES)


async def ride_stats(source: DataSource, start: datetime, end: datetime) -> RideStats:
    """Completed, cancelled and total rides created in [start, end)."""
    completed, cancelled, total = await run_concurrently(
        source.count_rides(statuses=(RIDE_COMPLETED,), created_from=start, created_to=end),
        source.count_rides(statuses=(RIDE_CANCELLED,), created_from=start, created_to=end),
        source.count_rides(created_from=start, created_to=end),
    )
    return RideStats(completed=completed, cancelled=cancelled, total=total)


async def revenue_stats(source: DataSource, windows: TimeWindows, fare_sample_limit: int) -> RevenueStats:
    """
    Completed fare revenue for today and this week, plus an average fare.

    averageFare is taken over at most fare_sample_limit completed rides rather than
    the whole population.
    """
    today, week, fares = await run_concurrently(
        source.aggregate_ride_revenue(windows.today_start, windows.today_end),
        source.aggregate_ride_revenue(windows.week_start, windows.week_end),
        source.sample_completed_fares(fare_sample_limit),
    )
    return RevenueStats(
        today=round_currency(today.sum),
        week=round_currency(week.sum),
        average_fare=round_currency(_mean(fares)),
        total_transactions=today.count,
    )


async def driver_stats(source: DataSource) -> DriverStats:
    online, busy, ratings = await run_concurrently(
        source.count_drivers(DRIVER_ONLINE),
        source.count_drivers(DRIVER_BUSY),
        source.list_driver_ratings(),
    )
    return DriverStats(
        online=online,
        busy=busy,
        available=max(0, online - busy),
        average_rating=round_rating(_mean(ratings)),
    )


async def user_stats(source: DataSource, windows: TimeWindows) -> UserStats:
    active_today, new_this_week, total, per_user_averages = await run_concurrently(
        source.count_users(last_login_from=windows.today_start, last_login_to=windows.today_end),
        source.count_users(created_from=windows.week_start, created_to=windows.week_end),
        source.count_users(),
        source.list_user_rating_averages(),
    )
    # Mean of each user's own average, not a pooled mean over individual ratings.
    return UserStats(
        active_today=active_today,
        new_this_week=new_this_week,
        total=total,
        average_rating=round_rating(_mean(per_user_averages)),
    )


# PUBLIC_INTERFACE
async def compute_snapshot(source: DataSource, config: BackendConfig, now: datetime) -> MetricsSnapshot:
    """
    Fan out every sub-aggregation concurrently and join them into one MetricsSnapshot.

    Any data source failure (other than inside the health check) fails the whole call;
    no partial snapshot is produced.
    """
    windows = compute_windows(now, config.tzinfo())

    active, today, week, revenue, drivers, users, status = await run_concurrently(
        active_rides_count(source),
        ride_stats(source, windows.today_start, windows.today_end),
        ride_stats(source, windows.week_start, windows.week_end),
        revenue_stats(source, windows, config.fare_sample_limit),
        driver_stats(source),
        user_stats(source, windows),
        evaluate_system_health(
            source,
            now,
            long_ride_after=timedelta(seconds=config.health_long_ride_sec),
            demand_ratio=config.health_demand_ratio,
        ),
    )

    snapshot = MetricsSnapshot(
        active_rides=active,
        completed_rides_today=today.completed,
        cancelled_rides_today=today.cancelled,
        total_rides_this_week=week.total,
        revenue_today=revenue.today,
        revenue_this_week=revenue.week,
        average_fare=revenue.average_fare,
        total_transactions=revenue.total_transactions,
        online_drivers=drivers.online,
        busy_drivers=drivers.busy,
        available_drivers=drivers.available,
        average_driver_rating=drivers.average_rating,
        active_users_today=users.active_today,
        new_users_this_week=users.new_this_week,
        total_users=users.total,
        average_user_rating=users.average_rating,
        system_status=status,
        last_updated=now,
    )
    logger.debug(
        "Dashboard metrics computed (activeRides=%s onlineDrivers=%s status=%s)",
        snapshot.active_rides,
        snapshot.online_drivers,
        snapshot.system_status.value,
    )
    return snapshot
