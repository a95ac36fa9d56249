from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.schemas.alerts import Alert
from src.ops_metrics.schemas.common import AlertType, Severity
from src.ops_metrics.services.data_source import DRIVER_ONLINE, RIDE_CANCELLED, DataSource
from src.ops_metrics.services.fanout import run_concurrently
from src.ops_metrics.services.windows import compute_windows

logger = logging.getLogger(__name__)


def cancellation_rate_pct(cancelled: int, total: int) -> float:
    """Cancelled share of rides in percent; 0 when there were no rides."""
    return cancelled * 100 / total if total > 0 else 0.0


def revenue_change_pct(today: float, yesterday: float) -> Optional[float]:
    """Percent change vs. yesterday, or None when yesterday had no revenue."""
    if yesterday <= 0:
        return None
    return (today - yesterday) * 100 / yesterday


async def _low_driver_availability(source: DataSource, config: BackendConfig, now: datetime) -> Optional[Alert]:
    online = await source.count_drivers(DRIVER_ONLINE)
    if online >= config.alert_min_online_drivers:
        return None
    return Alert(
        id="low_driver_availability",
        type=AlertType.performance,
        severity=Severity.high,
        title="Low driver availability",
        message=f"Only {online} drivers are online. Consider increasing capacity.",
        timestamp=now,
    )


async def _high_cancellation_rate(source: DataSource, config: BackendConfig, now: datetime) -> Optional[Alert]:
    windows = compute_windows(now, config.tzinfo())
    total, cancelled = await run_concurrently(
        source.count_rides(created_from=windows.today_start, created_to=windows.today_end),
        source.count_rides(
            statuses=(RIDE_CANCELLED,),
            created_from=windows.today_start,
            created_to=windows.today_end,
        ),
    )
    rate = cancellation_rate_pct(cancelled, total)
    if rate <= config.alert_cancellation_rate_pct:
        return None
    return Alert(
        id="high_cancellation_rate",
        type=AlertType.performance,
        severity=Severity.medium,
        title="High cancellation rate",
        message=f"Cancellation rate is {rate:.1f}% today ({cancelled} of {total} rides). Review service quality.",
        timestamp=now,
    )


async def _revenue_drop(source: DataSource, config: BackendConfig, now: datetime) -> Optional[Alert]:
    windows = compute_windows(now, config.tzinfo())
    yesterday, today = await run_concurrently(
        source.aggregate_ride_revenue(windows.yesterday_start, windows.today_start),
        source.aggregate_ride_revenue(windows.today_start, now),
    )
    change = revenue_change_pct(today.sum, yesterday.sum)
    if change is None or change >= -config.alert_revenue_drop_pct:
        return None
    return Alert(
        id="revenue_drop",
        type=AlertType.financial,
        severity=Severity.high,
        title="Significant revenue drop",
        message=f"Revenue dropped {abs(change):.1f}% compared to yesterday.",
        timestamp=now,
    )


async def _stuck_rides(source: DataSource, config: BackendConfig, now: datetime) -> Optional[Alert]:
    stuck_after = timedelta(seconds=config.alert_stuck_ride_sec)
    stuck = await source.count_stuck_rides(updated_before=now - stuck_after)
    if stuck <= 0:
        return None
    minutes = int(stuck_after.total_seconds() // 60)
    return Alert(
        id="stuck_rides",
        type=AlertType.technical,
        severity=Severity.medium,
        title="Stuck rides",
        message=f"{stuck} rides have been in progress without an update for more than {minutes} minutes.",
        timestamp=now,
    )


# PUBLIC_INTERFACE
async def evaluate_alerts(source: DataSource, config: BackendConfig, now: datetime) -> List[Alert]:
    """
    Evaluate every alert rule against fresh data and return the triggered alerts.

    Rules are independent and always all evaluated; the list is rebuilt from scratch on
    every call in a fixed order (performance, financial, technical). Any data source
    failure fails the whole evaluation.
    """
    results = await run_concurrently(
        _low_driver_availability(source, config, now),
        _high_cancellation_rate(source, config, now),
        _revenue_drop(source, config, now),
        _stuck_rides(source, config, now),
    )
    alerts = [a for a in results if a is not None]
    logger.debug("Dashboard alerts evaluated (triggered=%s)", [a.id for a in alerts])
    return alerts
