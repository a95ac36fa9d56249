from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta
from typing import Dict, Tuple

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.schemas.common import round_currency
from src.ops_metrics.schemas.dashboard import (
    RevenueBreakdownItem,
    RevenueComparison,
    RevenuePeriod,
    RevenueReport,
)
from src.ops_metrics.services.data_source import DataSource
from src.ops_metrics.services.fanout import run_concurrently

logger = logging.getLogger(__name__)

PREVIOUS_PERIOD_LABELS: Dict[str, str] = {
    "day": "yesterday",
    "week": "last week",
    "month": "last month",
    "year": "last year",
}


def _shift_months(ts: datetime, months: int) -> datetime:
    """Move ts by whole calendar months, clamping the day (Mar 31 - 1 month -> Feb 28/29)."""
    month_index = ts.month - 1 + months
    year = ts.year + month_index // 12
    month = month_index % 12 + 1
    day = min(ts.day, calendar.monthrange(year, month)[1])
    return ts.replace(year=year, month=month, day=day)


def report_windows(period: str, now: datetime) -> Tuple[datetime, datetime, datetime, datetime]:
    """
    Return (current_start, current_end, previous_start, previous_end) for a report period.

    `now` must already be in the dashboard timezone. The current window ends at now;
    for "year" the previous window is the whole previous calendar year.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        start = midnight
        return start, now, start - timedelta(days=1), start
    if period == "week":
        start = midnight - timedelta(weeks=1)
        return start, now, start - timedelta(weeks=1), start
    if period == "month":
        start = _shift_months(now, -1)
        return start, now, _shift_months(start, -1), start
    if period == "year":
        start = midnight.replace(month=1, day=1)
        return start, now, start.replace(year=start.year - 1), start
    raise ValueError(f"Unsupported revenue period: {period!r} (expected day, week, month or year)")


def percentage_change(current: float, previous: float) -> float:
    if previous > 0:
        return ((current - previous) / previous) * 100
    # From nothing to something counts as +100%.
    return 100.0 if current > 0 else 0.0


# PUBLIC_INTERFACE
async def build_revenue_report(
    source: DataSource,
    config: BackendConfig,
    period: RevenuePeriod,
    now: datetime,
) -> RevenueReport:
    """Completed-ride revenue for the period, compared against the preceding one, with a daily breakdown."""
    local_now = now.astimezone(config.tzinfo())
    start, end, prev_start, prev_end = report_windows(period, local_now)

    current, previous, days = await run_concurrently(
        source.aggregate_ride_revenue(start, end),
        source.aggregate_ride_revenue(prev_start, prev_end),
        source.revenue_by_day(start, end, config.timezone),
    )

    change = percentage_change(current.sum, previous.sum)
    report = RevenueReport(
        period=period,
        total_revenue=round_currency(current.sum),
        transaction_count=current.count,
        average_transaction_value=round_currency(current.sum / current.count) if current.count > 0 else 0.0,
        comparison=RevenueComparison(
            percentage_change=round_currency(change),
            is_increase=change >= 0,
            previous_period_amount=round_currency(previous.sum),
            previous_period=PREVIOUS_PERIOD_LABELS[period],
        ),
        breakdown=[
            RevenueBreakdownItem(
                day=d.day,
                amount=round_currency(d.amount),
                transaction_count=d.count,
                average_value=round_currency(d.amount / (d.count or 1)),
            )
            for d in days
        ],
    )
    logger.debug("Revenue report built (period=%s total=%s)", period, report.total_revenue)
    return report
