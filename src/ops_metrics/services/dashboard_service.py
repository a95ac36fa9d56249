from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.schemas.alerts import Alert
from src.ops_metrics.schemas.common import utc_now
from src.ops_metrics.schemas.dashboard import DashboardOverview, RevenuePeriod, RevenueReport
from src.ops_metrics.schemas.metrics import MetricsSnapshot
from src.ops_metrics.services.alerts_engine import evaluate_alerts
from src.ops_metrics.services.cache import ALERTS_CACHE_KEY, METRICS_CACHE_KEY, TTLCache
from src.ops_metrics.services.data_source import DataSource
from src.ops_metrics.services.fanout import run_concurrently
from src.ops_metrics.services.metrics_aggregator import compute_snapshot
from src.ops_metrics.services.revenue_report import PREVIOUS_PERIOD_LABELS, build_revenue_report

logger = logging.getLogger(__name__)


class DashboardService:
    """
    Consumer-facing entry point for the admin dashboard.

    Metrics and alerts are served from the cache while fresh and recomputed from the
    data source on a miss. Failures propagate to the caller; a stale value is never
    substituted for a failed recomputation.
    """

    def __init__(
        self,
        source: DataSource,
        config: BackendConfig,
        cache: Optional[TTLCache] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._source = source
        self._config = config
        self._clock = clock
        self._cache = cache if cache is not None else TTLCache(config.cache_ttl_sec, clock=clock)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # PUBLIC_INTERFACE
    async def compute_snapshot(self) -> MetricsSnapshot:
        """Compute a fresh snapshot, bypassing the cache."""
        return await compute_snapshot(self._source, self._config, self._clock())

    # PUBLIC_INTERFACE
    async def evaluate_alerts(self) -> List[Alert]:
        """Evaluate the alert rules, bypassing the cache."""
        return await evaluate_alerts(self._source, self._config, self._clock())

    # PUBLIC_INTERFACE
    async def get_metrics(self) -> MetricsSnapshot:
        """Return the cached snapshot if fresh, else compute and cache a new one."""
        try:
            return await self._cache.get_or_compute(METRICS_CACHE_KEY, self.compute_snapshot)
        except Exception:
            logger.exception("Error calculating dashboard metrics")
            raise

    # PUBLIC_INTERFACE
    async def get_alerts(self) -> List[Alert]:
        """Return the cached alert list if fresh, else re-evaluate and cache it."""
        try:
            alerts = await self._cache.get_or_compute(ALERTS_CACHE_KEY, self.evaluate_alerts)
        except Exception:
            logger.exception("Error evaluating dashboard alerts")
            raise
        return list(alerts)

    # PUBLIC_INTERFACE
    async def get_dashboard(self) -> DashboardOverview:
        """Metrics and alerts fetched together for the dashboard landing view."""
        metrics, alerts = await run_concurrently(self.get_metrics(), self.get_alerts())
        return DashboardOverview(metrics=metrics, alerts=alerts, timestamp=self._clock())

    # PUBLIC_INTERFACE
    async def get_revenue_report(self, period: RevenuePeriod = "month") -> RevenueReport:
        """Revenue for a period with previous-period comparison; always computed fresh."""
        if period not in PREVIOUS_PERIOD_LABELS:
            raise ValueError(f"Unsupported revenue period: {period!r} (expected day, week, month or year)")
        try:
            return await build_revenue_report(self._source, self._config, period, self._clock())
        except Exception:
            logger.exception("Error building revenue report (period=%s)", period)
            raise

    # PUBLIC_INTERFACE
    def clear_cache(self) -> None:
        """Drop cached metrics and alerts so the next reads recompute (operator/test refresh)."""
        self._cache.clear()
        logger.info("Dashboard cache cleared")
