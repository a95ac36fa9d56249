from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

import pytest

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.errors import DataSourceError
from src.ops_metrics.services.data_source import (
    RIDE_COMPLETED,
    RIDE_IN_PROGRESS,
    DailyRevenue,
    RevenueAggregate,
)
from src.ops_metrics.services.dashboard_service import DashboardService

# Wednesday, mid-afternoon UTC; the week (Sunday start) began 2024-01-14.
NOW = datetime(2024, 1, 17, 15, 30, tzinfo=timezone.utc)


def _in_range(ts: Optional[datetime], start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is None and end is None:
        return True
    if ts is None:
        return False
    if start is not None and ts < start:
        return False
    if end is not None and ts >= end:
        return False
    return True


class FakeDataSource:
    """
    In-memory DataSource over plain record lists.

    Records:
      rides:   {status, farePrice, createdAt, updatedAt}
      drivers: {status, averageRating}
      users:   {createdAt, lastLogin}
      ratings: {ratedByUserId, ratingValue}
    """

    def __init__(self) -> None:
        self.rides: List[dict] = []
        self.drivers: List[dict] = []
        self.users: List[dict] = []
        self.ratings: List[dict] = []
        self.probe_ok = True
        self.fail_with: Optional[Exception] = None
        self.calls: Dict[str, int] = defaultdict(int)
        self.delay = 0.0

    # ---- seeding helpers ----
    def add_ride(self, status: str, *, created: datetime = NOW, updated: Optional[datetime] = None, fare: float = 0.0) -> None:
        self.rides.append({"status": status, "farePrice": fare, "createdAt": created, "updatedAt": updated or created})

    def add_drivers(self, status: str, count: int, rating: Optional[float] = None) -> None:
        for _ in range(count):
            self.drivers.append({"status": status, "averageRating": rating})

    def add_user(self, *, created: datetime = NOW - timedelta(days=30), last_login: Optional[datetime] = None) -> None:
        self.users.append({"createdAt": created, "lastLogin": last_login})

    def add_rating(self, user_id: str, value: float) -> None:
        self.ratings.append({"ratedByUserId": user_id, "ratingValue": value})

    async def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    # ---- DataSource ----
    async def count_rides(
        self,
        *,
        statuses: Optional[Iterable[str]] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int:
        await self._enter("count_rides")
        wanted = set(statuses) if statuses is not None else None
        return sum(
            1
            for r in self.rides
            if (wanted is None or r["status"] in wanted) and _in_range(r["createdAt"], created_from, created_to)
        )

    async def aggregate_ride_revenue(self, updated_from: datetime, updated_to: datetime) -> RevenueAggregate:
        await self._enter("aggregate_ride_revenue")
        matched = [
            r for r in self.rides if r["status"] == RIDE_COMPLETED and _in_range(r["updatedAt"], updated_from, updated_to)
        ]
        return RevenueAggregate(sum=float(sum(r["farePrice"] for r in matched)), count=len(matched))

    async def sample_completed_fares(self, limit: int) -> List[float]:
        await self._enter("sample_completed_fares")
        return [float(r["farePrice"]) for r in self.rides if r["status"] == RIDE_COMPLETED][:limit]

    async def count_drivers(self, status: str) -> int:
        await self._enter("count_drivers")
        return sum(1 for d in self.drivers if d["status"] == status)

    async def list_driver_ratings(self) -> List[float]:
        await self._enter("list_driver_ratings")
        return [float(d["averageRating"]) for d in self.drivers if d["averageRating"] is not None]

    async def count_users(
        self,
        *,
        last_login_from: Optional[datetime] = None,
        last_login_to: Optional[datetime] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int:
        await self._enter("count_users")
        return sum(
            1
            for u in self.users
            if _in_range(u["lastLogin"], last_login_from, last_login_to)
            and _in_range(u["createdAt"], created_from, created_to)
        )

    async def list_user_rating_averages(self) -> List[float]:
        await self._enter("list_user_rating_averages")
        by_user: Dict[str, List[float]] = defaultdict(list)
        for r in self.ratings:
            by_user[r["ratedByUserId"]].append(float(r["ratingValue"]))
        return [sum(v) / len(v) for v in by_user.values()]

    async def probe_connectivity(self) -> bool:
        self.calls["probe_connectivity"] += 1
        return self.probe_ok

    async def count_stuck_rides(self, updated_before: datetime) -> int:
        await self._enter("count_stuck_rides")
        return sum(1 for r in self.rides if r["status"] == RIDE_IN_PROGRESS and r["updatedAt"] < updated_before)

    async def revenue_by_day(self, updated_from: datetime, updated_to: datetime, tz_name: str) -> List[DailyRevenue]:
        await self._enter("revenue_by_day")
        tz = ZoneInfo(tz_name)
        buckets: Dict[date, List[float]] = defaultdict(list)
        for r in self.rides:
            if r["status"] == RIDE_COMPLETED and _in_range(r["updatedAt"], updated_from, updated_to):
                buckets[r["updatedAt"].astimezone(tz).date()].append(float(r["farePrice"]))
        return [DailyRevenue(day=d, amount=sum(v), count=len(v)) for d, v in sorted(buckets.items())]


class FakeClock:
    """Manually advanced clock shared by the service and its cache."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> BackendConfig:
    return BackendConfig(mongo_uri="mongodb://localhost:27017")


@pytest.fixture
def service(source: FakeDataSource, config: BackendConfig, clock: FakeClock) -> DashboardService:
    return DashboardService(source, config, clock=clock)


@pytest.fixture
def failure() -> DataSourceError:
    return DataSourceError("connection reset by peer")
