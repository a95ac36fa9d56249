"""Read-only query contract the dashboard core needs from the ride/driver/user store.

All ranges are half-open ``[from, to)``. Implementations raise
``DataSourceError`` when a query fails, except ``probe_connectivity`` which
reports failure as ``False``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Protocol

ACTIVE_RIDE_STATUSES = ("accepted", "driver_confirmed", "arrived", "in_progress")

RIDE_COMPLETED = "completed"
RIDE_CANCELLED = "cancelled"
RIDE_IN_PROGRESS = "in_progress"

DRIVER_ONLINE = "online"
DRIVER_BUSY = "busy"


@dataclass(frozen=True)
class RevenueAggregate:
    """Sum and count of completed fares in a window."""

    sum: float
    count: int


@dataclass(frozen=True)
class DailyRevenue:
    day: date
    amount: float
    count: int


class DataSource(Protocol):
    async def count_rides(
        self,
        *,
        statuses: Optional[Iterable[str]] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int: ...

    async def aggregate_ride_revenue(self, updated_from: datetime, updated_to: datetime) -> RevenueAggregate: ...

    async def sample_completed_fares(self, limit: int) -> List[float]: ...

    async def count_drivers(self, status: str) -> int: ...

    async def list_driver_ratings(self) -> List[float]: ...

    async def count_users(
        self,
        *,
        last_login_from: Optional[datetime] = None,
        last_login_to: Optional[datetime] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int: ...

    async def list_user_rating_averages(self) -> List[float]: ...

    async def probe_connectivity(self) -> bool: ...

    async def count_stuck_rides(self, updated_before: datetime) -> int: ...

    async def revenue_by_day(self, updated_from: datetime, updated_to: datetime, tz_name: str) -> List[DailyRevenue]: ...
