from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.ops_metrics.schemas.common import SystemStatus


class MetricsSnapshot(BaseModel):
    """A single consistent view of operational metrics, computed whole at one instant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Rides
    active_rides: int = Field(..., ge=0, description="Rides accepted, confirmed, arrived or in progress.", alias="activeRides")
    completed_rides_today: int = Field(..., ge=0, description="Rides created today that completed.", alias="completedRidesToday")
    cancelled_rides_today: int = Field(..., ge=0, description="Rides created today that were cancelled.", alias="cancelledRidesToday")
    total_rides_this_week: int = Field(..., ge=0, description="Rides created this week (any status).", alias="totalRidesThisWeek")

    # Financial
    revenue_today: float = Field(..., description="Completed fare revenue today, 2 decimals; negative fares (refunds) are netted.", alias="revenueToday")
    revenue_this_week: float = Field(..., description="Completed fare revenue this week, 2 decimals.", alias="revenueThisWeek")
    average_fare: float = Field(..., description="Mean fare over a bounded sample of completed rides.", alias="averageFare")
    total_transactions: int = Field(..., ge=0, description="Rides completed today.", alias="totalTransactions")

    # Drivers
    online_drivers: int = Field(..., ge=0, alias="onlineDrivers")
    busy_drivers: int = Field(..., ge=0, alias="busyDrivers")
    available_drivers: int = Field(..., ge=0, description="max(0, online - busy).", alias="availableDrivers")
    average_driver_rating: float = Field(..., ge=0, description="Mean of per-driver average ratings, 1 decimal.", alias="averageDriverRating")

    # Users
    active_users_today: int = Field(..., ge=0, alias="activeUsersToday")
    new_users_this_week: int = Field(..., ge=0, alias="newUsersThisWeek")
    total_users: int = Field(..., ge=0, alias="totalUsers")
    average_user_rating: float = Field(..., ge=0, description="Mean of per-user average ratings, 1 decimal.", alias="averageUserRating")

    system_status: SystemStatus = Field(..., description="healthy | warning | critical.", alias="systemStatus")
    last_updated: datetime = Field(..., description="UTC timestamp when the snapshot was computed.", alias="lastUpdated")
