from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.ops_metrics.schemas.alerts import Alert
from src.ops_metrics.schemas.metrics import MetricsSnapshot

RevenuePeriod = Literal["day", "week", "month", "year"]


class DashboardOverview(BaseModel):
    """Metrics and alerts for the admin dashboard landing view."""

    model_config = ConfigDict(frozen=True)

    metrics: MetricsSnapshot = Field(..., description="Current metrics snapshot (possibly served from cache).")
    alerts: List[Alert] = Field(default_factory=list, description="Current alert list (possibly served from cache).")
    timestamp: datetime = Field(..., description="UTC timestamp when the overview was assembled.")


class RevenueComparison(BaseModel):
    """Change of completed revenue against the preceding period."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    percentage_change: float = Field(..., description="Percent change vs. previous period, 2 decimals.", alias="percentageChange")
    is_increase: bool = Field(..., alias="isIncrease")
    previous_period_amount: float = Field(..., alias="previousPeriodAmount")
    previous_period: str = Field(..., description="Label such as 'yesterday' or 'last week'.", alias="previousPeriod")


class RevenueBreakdownItem(BaseModel):
    """Completed revenue for one calendar day."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day: date = Field(..., description="Calendar day in the dashboard timezone.", alias="date")
    amount: float
    transaction_count: int = Field(..., ge=0, alias="transactionCount")
    average_value: float = Field(..., alias="averageValue")


class RevenueReport(BaseModel):
    """Completed-ride revenue over a period with comparison and daily breakdown."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    period: RevenuePeriod
    currency: str = Field("USD", description="ISO currency code of all amounts.")
    total_revenue: float = Field(..., alias="totalRevenue")
    transaction_count: int = Field(..., ge=0, alias="transactionCount")
    average_transaction_value: float = Field(..., alias="averageTransactionValue")
    comparison: RevenueComparison
    breakdown: List[RevenueBreakdownItem] = Field(default_factory=list)
