from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum


class Severity(str, Enum):
    """Severity levels for dashboard alerts."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class AlertType(str, Enum):
    """Area of the operation an alert belongs to."""

    performance = "performance"
    financial = "financial"
    technical = "technical"


class SystemStatus(str, Enum):
    """Three-state health classification shown on the dashboard."""

    healthy = "healthy"
    warning = "warning"
    critical = "critical"


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def round_half_up(value: float, places: int) -> float:
    """Round half away from zero to a fixed number of decimals (2.345 -> 2.35, not 2.34)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def round_currency(value: float) -> float:
    return round_half_up(value, 2)


def round_rating(value: float) -> float:
    return round_half_up(value, 1)
