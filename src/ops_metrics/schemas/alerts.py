from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.ops_metrics.schemas.common import AlertType, Severity

AlertRuleId = Literal[
    "low_driver_availability",
    "high_cancellation_rate",
    "revenue_drop",
    "stuck_rides",
]


class Alert(BaseModel):
    """A live dashboard alert produced by one rule evaluation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: AlertRuleId = Field(..., description="Stable rule slug; re-evaluation replaces rather than accumulates.")
    type: AlertType = Field(..., description="Area of the operation the alert belongs to.")
    severity: Severity = Field(..., description="Alert severity.")
    title: str = Field(..., description="Short alert title.")
    message: str = Field(..., description="Human-readable message including the triggering value.")
    timestamp: datetime = Field(..., description="UTC timestamp of the evaluation that produced the alert.")
    acknowledged: bool = Field(default=False, description="Always false at creation; not persisted by this engine.")
