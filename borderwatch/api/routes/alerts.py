"""
Alert feed API routes.

Backs the dashboard feed and its per-severity counters.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from borderwatch.api.deps import Alerts, ApiKeyAuth
from borderwatch.core.logging import get_logger
from borderwatch.domain.models import Alert, AlertType, Severity

logger = get_logger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


class AlertResponse(BaseModel):
    """Response model for a single alert."""

    id: str = Field(description="Alert ID")
    type: AlertType = Field(description="Detection flow that raised the alert")
    severity: Severity = Field(description="Triage level")
    title: str
    description: str
    data: dict[str, Any] = Field(description="Raw detection result")
    timestamp: datetime = Field(description="When the alert was created")

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertResponse":
        return cls(
            id=alert.id,
            type=alert.type,
            severity=alert.severity,
            title=alert.title,
            description=alert.description,
            data=alert.data,
            timestamp=alert.timestamp,
        )


class AlertListResponse(BaseModel):
    """Response model for alert list."""

    alerts: list[AlertResponse] = Field(description="Alerts, newest first")
    count: int = Field(description="Number of alerts returned")


class AlertCountsResponse(BaseModel):
    """Alert totals per severity."""

    counts: dict[Severity, int]
    total: int


class ClearAlertsResponse(BaseModel):
    success: bool
    cleared: int


@router.get(
    "",
    response_model=AlertListResponse,
    summary="List alerts",
    description="Alerts newest first, optionally filtered by severity.",
)
async def list_alerts(
    alerts: Alerts,
    severity: Severity | None = None,
    limit: int | None = Query(default=None, ge=0),
) -> AlertListResponse:
    """List alerts for the dashboard feed."""
    if severity is not None:
        items = alerts.filter_by_severity(severity)
        if limit is not None:
            items = items[:limit]
    else:
        items = alerts.list_alerts(limit)

    return AlertListResponse(
        alerts=[AlertResponse.from_domain(a) for a in items],
        count=len(items),
    )


@router.get(
    "/counts",
    response_model=AlertCountsResponse,
    summary="Alert counts by severity",
)
async def alert_counts(alerts: Alerts) -> AlertCountsResponse:
    """Every severity is present; the counts sum to the feed length."""
    counts = alerts.counts_by_severity()
    return AlertCountsResponse(counts=counts, total=sum(counts.values()))


@router.delete(
    "",
    response_model=ClearAlertsResponse,
    summary="Clear alert feed",
)
async def clear_alerts(alerts: Alerts, _: ApiKeyAuth) -> ClearAlertsResponse:
    cleared = alerts.clear()
    return ClearAlertsResponse(success=True, cleared=cleared)
