"""
Alert feed for the operator dashboard.

Bounded, newest first. The aggregator is the only writer of the feed and
is only touched from the event loop.
"""

from collections import Counter, deque

from borderwatch.core.logging import get_logger
from borderwatch.domain.models import Alert, Severity

logger = get_logger(__name__)

DEFAULT_CAPACITY = 50


class AlertAggregator:
    """
    Keeps the most recent alerts and reports per-severity counts.

    Example:
        aggregator = AlertAggregator(capacity=50)
        aggregator.add_alert(alert)
        aggregator.counts_by_severity()[Severity.HIGH]
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize the feed.

        Args:
            capacity: Maximum alerts retained; the oldest are evicted first.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._alerts: deque[Alert] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._alerts)

    def add_alert(self, alert: Alert) -> None:
        """Prepend an alert, evicting the oldest past capacity."""
        evicted = len(self._alerts) == self.capacity
        self._alerts.appendleft(alert)

        logger.info(
            "alert_added",
            alert_id=alert.id,
            type=alert.type.value,
            severity=alert.severity.value,
            title=alert.title,
            evicted_oldest=evicted,
        )

    def list_alerts(self, limit: int | None = None) -> list[Alert]:
        """Alerts newest first, optionally truncated to ``limit``."""
        alerts = list(self._alerts)
        if limit is not None:
            alerts = alerts[: max(0, limit)]
        return alerts

    def counts_by_severity(self) -> dict[Severity, int]:
        """
        Count alerts per severity by scanning the feed.

        Every severity is present in the result, so the values always sum
        to the number of alerts.
        """
        counts = Counter(alert.severity for alert in self._alerts)
        return {severity: counts.get(severity, 0) for severity in Severity}

    def filter_by_severity(self, severity: Severity) -> list[Alert]:
        """Alerts of one severity, most recent timestamp first."""
        matching = [a for a in self._alerts if a.severity == severity]
        return sorted(matching, key=lambda a: a.timestamp, reverse=True)

    def clear(self) -> int:
        """Empty the feed and return how many alerts were dropped."""
        dropped = len(self._alerts)
        self._alerts.clear()
        logger.info("alerts_cleared", dropped=dropped)
        return dropped
