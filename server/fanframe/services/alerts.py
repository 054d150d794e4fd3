import logging

from fanframe.models import SystemAlert
from fanframe.services.side_effects import non_critical

logger = logging.getLogger(__name__)


class AlertSink:
    """Writes operator alerts. Never raises into the caller."""

    @non_critical("system alert")
    def emit(self, alert_type, message, severity=SystemAlert.SEVERITY_INFO):
        logger.info(f"Alert [{severity}] {alert_type}: {message}")
        return SystemAlert.objects.create(
            type=alert_type,
            message=message,
            severity=severity,
        )
