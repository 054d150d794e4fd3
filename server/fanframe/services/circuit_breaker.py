import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from fanframe.models import CircuitState, SystemAlert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitDecision:
    allowed: bool
    reason: Optional[str] = None
    retry_after_seconds: int = 0


class CircuitBreaker:
    """
    Global gate in front of the inference provider

    State lives in the `circuit_states` table so every API process sees the
    same circuit. Half-open does not serialize concurrent trial requests.
    """

    def __init__(self, name='provider', failure_threshold=None, recovery_time=None, alerts=None, clock=None):
        self.name = name
        self.failure_threshold = settings.CIRCUIT_FAILURE_THRESHOLD if failure_threshold is None else failure_threshold
        if recovery_time is None:
            recovery_time = timedelta(seconds=settings.CIRCUIT_RECOVERY_SECONDS)
        self.recovery_time = recovery_time
        self.alerts = alerts
        self.clock = clock or timezone.now

    def _load(self, for_update=False):
        queryset = CircuitState.objects.select_for_update() if for_update else CircuitState.objects
        circuit, _ = queryset.get_or_create(name=self.name)
        return circuit

    def snapshot(self):
        circuit = self._load()
        return {
            'state': circuit.state,
            'failure_count': circuit.failure_count,
            'last_failure_at': circuit.last_failure_at,
        }

    def check_allowed(self) -> CircuitDecision:
        with transaction.atomic():
            circuit = self._load(for_update=True)

            if circuit.state == CircuitState.STATE_CLOSED:
                return CircuitDecision(allowed=True)

            if circuit.state == CircuitState.STATE_HALF_OPEN:
                return CircuitDecision(allowed=True, reason='half-open trial')

            elapsed = None
            if circuit.last_failure_at is not None:
                elapsed = self.clock() - circuit.last_failure_at

            if elapsed is None or elapsed >= self.recovery_time:
                circuit.state = CircuitState.STATE_HALF_OPEN
                circuit.save(update_fields=['state', 'updated_at'])
                logger.info(f"Circuit '{self.name}' moved to half-open")
                return CircuitDecision(allowed=True, reason='half-open trial')

            retry_after = max(1, int((self.recovery_time - elapsed).total_seconds()))
            return CircuitDecision(
                allowed=False,
                reason='Service temporarily unavailable. Please try again in a few minutes.',
                retry_after_seconds=retry_after,
            )

    def record_failure(self, reason=''):
        opened = False
        with transaction.atomic():
            circuit = self._load(for_update=True)
            circuit.failure_count += 1
            circuit.last_failure_at = self.clock()
            tripped = (
                circuit.failure_count >= self.failure_threshold
                or circuit.state == CircuitState.STATE_HALF_OPEN
            )
            if tripped and circuit.state != CircuitState.STATE_OPEN:
                circuit.state = CircuitState.STATE_OPEN
                opened = True
            circuit.save(update_fields=['failure_count', 'last_failure_at', 'state', 'updated_at'])
            failures = circuit.failure_count

        logger.warning(f"Circuit '{self.name}' failure {failures}: {reason}")
        if opened:
            logger.error(f"Circuit '{self.name}' opened after {failures} failures")
            if self.alerts:
                self.alerts.emit(
                    'api_error',
                    f"Circuit breaker opened after {failures} failures. Last error: {reason}",
                    SystemAlert.SEVERITY_CRITICAL,
                )

    def record_success(self):
        with transaction.atomic():
            circuit = self._load(for_update=True)
            if circuit.state == CircuitState.STATE_CLOSED:
                return
            circuit.state = CircuitState.STATE_CLOSED
            circuit.failure_count = 0
            circuit.save(update_fields=['state', 'failure_count', 'updated_at'])
        logger.info(f"Circuit '{self.name}' closed")

    def reset(self):
        """Force the circuit closed (operator action)."""
        CircuitState.objects.update_or_create(
            name=self.name,
            defaults={'state': CircuitState.STATE_CLOSED, 'failure_count': 0, 'last_failure_at': None},
        )
