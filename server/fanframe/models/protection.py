"""Shared state backing the rate limiter and the provider circuit breaker."""

from django.db import models
from django.utils import timezone


class RateLimitCounter(models.Model):
    """Request counter for one user and action inside a fixed window."""

    user_id = models.CharField(max_length=255)
    action = models.CharField(max_length=50, default='generation')
    count = models.PositiveIntegerField(default=0)
    window_start = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'rate_limits'
        constraints = [
            models.UniqueConstraint(
                fields=['user_id', 'action'],
                name='unique_rate_limit_per_user_action',
            ),
        ]

    def __str__(self):
        return f"{self.user_id} {self.action}: {self.count}"


class CircuitState(models.Model):
    """Persisted circuit breaker state, shared by every API process."""

    STATE_CLOSED = 'closed'
    STATE_OPEN = 'open'
    STATE_HALF_OPEN = 'half-open'

    STATE_CHOICES = [
        (STATE_CLOSED, 'Closed'),
        (STATE_OPEN, 'Open'),
        (STATE_HALF_OPEN, 'Half-open'),
    ]

    name = models.CharField(max_length=50, unique=True)
    state = models.CharField(
        max_length=20,
        choices=STATE_CHOICES,
        default=STATE_CLOSED
    )
    failure_count = models.PositiveIntegerField(default=0)
    last_failure_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'circuit_states'

    def __str__(self):
        return f"Circuit {self.name}: {self.state} ({self.failure_count} failures)"
