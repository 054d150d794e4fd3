import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from fanframe.models import RateLimitCounter, SystemAlert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: Optional[datetime] = None

    @property
    def retry_after_seconds(self) -> int:
        if self.reset_at is None:
            return 0
        return max(0, int((self.reset_at - timezone.now()).total_seconds()))


class RateLimiter:
    """
    Fixed-window request counter per user and action

    The counter row is locked for the read-check-write sequence. An expired
    window is reset by the next request rather than swept.
    """

    def __init__(self, max_requests=None, window=None, action='generation', alerts=None, clock=None):
        self.max_requests = settings.GENERATION_RATE_LIMIT_MAX if max_requests is None else max_requests
        if window is None:
            window = timedelta(seconds=settings.GENERATION_RATE_LIMIT_WINDOW_SECONDS)
        self.window = window
        self.action = action
        self.alerts = alerts
        self.clock = clock or timezone.now

    def check(self, user_id) -> RateLimitDecision:
        if not user_id:
            return RateLimitDecision(allowed=True, remaining=self.max_requests)

        now = self.clock()
        try:
            with transaction.atomic():
                counter, created = RateLimitCounter.objects.select_for_update().get_or_create(
                    user_id=user_id,
                    action=self.action,
                    defaults={'count': 1, 'window_start': now},
                )
                decision = self._apply(counter, created, now)
        except DatabaseError as exc:
            # Fail open: an unavailable counter store must not block generations
            logger.error(f"Rate limit check failed for user {str(user_id)[:8]}: {exc}")
            return RateLimitDecision(allowed=True, remaining=self.max_requests)

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for user {str(user_id)[:8]}")
            if self.alerts:
                self.alerts.emit(
                    'high_usage',
                    f"Rate limit exceeded for user {str(user_id)[:8]}...",
                    SystemAlert.SEVERITY_INFO,
                )
        return decision

    def _apply(self, counter, created, now):
        if created:
            return RateLimitDecision(True, self.max_requests - 1, now + self.window)

        reset_at = counter.window_start + self.window
        if now >= reset_at:
            counter.count = 1
            counter.window_start = now
            counter.save(update_fields=['count', 'window_start'])
            return RateLimitDecision(True, self.max_requests - 1, now + self.window)

        if counter.count >= self.max_requests:
            return RateLimitDecision(False, 0, reset_at)

        remaining = self.max_requests - counter.count - 1
        counter.count += 1
        counter.save(update_fields=['count'])
        return RateLimitDecision(True, remaining, reset_at)
