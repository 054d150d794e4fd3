"""Client-side job status tracking (push with polling fallback)."""

from .latch import OneShotLatch
from .scheduler import TimerScheduler
from .sources import (
    ChannelHandle,
    HttpJobStatusSource,
    LocalChannelSubscriber,
    RedisChannelSubscriber,
    SubscriptionStatus,
)
from .tracker import StatusTracker, TrackingOutcome

__all__ = [
    "ChannelHandle",
    "HttpJobStatusSource",
    "LocalChannelSubscriber",
    "OneShotLatch",
    "RedisChannelSubscriber",
    "StatusTracker",
    "SubscriptionStatus",
    "TimerScheduler",
    "TrackingOutcome",
]
