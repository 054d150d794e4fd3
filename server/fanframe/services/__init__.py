"""Generation pipeline services and the factories wiring them together."""

from django.conf import settings
from django.urls import reverse

from fanframe.utils import ReplicateClient

from .alerts import AlertSink
from .circuit_breaker import CircuitBreaker, CircuitDecision
from .dispatcher import Dispatcher, Submission, estimate_wait
from .job_store import JobStore
from .notifier import StatusNotifier, channel_name, get_notifier
from .rate_limiter import RateLimitDecision, RateLimiter
from .storage import AssetStorage
from .webhook import WebhookOutcome, WebhookReceiver


def webhook_callback_url():
    return f"{settings.WEBHOOK_BASE_URL}{reverse('generation-webhook')}"


def build_dispatcher(provider=None, storage=None, notifier=None):
    alerts = AlertSink()
    return Dispatcher(
        rate_limiter=RateLimiter(alerts=alerts),
        circuit_breaker=CircuitBreaker(alerts=alerts),
        job_store=JobStore(notifier=notifier or get_notifier()),
        storage=storage or AssetStorage(),
        provider=provider or ReplicateClient(),
        alerts=alerts,
        webhook_url=webhook_callback_url(),
    )


def build_webhook_receiver(storage=None, notifier=None):
    alerts = AlertSink()
    return WebhookReceiver(
        job_store=JobStore(notifier=notifier or get_notifier()),
        circuit_breaker=CircuitBreaker(alerts=alerts),
        storage=storage or AssetStorage(),
        alerts=alerts,
    )


__all__ = [
    "AlertSink",
    "AssetStorage",
    "CircuitBreaker",
    "CircuitDecision",
    "Dispatcher",
    "JobStore",
    "RateLimitDecision",
    "RateLimiter",
    "StatusNotifier",
    "Submission",
    "WebhookOutcome",
    "WebhookReceiver",
    "build_dispatcher",
    "build_webhook_receiver",
    "channel_name",
    "estimate_wait",
    "get_notifier",
    "webhook_callback_url",
]
