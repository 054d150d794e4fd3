"""Status notifier: fans job row changes out to subscribers of that job.

Every change to a job publishes the full row as JSON on the channel
`generation:<job_id>`. Redis pub/sub is used when `NOTIFIER_URL` points at a
Redis server; otherwise an in-process backend serves single-process setups
and tests.
"""

import json
import logging
import threading

import redis
from django.conf import settings

from fanframe.services.side_effects import non_critical

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "generation:"


def channel_name(job_id):
    return f"{CHANNEL_PREFIX}{job_id}"


class Subscription:
    """Handle returned by `LocalNotifierBackend.subscribe`."""

    def __init__(self, backend, channel, callback):
        self._backend = backend
        self.channel = channel
        self.callback = callback
        self.closed = False

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._backend._remove(self)


class LocalNotifierBackend:
    """In-process pub/sub. Callbacks run on the publishing thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = {}

    def subscribe(self, channel, callback):
        subscription = Subscription(self, channel, callback)
        with self._lock:
            self._listeners.setdefault(channel, []).append(subscription)
        return subscription

    def _remove(self, subscription):
        with self._lock:
            listeners = self._listeners.get(subscription.channel, [])
            if subscription in listeners:
                listeners.remove(subscription)
            if not listeners:
                self._listeners.pop(subscription.channel, None)

    def subscriber_count(self, channel):
        with self._lock:
            return len(self._listeners.get(channel, []))

    def publish(self, channel, message):
        with self._lock:
            listeners = list(self._listeners.get(channel, []))
        for subscription in listeners:
            try:
                subscription.callback(message)
            except Exception:
                logger.exception(f"Listener on {channel} failed")
        return len(listeners)


class RedisNotifierBackend:
    def __init__(self, url):
        self.url = url
        self.client = redis.Redis.from_url(url)

    def publish(self, channel, message):
        return self.client.publish(channel, message)


class StatusNotifier:
    def __init__(self, backend):
        self.backend = backend

    @non_critical("status notification")
    def publish(self, row):
        """Publish a serialized job row to the job's channel."""
        channel = channel_name(row["id"])
        receivers = self.backend.publish(channel, json.dumps(row))
        logger.debug(f"Published {row.get('status')} for job {row['id']} to {receivers} subscribers")
        return receivers


def build_notifier_backend(url):
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisNotifierBackend(url)
    if url.startswith("local://"):
        return LocalNotifierBackend()
    raise ValueError(f"Unsupported NOTIFIER_URL: {url}")


_notifiers = {}
_notifiers_lock = threading.Lock()


def get_notifier():
    """Return the process notifier for the configured `NOTIFIER_URL`."""
    url = settings.NOTIFIER_URL
    with _notifiers_lock:
        if url not in _notifiers:
            _notifiers[url] = StatusNotifier(build_notifier_backend(url))
        return _notifiers[url]
