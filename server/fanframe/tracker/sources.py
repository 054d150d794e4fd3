"""Where the tracker reads job state from.

`HttpJobStatusSource` polls the status and position endpoints. The
subscribers deliver the job rows published by the status notifier, either
over Redis pub/sub or from the in-process backend.
"""

import asyncio
import enum
import json
import logging
from typing import Callable, Optional

import httpx
import redis.asyncio as redis_async
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)


class SubscriptionStatus(enum.Enum):
    SUBSCRIBED = "SUBSCRIBED"
    TIMED_OUT = "TIMED_OUT"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    CLOSED = "CLOSED"


class HttpJobStatusSource:
    """Reads job rows and queue positions from the FanFrame API with httpx."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch_job(self, job_id: str) -> Optional[dict]:
        response = await self._client.get(f"{self.base_url}/api/generations/{job_id}/")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    async def fetch_queue_position(self, job_id: str) -> Optional[int]:
        response = await self._client.get(f"{self.base_url}/api/generations/{job_id}/position/")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json().get("queue_position")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()


class ChannelHandle:
    """Cancellation handle for one channel subscription."""

    def __init__(self, close_callback, task: Optional[asyncio.Task] = None):
        self._close_callback = close_callback
        self._task = task
        self.closed = False

    async def close(self):
        if self.closed:
            return
        self.closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        result = self._close_callback()
        if asyncio.iscoroutine(result):
            await result


class LocalChannelSubscriber:
    """Subscribes to the in-process notifier backend."""

    def __init__(self, backend):
        self.backend = backend

    async def subscribe(self, channel: str, on_message: Callable, on_status: Callable) -> ChannelHandle:
        loop = asyncio.get_running_loop()

        def deliver(message):
            # Publishing may happen on another thread
            loop.call_soon_threadsafe(on_message, json.loads(message))

        subscription = self.backend.subscribe(channel, deliver)
        loop.call_soon(on_status, SubscriptionStatus.SUBSCRIBED)
        return ChannelHandle(subscription.close)


class RedisChannelSubscriber:
    """Subscribes to a job channel with redis.asyncio pub/sub."""

    def __init__(self, redis_url: str, connect_timeout: float = 5.0):
        self.redis_url = redis_url
        self.connect_timeout = connect_timeout

    async def subscribe(self, channel: str, on_message: Callable, on_status: Callable) -> ChannelHandle:
        client = redis_async.from_url(
            self.redis_url,
            decode_responses=True,
            socket_connect_timeout=self.connect_timeout,
            socket_keepalive=True,
        )
        pubsub = client.pubsub()

        async def release():
            try:
                await pubsub.aclose()
            finally:
                await client.aclose()

        try:
            await asyncio.wait_for(pubsub.subscribe(channel), timeout=self.connect_timeout)
        except (asyncio.TimeoutError, RedisTimeoutError):
            await release()
            on_status(SubscriptionStatus.TIMED_OUT)
            return ChannelHandle(lambda: None)
        except RedisError as exc:
            logger.warning(f"Subscription to {channel} failed: {exc}")
            await release()
            on_status(SubscriptionStatus.CHANNEL_ERROR)
            return ChannelHandle(lambda: None)

        on_status(SubscriptionStatus.SUBSCRIBED)
        task = asyncio.get_running_loop().create_task(
            self._read(pubsub, channel, on_message, on_status),
            name=f"subscription:{channel}",
        )
        return ChannelHandle(release, task)

    async def _read(self, pubsub, channel, on_message, on_status):
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    on_message(json.loads(message["data"]))
                except ValueError:
                    logger.warning(f"Ignoring malformed message on {channel}")
        except RedisTimeoutError:
            on_status(SubscriptionStatus.TIMED_OUT)
            return
        except RedisError as exc:
            logger.warning(f"Subscription to {channel} dropped: {exc}")
            on_status(SubscriptionStatus.CHANNEL_ERROR)
            return
        on_status(SubscriptionStatus.CLOSED)
