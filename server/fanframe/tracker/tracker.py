import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fanframe.tracker.latch import OneShotLatch
from fanframe.tracker.scheduler import TimerScheduler
from fanframe.tracker.sources import SubscriptionStatus

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

TIMEOUT_MESSAGE = "Generation took too long, please try again."
UNKNOWN_ERROR = "Unknown error"


def channel_name(job_id):
    return f"generation:{job_id}"


@dataclass(frozen=True)
class TrackingOutcome:
    status: str
    result_image_url: Optional[str] = None
    error_message: Optional[str] = None
    timed_out: bool = False


class StatusTracker:
    """
    Follows one job until it reaches a terminal state

    Four paths can observe the outcome: the pushed job rows, an immediate
    check, fallback polling (while the subscription is unhealthy) and a
    safety-net poll that runs for the whole tracking. The first terminal
    observation fires the latch; later ones are ignored, so `on_completed`
    or `on_failed` is called exactly once.

    The watchdog only reports a timeout to the caller. It never writes the
    job, so a late webhook still completes it server-side.

    Use as an async context manager; leaving it cancels every timer and
    closes the subscription whatever the exit path.
    """

    def __init__(
        self,
        job_id: str,
        source,
        subscriber,
        on_completed: Callable[[str], None],
        on_failed: Callable[[str], None],
        on_position: Optional[Callable[[int], None]] = None,
        max_duration: float = 180,
        fallback_poll_interval: float = 5,
        safety_poll_interval: float = 10,
        position_poll_interval: float = 5,
        reconnect_delay: float = 2,
        max_reconnect_attempts: int = 5,
    ):
        self.job_id = job_id
        self.source = source
        self.subscriber = subscriber
        self.on_completed = on_completed
        self.on_failed = on_failed
        self.on_position = on_position
        self.max_duration = max_duration
        self.fallback_poll_interval = fallback_poll_interval
        self.safety_poll_interval = safety_poll_interval
        self.position_poll_interval = position_poll_interval
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts

        self.scheduler = TimerScheduler()
        self.outcome: Optional[TrackingOutcome] = None
        self.reconnect_attempts = 0
        self.last_position: Optional[int] = None
        self._latch = OneShotLatch()
        self._handle = None
        self._done: Optional[asyncio.Event] = None
        self._started = False
        self._closed = False

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False

    @property
    def resolved(self) -> bool:
        return self._latch.fired

    @property
    def is_subscribed(self) -> bool:
        return self._handle is not None and not self._handle.closed

    async def start(self):
        if self._started:
            raise RuntimeError("Tracker already started")
        self._started = True
        self._done = asyncio.Event()
        logger.info(f"Tracking job {self.job_id}")

        self.scheduler.call_later("watchdog", self.max_duration, self._on_watchdog)
        await self._subscribe()
        self.scheduler.call_later("resync", 0, self._check_status)
        self.scheduler.call_every("safety_poll", self.safety_poll_interval, self._check_status)
        if self.on_position is not None:
            self.scheduler.call_every(
                "position_poll", self.position_poll_interval, self._refresh_position, run_immediately=True
            )

    async def wait(self) -> TrackingOutcome:
        """Block until the job resolved (or the watchdog fired)."""
        if self._done is None:
            raise RuntimeError("Tracker not started")
        await self._done.wait()
        return self.outcome

    async def close(self):
        if self._closed:
            return
        self._closed = True
        await self.scheduler.drain()
        await self._release_subscription()
        logger.info(f"Stopped tracking job {self.job_id}")

    # Subscription

    async def _subscribe(self):
        try:
            self._handle = await self.subscriber.subscribe(
                channel_name(self.job_id), self._on_message, self._on_subscription_status
            )
        except Exception as exc:
            logger.warning(f"Subscribing to job {self.job_id} failed: {exc}")
            self._on_subscription_status(SubscriptionStatus.CHANNEL_ERROR)

    async def _release_subscription(self):
        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.close()

    def _on_subscription_status(self, status):
        if self.resolved or self._closed:
            return
        logger.info(f"Subscription for job {self.job_id}: {status.value}")

        if status is SubscriptionStatus.SUBSCRIBED:
            self.reconnect_attempts = 0
            self.scheduler.call_later("resync", 0, self._check_status)
        elif status in (SubscriptionStatus.TIMED_OUT, SubscriptionStatus.CHANNEL_ERROR):
            self._start_fallback_polling()
            self._schedule_reconnect()
        elif status is SubscriptionStatus.CLOSED:
            self._start_fallback_polling()

    def _schedule_reconnect(self):
        if self.scheduler.is_active("reconnect"):
            return
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.info(f"Max reconnection attempts reached for job {self.job_id}, polling only")
            return
        self.reconnect_attempts += 1
        delay = self.reconnect_delay * self.reconnect_attempts
        self.scheduler.call_later("reconnect", delay, self._reconnect)

    async def _reconnect(self):
        if self.resolved or self._closed:
            return
        logger.info(f"Reconnecting job {self.job_id} (attempt {self.reconnect_attempts})")
        await self._release_subscription()
        await self._subscribe()
        if self._closed:
            await self._release_subscription()

    def _on_message(self, row):
        if isinstance(row, dict) and row.get("id") in (None, self.job_id):
            self._apply_row(row, via="push")

    # Polling

    def _start_fallback_polling(self):
        if self.scheduler.is_active("fallback_poll") or self.resolved:
            return
        logger.info(f"Starting fallback polling for job {self.job_id}")
        self.scheduler.call_every(
            "fallback_poll", self.fallback_poll_interval, self._check_status, run_immediately=True
        )

    async def _check_status(self):
        if self.resolved:
            return
        try:
            row = await self.source.fetch_job(self.job_id)
        except Exception as exc:
            logger.warning(f"Status check for job {self.job_id} failed: {exc}")
            return
        if row:
            self._apply_row(row, via="poll")

    async def _refresh_position(self):
        if self.resolved:
            return
        try:
            position = await self.source.fetch_queue_position(self.job_id)
        except Exception as exc:
            logger.warning(f"Position check for job {self.job_id} failed: {exc}")
            return
        if position and position != self.last_position:
            self.last_position = position
            self.on_position(position)

    # Resolution

    def _apply_row(self, row, via):
        status = row.get("status")
        if status == STATUS_COMPLETED and row.get("result_image_url"):
            self._resolve(TrackingOutcome(STATUS_COMPLETED, result_image_url=row["result_image_url"]), via)
        elif status == STATUS_FAILED:
            self._resolve(TrackingOutcome(STATUS_FAILED, error_message=row.get("error_message") or UNKNOWN_ERROR), via)

    def _on_watchdog(self):
        logger.warning(f"Job {self.job_id} exceeded {self.max_duration}s, giving up tracking")
        self._resolve(TrackingOutcome(STATUS_FAILED, error_message=TIMEOUT_MESSAGE, timed_out=True), "watchdog")

    def _resolve(self, outcome, via):
        if not self._latch.fire():
            return
        self.outcome = outcome
        logger.info(f"Job {self.job_id} {outcome.status} (observed via {via})")
        self.scheduler.cancel_all()
        self._done.set()
        if outcome.status == STATUS_COMPLETED:
            self.on_completed(outcome.result_image_url)
        else:
            self.on_failed(outcome.error_message)
