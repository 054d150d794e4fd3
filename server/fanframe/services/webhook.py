import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone

from fanframe.models import GenerationJob, SystemAlert
from fanframe.services.generation_log import record_generation

logger = logging.getLogger(__name__)

PROVIDER_SUCCEEDED = 'succeeded'
PROVIDER_FAILURE_STATUSES = ('failed', 'canceled')

NO_OUTPUT_ERROR = "No image returned from provider"


@dataclass(frozen=True)
class WebhookOutcome:
    acknowledged: bool
    job_id: Optional[str]
    action: str


def extract_output_url(output):
    """First usable URL of a provider output (a list or a single string)."""
    if isinstance(output, (list, tuple)):
        for item in output:
            if isinstance(item, str) and item.strip():
                return item.strip()
        return None
    if isinstance(output, str) and output.strip():
        return output.strip()
    return None


class WebhookReceiver:
    """
    Applies provider completion callbacks to the job store

    Idempotent: a delivery for a job that is already terminal is
    acknowledged without any further writes.
    """

    def __init__(self, job_store, circuit_breaker, storage, alerts, slow_threshold_ms=None, clock=None):
        self.job_store = job_store
        self.circuit_breaker = circuit_breaker
        self.storage = storage
        self.alerts = alerts
        self.slow_threshold_ms = slow_threshold_ms or settings.SLOW_PROCESSING_THRESHOLD_MS
        self.clock = clock or timezone.now

    def on_callback(self, external_job_id, provider_status, output=None, error=None) -> WebhookOutcome:
        job = self.job_store.find_by_external_id(external_job_id)
        if job is None:
            logger.error(f"No job found for prediction {external_job_id}")
            return WebhookOutcome(acknowledged=False, job_id=None, action='not_found')

        logger.info(f"[{job.id}] Webhook for prediction {external_job_id}: {provider_status} (current {job.status})")

        if job.is_terminal:
            logger.info(f"[{job.id}] Already {job.status}, duplicate delivery ignored")
            return WebhookOutcome(acknowledged=True, job_id=job.id, action='duplicate')

        if provider_status == PROVIDER_SUCCEEDED:
            return self._on_success(job, output)
        if provider_status in PROVIDER_FAILURE_STATUSES:
            return self._on_failure(job, error or f"Prediction {provider_status}")

        logger.info(f"[{job.id}] Intermediate status {provider_status}, nothing to do")
        return WebhookOutcome(acknowledged=True, job_id=job.id, action='ignored')

    def _processing_time_ms(self, job):
        if job.started_at is None:
            return None
        return max(0, int((self.clock() - job.started_at).total_seconds() * 1000))

    def _on_success(self, job, output):
        provider_url = extract_output_url(output)
        if provider_url is None:
            logger.error(f"[{job.id}] Provider reported success without an output image")
            return self._on_failure(job, NO_OUTPUT_ERROR)

        try:
            result_url = self.storage.store_result(job.id, provider_url)
        except Exception as exc:
            logger.warning(f"[{job.id}] Could not copy result to storage, keeping provider URL: {exc}")
            result_url = provider_url

        processing_time_ms = self._processing_time_ms(job)
        applied = self.job_store.finalize(job.id, GenerationJob.STATUS_COMPLETED, result_image_url=result_url)
        if not applied:
            logger.info(f"[{job.id}] Lost the race to another terminal write")
            return WebhookOutcome(acknowledged=True, job_id=job.id, action='duplicate')

        record_generation(
            job.id,
            status=GenerationJob.STATUS_COMPLETED,
            processing_time_ms=processing_time_ms,
        )
        self.circuit_breaker.record_success()

        if processing_time_ms is not None and processing_time_ms > self.slow_threshold_ms:
            self.alerts.emit(
                'slow_processing',
                f"Generation took {processing_time_ms / 1000:.1f}s",
                SystemAlert.SEVERITY_WARNING,
            )

        logger.info(f"[{job.id}] Completed in {processing_time_ms}ms")
        return WebhookOutcome(acknowledged=True, job_id=job.id, action='completed')

    def _on_failure(self, job, error_message):
        processing_time_ms = self._processing_time_ms(job)
        applied = self.job_store.finalize(job.id, GenerationJob.STATUS_FAILED, error_message=error_message)
        if not applied:
            logger.info(f"[{job.id}] Lost the race to another terminal write")
            return WebhookOutcome(acknowledged=True, job_id=job.id, action='duplicate')

        logger.error(f"[{job.id}] Generation failed: {error_message}")
        record_generation(
            job.id,
            status=GenerationJob.STATUS_FAILED,
            error_message=error_message,
            processing_time_ms=processing_time_ms,
        )
        self.circuit_breaker.record_failure(error_message)
        return WebhookOutcome(acknowledged=True, job_id=job.id, action='failed')
