import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from fanframe.models import GenerationJob, SystemAlert
from fanframe.services.generation_log import record_generation
from fanframe.services.prompts import get_generation_prompt
from fanframe.utils import (
    CircuitOpenError,
    GenerationError,
    InvalidGenerationRequest,
    ProviderCredentialsInvalid,
    ProviderError,
    ProviderNotConfigured,
    ProviderSubmissionFailed,
    RateLimitExceeded,
    StorageUploadFailed,
    SubmissionAborted,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    job_id: str
    external_job_id: str
    status: str
    queue_position: Optional[int]
    estimated_wait_seconds: int
    rate_limit_remaining: int
    processing_time_ms: int


def estimate_wait(queue_position):
    """Heuristic wait in seconds, tiered by queue depth."""
    if queue_position is None or queue_position <= 5:
        return 45
    if queue_position <= 20:
        return 120
    return 300


class Dispatcher:
    """
    Accepts a generation request and hands it to the inference provider

    Gated by the rate limiter and the circuit breaker before anything is
    stored. Returns as soon as the provider accepted the job; completion
    arrives later through the webhook.
    """

    def __init__(self, rate_limiter, circuit_breaker, job_store, storage, provider, alerts, webhook_url):
        self.rate_limiter = rate_limiter
        self.circuit_breaker = circuit_breaker
        self.job_store = job_store
        self.storage = storage
        self.provider = provider
        self.alerts = alerts
        self.webhook_url = webhook_url

    def submit(self, user_id, subject_image, garment_asset_url, background_asset_url, garment_id=None) -> Submission:
        started = time.monotonic()

        if not subject_image:
            raise InvalidGenerationRequest("Missing required parameter: subject image")
        if not garment_asset_url or not background_asset_url:
            raise InvalidGenerationRequest(
                "Missing required parameters: garment asset URL and background asset URL"
            )

        if not self.provider.is_configured:
            logger.error("REPLICATE_API_TOKEN is not configured")
            raise ProviderNotConfigured("Inference provider is not configured")

        rate_limit = self.rate_limiter.check(user_id)
        if not rate_limit.allowed:
            raise RateLimitExceeded(
                limit=self.rate_limiter.max_requests,
                reset_at=rate_limit.reset_at,
                retry_after_seconds=rate_limit.retry_after_seconds,
            )

        circuit = self.circuit_breaker.check_allowed()
        if not circuit.allowed:
            raise CircuitOpenError(circuit.reason, circuit.retry_after_seconds)

        job_id = str(uuid.uuid4())
        garment_id = garment_id or 'unknown'
        logger.info(f"[{job_id}] Submitting generation for user {str(user_id)[:8] if user_id else None}")

        try:
            subject_image_url = self.storage.store_subject_image(job_id, subject_image)
        except Exception as exc:
            logger.error(f"[{job_id}] Subject image upload failed: {exc}")
            raise StorageUploadFailed(f"Failed to upload image: {exc}") from exc

        job = self.job_store.create(
            job_id=job_id,
            user_id=user_id,
            subject_image_url=subject_image_url,
            garment_asset_url=garment_asset_url,
            background_asset_url=background_asset_url,
            garment_id=garment_id,
        )
        record_generation(
            job_id,
            external_user_id=user_id or None,
            garment_id=garment_id,
            status=GenerationJob.STATUS_PROCESSING,
        )

        try:
            prompt = get_generation_prompt()
            logger.info(f"[{job_id}] Calling provider with webhook {self.webhook_url}")
            try:
                prediction = self.provider.create_prediction(
                    prompt=prompt,
                    image_urls=[subject_image_url, garment_asset_url, background_asset_url],
                    webhook_url=self.webhook_url,
                )
            except ProviderError as exc:
                raise self._reject(job, user_id, garment_id, exc, started) from exc

            external_job_id = prediction['id']
            self.job_store.mark_processing(job_id, external_job_id)

            job.refresh_from_db()
            queue_position = self.job_store.queue_position(job)
        except GenerationError:
            raise
        except Exception as exc:
            logger.exception(f"[{job_id}] Submission aborted")
            raise self._abort(job, user_id, garment_id, exc, started) from exc

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"[{job_id}] Accepted as prediction {external_job_id} in {elapsed_ms}ms, "
            f"queue position {queue_position}"
        )

        return Submission(
            job_id=job_id,
            external_job_id=external_job_id,
            status=job.status,
            queue_position=queue_position,
            estimated_wait_seconds=estimate_wait(queue_position),
            rate_limit_remaining=rate_limit.remaining,
            processing_time_ms=elapsed_ms,
        )

    def _reject(self, job, user_id, garment_id, exc, started):
        """Record a refused submission and return the error for the caller."""
        status_label = exc.status_code if exc.status_code is not None else "unreachable"
        message = f"Replicate API error: {status_label}"
        logger.error(f"[{job.id}] {message}")

        self.job_store.finalize(job.id, GenerationJob.STATUS_FAILED, error_message=message)
        record_generation(
            job.id,
            external_user_id=user_id or None,
            garment_id=garment_id,
            status=GenerationJob.STATUS_FAILED,
            error_message=message,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
        self.circuit_breaker.record_failure(f"API error: {status_label}")

        if exc.is_credential_error:
            self.alerts.emit(
                'api_error',
                "Replicate API token is invalid",
                SystemAlert.SEVERITY_CRITICAL,
            )
            return ProviderCredentialsInvalid(
                "Invalid API token. Please check configuration.",
                job_id=job.id,
                provider_status=exc.status_code,
            )

        return ProviderSubmissionFailed(message, job_id=job.id, provider_status=exc.status_code)

    def _abort(self, job, user_id, garment_id, exc, started):
        """Fail a job whose submission broke for a reason other than the provider's answer."""
        message = f"Submission failed: {exc}"
        self.job_store.finalize(job.id, GenerationJob.STATUS_FAILED, error_message=message)
        record_generation(
            job.id,
            external_user_id=user_id or None,
            garment_id=garment_id,
            status=GenerationJob.STATUS_FAILED,
            error_message=message,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
        return SubmissionAborted("Failed to submit generation", job_id=job.id)
