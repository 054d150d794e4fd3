from rest_framework.views import exception_handler as drf_exception_handler


def exception_handler(exc, context):
    """
    Custom exception handler for DRF that returns consistent error format.
    """
    response = drf_exception_handler(exc, context)

    if response:
        response.data = format_error(
            code=getattr(exc, "default_code", "error"),
            message=str(exc),
            details=(
                response.data
                if isinstance(response.data, dict)
                else {"detail": response.data}
            ),
        )

    return response


def format_error(code: str, message: str, details=None):
    return {
        "error": message,
        "error_code": str(code).lower(),
        "details": details if details is not None else {},
    }


class GenerationError(Exception):
    """Base class for errors surfaced to callers of the generation API"""

    code = "generation_error"
    status_code = 500

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_payload(self):
        return format_error(code=self.code, message=self.message, details=self.details)


class InvalidGenerationRequest(GenerationError):
    """Raised when required inputs are missing or malformed"""

    code = "validation_error"
    status_code = 400


class RateLimitExceeded(GenerationError):
    """Raised when a user exhausted the generation quota for the current window"""

    code = "rate_limit_exceeded"
    status_code = 429

    def __init__(self, limit, reset_at, retry_after_seconds):
        self.limit = limit
        self.reset_at = reset_at
        self.retry_after_seconds = retry_after_seconds
        minutes = max(1, -(-retry_after_seconds // 60))
        super().__init__(
            f"Limit of {limit} generations per hour reached. Try again in {minutes} minutes.",
            details={
                "reset_at": reset_at.isoformat() if reset_at else None,
                "retry_after_seconds": retry_after_seconds,
            },
        )


class CircuitOpenError(GenerationError):
    """Raised when the provider circuit is open and new work is refused"""

    code = "circuit_open"
    status_code = 503

    def __init__(self, message, retry_after_seconds):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, details={"retry_after_seconds": retry_after_seconds})


class ProviderNotConfigured(GenerationError):
    """Raised when the inference provider credential is missing"""

    code = "provider_not_configured"
    status_code = 500


class StorageUploadFailed(GenerationError):
    """Raised when the subject photo cannot be persisted"""

    code = "upload_failed"
    status_code = 500


class ProviderSubmissionFailed(GenerationError):
    """Raised when the provider refused to accept a job"""

    code = "provider_error"
    status_code = 502

    def __init__(self, message, job_id, provider_status=None):
        self.job_id = job_id
        self.provider_status = provider_status
        super().__init__(
            message,
            details={"job_id": job_id, "provider_status": provider_status},
        )


class ProviderCredentialsInvalid(ProviderSubmissionFailed):
    """Raised when the provider rejected our credential (401/403)"""

    code = "provider_credentials_invalid"


class SubmissionAborted(GenerationError):
    """Raised when submission broke after the job row existed; the job is failed"""

    code = "submission_failed"
    status_code = 500

    def __init__(self, message, job_id):
        self.job_id = job_id
        super().__init__(message, details={"job_id": job_id})
