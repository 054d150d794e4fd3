from .provider_client import ProviderError, ReplicateClient
from .exceptions import (
    exception_handler,
    format_error,
    GenerationError,
    InvalidGenerationRequest,
    RateLimitExceeded,
    CircuitOpenError,
    ProviderNotConfigured,
    StorageUploadFailed,
    ProviderSubmissionFailed,
    ProviderCredentialsInvalid,
    SubmissionAborted,
)

__all__ = [
    "ProviderError",
    "ReplicateClient",
    "exception_handler",
    "format_error",
    "GenerationError",
    "InvalidGenerationRequest",
    "RateLimitExceeded",
    "CircuitOpenError",
    "ProviderNotConfigured",
    "StorageUploadFailed",
    "ProviderSubmissionFailed",
    "ProviderCredentialsInvalid",
    "SubmissionAborted",
]
