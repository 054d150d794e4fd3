"""Serializer package for the `fanframe` Django app.

This package re-exports the public DRF serializer classes used by views.
"""

from .generation import (
    GenerationJobSerializer,
    GenerationRequestSerializer,
    QueuePositionSerializer,
    SubmissionSerializer,
    WebhookPayloadSerializer,
)

__all__ = [
    "GenerationJobSerializer",
    "GenerationRequestSerializer",
    "QueuePositionSerializer",
    "SubmissionSerializer",
    "WebhookPayloadSerializer",
]
