"""Generation job database models.

`GenerationJob` is the queue entry that tracks one try-on request from
submission to a terminal outcome. `GenerationLog` mirrors the terminal fields
of each job for reporting and carries no authority over job state.
"""

import uuid

from django.db import models
from django.utils import timezone


def new_job_id():
    return str(uuid.uuid4())


class GenerationJob(models.Model):
    """One try-on generation request (the queue entry)."""

    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)

    id = models.CharField(
        primary_key=True,
        max_length=36,
        default=new_job_id,
        editable=False,
    )
    user_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Storefront user id; empty for anonymous generations"
    )
    subject_image_url = models.URLField(
        max_length=1000,
        help_text="Durable URL of the uploaded subject photo"
    )
    garment_asset_url = models.URLField(max_length=1000)
    background_asset_url = models.URLField(max_length=1000)
    garment_id = models.CharField(max_length=100, default='unknown')
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )
    external_job_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Prediction id returned by the inference provider"
    )
    result_image_url = models.URLField(max_length=1000, null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'generation_queue'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='genqueue_status_created_idx'),
            models.Index(fields=['user_id', '-created_at'], name='genqueue_user_created_idx'),
        ]

    def __str__(self):
        return f"Generation {self.id} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class GenerationLog(models.Model):
    """Denormalized per-generation record used for reporting."""

    id = models.CharField(primary_key=True, max_length=36)
    external_user_id = models.CharField(max_length=255, null=True, blank=True)
    garment_id = models.CharField(max_length=100, default='unknown')
    status = models.CharField(
        max_length=20,
        choices=GenerationJob.STATUS_CHOICES,
        default=GenerationJob.STATUS_PENDING
    )
    error_message = models.TextField(null=True, blank=True)
    processing_time_ms = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'generations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['created_at'], name='generations_created_idx'),
            models.Index(fields=['status', 'created_at'], name='generations_status_idx'),
        ]

    def __str__(self):
        return f"Generation log {self.id} - {self.status}"
