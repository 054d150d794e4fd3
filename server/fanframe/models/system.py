"""Operational records: alerts raised by the pipeline and key/value settings."""

from django.db import models
from django.utils import timezone


class SystemAlert(models.Model):
    """Alert for operators. Created by the pipeline, resolved by hand."""

    TYPE_CHOICES = [
        ('high_usage', 'High usage'),
        ('api_error', 'API error'),
        ('slow_processing', 'Slow processing'),
        ('error_spike', 'Error spike'),
    ]

    SEVERITY_INFO = 'info'
    SEVERITY_WARNING = 'warning'
    SEVERITY_CRITICAL = 'critical'

    SEVERITY_CHOICES = [
        (SEVERITY_INFO, 'Info'),
        (SEVERITY_WARNING, 'Warning'),
        (SEVERITY_CRITICAL, 'Critical'),
    ]

    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    message = models.TextField()
    severity = models.CharField(
        max_length=20,
        choices=SEVERITY_CHOICES,
        default=SEVERITY_INFO
    )
    resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'system_alerts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['resolved', '-created_at'], name='alerts_resolved_created_idx'),
        ]

    def __str__(self):
        return f"[{self.severity}] {self.type}: {self.message[:60]}"

    def resolve(self):
        """Mark the alert as handled by an operator."""
        if self.resolved:
            return
        self.resolved = True
        self.resolved_at = timezone.now()
        self.save(update_fields=['resolved', 'resolved_at'])


class SystemSetting(models.Model):
    """Runtime setting editable from the admin (e.g. the generation prompt)."""

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.CharField(max_length=255, blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'system_settings'
        ordering = ['key']

    def __str__(self):
        return self.key
