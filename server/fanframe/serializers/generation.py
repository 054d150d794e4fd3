"""DRF serializers for the generation pipeline.

This module includes:
- a field decoding the inline (base64 / data URI) subject photo
- the submission request serializer
- the provider webhook payload serializer
- the job row representation shared by the status endpoint and notifier
"""

import base64
import binascii
from io import BytesIO

from django.conf import settings
from PIL import Image, UnidentifiedImageError
from rest_framework import serializers

from fanframe.models import GenerationJob


class InlineImageField(serializers.Field):
    """Decodes a base64 image (optionally a `data:` URI) into raw bytes."""

    default_error_messages = {
        "invalid": "Invalid image data",
        "invalid_image": "Invalid image file",
        "too_large": "Image exceeds the maximum size of {max_bytes} bytes",
    }

    def to_internal_value(self, data):
        if not isinstance(data, str) or not data.strip():
            self.fail("invalid")

        encoded = data.split(",", 1)[1] if data.startswith("data:") else data
        try:
            content = base64.b64decode(encoded.strip(), validate=True)
        except (binascii.Error, ValueError):
            self.fail("invalid")

        max_bytes = settings.MAX_SUBJECT_IMAGE_BYTES
        if len(content) > max_bytes:
            self.fail("too_large", max_bytes=max_bytes)

        try:
            with Image.open(BytesIO(content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            self.fail("invalid_image")

        return content

    def to_representation(self, value):
        return base64.b64encode(value).decode("ascii")


class GenerationRequestSerializer(serializers.Serializer):
    """Serializer for a generation submission"""

    subject_image_data = InlineImageField()
    garment_asset_url = serializers.URLField(max_length=1000)
    background_asset_url = serializers.URLField(max_length=1000)
    garment_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="unknown")
    user_id = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True, default=None)


class WebhookPayloadSerializer(serializers.Serializer):
    """
    Provider callback payload

    Replicate posts the prediction object itself, where `id` is the
    prediction id. `external_job_id` is accepted as an alias.
    """

    id = serializers.CharField(required=False, allow_blank=True)
    external_job_id = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False, allow_blank=True, default="")
    output = serializers.JSONField(required=False, allow_null=True, default=None)
    error = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        external_job_id = attrs.get("external_job_id") or attrs.get("id")
        if not external_job_id:
            raise serializers.ValidationError("Missing prediction ID")
        attrs["external_job_id"] = external_job_id
        error = attrs.get("error")
        if error is not None and not isinstance(error, str):
            attrs["error"] = str(error)
        return attrs


class GenerationJobSerializer(serializers.ModelSerializer):
    """Serializer for GenerationJob model"""

    is_terminal = serializers.ReadOnlyField()

    class Meta:
        model = GenerationJob
        fields = [
            'id',
            'user_id',
            'subject_image_url',
            'garment_asset_url',
            'background_asset_url',
            'garment_id',
            'status',
            'external_job_id',
            'result_image_url',
            'error_message',
            'is_terminal',
            'created_at',
            'started_at',
            'completed_at',
        ]
        read_only_fields = fields


class QueuePositionSerializer(serializers.Serializer):
    job_id = serializers.CharField()
    status = serializers.CharField()
    queue_position = serializers.IntegerField(allow_null=True)


class SubmissionSerializer(serializers.Serializer):
    job_id = serializers.CharField()
    external_job_id = serializers.CharField()
    status = serializers.CharField()
    queue_position = serializers.IntegerField(allow_null=True)
    estimated_wait_seconds = serializers.IntegerField()
    rate_limit_remaining = serializers.IntegerField()
    processing_time_ms = serializers.IntegerField()
