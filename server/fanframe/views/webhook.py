import hmac
import logging

from django.conf import settings
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from fanframe.serializers import WebhookPayloadSerializer
from fanframe.services import build_webhook_receiver
from fanframe.utils import format_error

logger = logging.getLogger(__name__)


def _has_valid_secret(request):
    expected = settings.PROVIDER_WEBHOOK_SECRET
    if not expected:
        return True
    supplied = request.META.get("HTTP_X_WEBHOOK_SECRET") or request.query_params.get("secret", "")
    return hmac.compare_digest(str(supplied), str(expected))


@csrf_exempt
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def provider_webhook(request):
    """
    Completion callback from the inference provider.

    Acknowledged with 200 even when processing fails internally; only an
    unknown prediction id answers 404 so the provider retries.
    """
    if not _has_valid_secret(request):
        logger.warning("Webhook rejected: invalid secret")
        return Response(
            format_error(code="unauthorized", message="Invalid webhook secret"),
            status=status.HTTP_401_UNAUTHORIZED,
        )

    serializer = WebhookPayloadSerializer(data=request.data)
    if not serializer.is_valid():
        logger.error(f"Webhook payload rejected: {serializer.errors}")
        return Response(
            format_error(
                code="validation_error",
                message="Missing prediction ID",
                details=serializer.errors,
            ),
            status=status.HTTP_400_BAD_REQUEST,
        )

    data = serializer.validated_data
    external_job_id = data["external_job_id"]
    try:
        outcome = build_webhook_receiver().on_callback(
            external_job_id,
            data.get("status", ""),
            output=data.get("output"),
            error=data.get("error"),
        )
    except Exception:
        logger.exception(f"Error processing webhook for prediction {external_job_id}")
        return Response({"received": True, "external_job_id": external_job_id, "action": "error"})

    if not outcome.acknowledged:
        return Response(
            format_error(
                code="not_found",
                message="Job not found",
                details={"external_job_id": external_job_id},
            ),
            status=status.HTTP_404_NOT_FOUND,
        )

    return Response(
        {
            "received": True,
            "job_id": outcome.job_id,
            "external_job_id": external_job_id,
            "action": outcome.action,
        }
    )
