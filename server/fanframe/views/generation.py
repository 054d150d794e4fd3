import logging
from dataclasses import asdict

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from fanframe.models import GenerationJob
from fanframe.serializers import (
    GenerationJobSerializer,
    GenerationRequestSerializer,
    QueuePositionSerializer,
    SubmissionSerializer,
)
from fanframe.services import JobStore, build_dispatcher
from fanframe.utils import CircuitOpenError, GenerationError, RateLimitExceeded, format_error

logger = logging.getLogger(__name__)


def _error_response(exc):
    response = Response(exc.to_payload(), status=exc.status_code)
    if isinstance(exc, (RateLimitExceeded, CircuitOpenError)):
        response["Retry-After"] = str(exc.retry_after_seconds)
    return response


@api_view(["POST"])
@permission_classes([AllowAny])
def submit_generation(request):
    """
    Submit a try-on generation.

    Returns as soon as the provider accepted the job; follow completion via
    the status endpoint or the job's notification channel.
    """
    serializer = GenerationRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            format_error(
                code="validation_error",
                message="Invalid generation request",
                details=serializer.errors,
            ),
            status=status.HTTP_400_BAD_REQUEST,
        )

    data = serializer.validated_data
    try:
        submission = build_dispatcher().submit(
            user_id=data.get("user_id"),
            subject_image=data["subject_image_data"],
            garment_asset_url=data["garment_asset_url"],
            background_asset_url=data["background_asset_url"],
            garment_id=data.get("garment_id"),
        )
    except GenerationError as exc:
        logger.warning(f"Generation rejected ({exc.code}): {exc.message}")
        return _error_response(exc)

    return Response(
        SubmissionSerializer(asdict(submission)).data,
        status=status.HTTP_202_ACCEPTED,
    )


@api_view(["GET"])
@permission_classes([AllowAny])
def generation_status(request, job_id):
    """
    Get the full job row.
    """
    try:
        job = GenerationJob.objects.get(id=job_id)
    except GenerationJob.DoesNotExist:
        return Response(
            format_error(code="not_found", message="Job not found"),
            status=status.HTTP_404_NOT_FOUND,
        )

    return Response(GenerationJobSerializer(job).data)


@api_view(["GET"])
@permission_classes([AllowAny])
def generation_position(request, job_id):
    """
    Get the job's 1-indexed position among active jobs (null once terminal).
    """
    store = JobStore()
    job = store.get(job_id)
    if job is None:
        return Response(
            format_error(code="not_found", message="Job not found"),
            status=status.HTTP_404_NOT_FOUND,
        )

    data = {
        "job_id": job.id,
        "status": job.status,
        "queue_position": store.queue_position(job),
    }
    return Response(QueuePositionSerializer(data).data)
