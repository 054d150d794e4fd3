import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from fanframe.models import GenerationJob

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


class JobStore:
    """
    Persistent job lifecycle: pending -> processing -> completed | failed

    Transitions are conditional updates on the current status, so the first
    terminal write wins and later ones are reported as not applied. Every
    applied change publishes the updated row once the transaction commits.
    """

    def __init__(self, notifier=None):
        self.notifier = notifier

    def create(self, job_id, subject_image_url, garment_asset_url, background_asset_url,
               garment_id=None, user_id=None) -> GenerationJob:
        job = GenerationJob.objects.create(
            id=job_id,
            user_id=user_id or None,
            subject_image_url=subject_image_url,
            garment_asset_url=garment_asset_url,
            background_asset_url=background_asset_url,
            garment_id=garment_id or 'unknown',
            status=GenerationJob.STATUS_PENDING,
        )
        self._notify(job.id)
        return job

    def get(self, job_id) -> Optional[GenerationJob]:
        return GenerationJob.objects.filter(id=job_id).first()

    def find_by_external_id(self, external_job_id) -> Optional[GenerationJob]:
        if not external_job_id:
            return None
        return GenerationJob.objects.filter(external_job_id=external_job_id).first()

    def mark_processing(self, job_id, external_job_id) -> bool:
        updated = GenerationJob.objects.filter(
            id=job_id,
            status=GenerationJob.STATUS_PENDING,
        ).update(
            status=GenerationJob.STATUS_PROCESSING,
            external_job_id=external_job_id,
            started_at=timezone.now(),
        )
        if updated:
            self._notify(job_id)
        else:
            logger.warning(f"Job {job_id} was not pending, processing transition skipped")
        return bool(updated)

    def finalize(self, job_id, status, result_image_url=None, error_message=None) -> bool:
        """
        Move an active job to a terminal status

        Returns:
            True when this call applied the transition, False when the job
            was already terminal (or does not exist)
        """
        if status == GenerationJob.STATUS_COMPLETED:
            if not result_image_url:
                raise ValueError("A completed job requires a result image URL")
            fields = {'result_image_url': result_image_url, 'error_message': None}
        elif status == GenerationJob.STATUS_FAILED:
            fields = {'error_message': error_message or UNKNOWN_ERROR}
        else:
            raise ValueError(f"Not a terminal status: {status}")

        updated = GenerationJob.objects.filter(
            id=job_id,
            status__in=GenerationJob.ACTIVE_STATUSES,
        ).update(status=status, completed_at=timezone.now(), **fields)
        if updated:
            self._notify(job_id)
        return bool(updated)

    def queue_position(self, job) -> Optional[int]:
        """1-indexed position among active jobs, None once the job is terminal."""
        if job.is_terminal:
            return None
        return GenerationJob.objects.filter(
            status__in=GenerationJob.ACTIVE_STATUSES,
        ).filter(
            Q(created_at__lt=job.created_at)
            | Q(created_at=job.created_at, pk__lte=job.pk)
        ).count()

    def _notify(self, job_id):
        if self.notifier is None:
            return
        transaction.on_commit(lambda: self._publish_row(job_id))

    def _publish_row(self, job_id):
        from fanframe.serializers import GenerationJobSerializer

        job = self.get(job_id)
        if job is not None:
            self.notifier.publish(GenerationJobSerializer(job).data)
