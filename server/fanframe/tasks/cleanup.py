from celery import shared_task
from django.conf import settings
from django.utils import timezone
from datetime import timedelta
import cloudinary.uploader
import re
from fanframe.models import GenerationJob, RateLimitCounter
import logging

logger = logging.getLogger(__name__)


def extract_public_id(cloudinary_url):
    """Extract public_id from Cloudinary URL"""
    # URL format: https://res.cloudinary.com/{cloud_name}/image/{type}/{version}/{public_id}.{format}
    if not cloudinary_url or 'res.cloudinary.com' not in cloudinary_url:
        return None
    match = re.search(r'/([^/]+)/v\d+/(.+)\.\w+$', cloudinary_url)
    if match:
        return match.group(2)
    return None


def destroy_job_assets(job):
    """Delete the stored subject photo and result of a job"""
    for url in (job.subject_image_url, job.result_image_url):
        public_id = extract_public_id(url)
        if public_id:
            cloudinary.uploader.destroy(public_id)


@shared_task(name='fanframe.tasks.purge_finished_generations')
def purge_finished_generations():
    """
    Daily task to purge terminal jobs past the retention period
    Deletes stored assets and queue rows; the generation log is kept
    """
    cutoff_time = timezone.now() - timedelta(days=settings.GENERATION_RETENTION_DAYS)
    finished_jobs = GenerationJob.objects.filter(
        status__in=GenerationJob.TERMINAL_STATUSES,
        created_at__lt=cutoff_time
    )

    count = 0
    for job in finished_jobs:
        try:
            destroy_job_assets(job)
            job.delete()
            count += 1

        except Exception as e:
            logger.error(f"Error purging generation {job.id}: {e}")

    logger.info(f"Purged {count} finished generations")
    return count


@shared_task(name='fanframe.tasks.cleanup_failed_generations')
def cleanup_failed_generations():
    """
    Hourly task to cleanup failed jobs older than FAILED_JOB_RETENTION_HOURS
    """
    cutoff_time = timezone.now() - timedelta(hours=settings.FAILED_JOB_RETENTION_HOURS)
    failed_jobs = GenerationJob.objects.filter(
        status=GenerationJob.STATUS_FAILED,
        created_at__lt=cutoff_time
    )

    count = 0
    for job in failed_jobs:
        try:
            # Subject photo only; failed jobs have no result
            public_id = extract_public_id(job.subject_image_url)
            if public_id:
                cloudinary.uploader.destroy(public_id)

            job.delete()
            count += 1

        except Exception as e:
            logger.error(f"Error cleaning up failed generation {job.id}: {e}")

    logger.info(f"Cleaned up {count} failed generations")
    return count


@shared_task(name='fanframe.tasks.cleanup_stale_rate_limits')
def cleanup_stale_rate_limits():
    """
    Daily task deleting rate limit counters whose window ended over a day ago
    """
    window = timedelta(seconds=settings.GENERATION_RATE_LIMIT_WINDOW_SECONDS)
    cutoff_time = timezone.now() - window - timedelta(days=1)
    count, _ = RateLimitCounter.objects.filter(window_start__lt=cutoff_time).delete()
    logger.info(f"Deleted {count} stale rate limit counters")
    return count
