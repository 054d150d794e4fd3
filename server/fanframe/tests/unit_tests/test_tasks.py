from datetime import timedelta
from unittest.mock import call, patch

from django.test import TestCase, override_settings
from django.utils import timezone

from fanframe.models import GenerationJob, GenerationLog, RateLimitCounter
from fanframe.tasks.cleanup import (
    cleanup_failed_generations,
    cleanup_stale_rate_limits,
    extract_public_id,
    purge_finished_generations,
)

SUBJECT_URL = "https://res.cloudinary.com/demo/image/upload/v1712/fanframe/jobs/{id}/subject.png"
RESULT_URL = "https://res.cloudinary.com/demo/image/upload/v1712/fanframe/results/{id}.png"


def make_job(job_id, status, age, **fields):
    job = GenerationJob.objects.create(
        id=job_id,
        subject_image_url=SUBJECT_URL.format(id=job_id),
        garment_asset_url="https://cdn.example.com/shirt.png",
        background_asset_url="https://cdn.example.com/bg.png",
        status=status,
        **fields,
    )
    GenerationJob.objects.filter(id=job_id).update(created_at=timezone.now() - age)
    return job


class ExtractPublicIdTest(TestCase):
    def test_cloudinary_url(self):
        self.assertEqual(
            extract_public_id(RESULT_URL.format(id="job-1")),
            "fanframe/results/job-1",
        )

    def test_foreign_urls_are_ignored(self):
        self.assertIsNone(extract_public_id("https://replicate.delivery/abc/v1/out.png"))
        self.assertIsNone(extract_public_id(None))


@override_settings(GENERATION_RETENTION_DAYS=30, FAILED_JOB_RETENTION_HOURS=24)
class CleanupTaskTest(TestCase):
    @patch("fanframe.tasks.cleanup.cloudinary.uploader.destroy")
    def test_purge_finished_generations(self, mock_destroy):
        make_job(
            "job-old",
            GenerationJob.STATUS_COMPLETED,
            timedelta(days=31),
            result_image_url=RESULT_URL.format(id="job-old"),
        )
        make_job("job-recent", GenerationJob.STATUS_COMPLETED, timedelta(days=1))
        make_job("job-stuck", GenerationJob.STATUS_PROCESSING, timedelta(days=40))
        GenerationLog.objects.create(id="job-old", status="completed")

        count = purge_finished_generations()

        self.assertEqual(count, 1)
        self.assertFalse(GenerationJob.objects.filter(id="job-old").exists())
        self.assertTrue(GenerationJob.objects.filter(id="job-recent").exists())
        self.assertTrue(GenerationJob.objects.filter(id="job-stuck").exists())
        self.assertTrue(GenerationLog.objects.filter(id="job-old").exists())
        mock_destroy.assert_has_calls([
            call("fanframe/jobs/job-old/subject"),
            call("fanframe/results/job-old"),
        ])

    @patch("fanframe.tasks.cleanup.cloudinary.uploader.destroy")
    def test_cleanup_failed_generations(self, mock_destroy):
        make_job("job-failed", GenerationJob.STATUS_FAILED, timedelta(hours=25))
        make_job("job-fresh", GenerationJob.STATUS_FAILED, timedelta(hours=2))

        count = cleanup_failed_generations()

        self.assertEqual(count, 1)
        self.assertFalse(GenerationJob.objects.filter(id="job-failed").exists())
        self.assertTrue(GenerationJob.objects.filter(id="job-fresh").exists())
        mock_destroy.assert_called_once_with("fanframe/jobs/job-failed/subject")

    @patch("fanframe.tasks.cleanup.cloudinary.uploader.destroy")
    def test_cleanup_continues_after_storage_error(self, mock_destroy):
        mock_destroy.side_effect = [Exception("cloudinary down"), None]
        make_job("job-a", GenerationJob.STATUS_FAILED, timedelta(hours=30))
        make_job("job-b", GenerationJob.STATUS_FAILED, timedelta(hours=30))

        count = cleanup_failed_generations()

        self.assertEqual(count, 1)
        self.assertEqual(GenerationJob.objects.count(), 1)

    @override_settings(GENERATION_RATE_LIMIT_WINDOW_SECONDS=3600)
    def test_cleanup_stale_rate_limits(self):
        now = timezone.now()
        RateLimitCounter.objects.create(user_id="stale", count=3, window_start=now - timedelta(days=2))
        RateLimitCounter.objects.create(user_id="active", count=3, window_start=now - timedelta(minutes=10))

        count = cleanup_stale_rate_limits()

        self.assertEqual(count, 1)
        self.assertEqual(list(RateLimitCounter.objects.values_list("user_id", flat=True)), ["active"])
