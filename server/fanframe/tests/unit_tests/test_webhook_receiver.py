from datetime import timedelta
from unittest.mock import Mock

from django.test import TestCase
from django.utils import timezone

from fanframe.models import CircuitState, GenerationJob, GenerationLog, SystemAlert
from fanframe.services import AlertSink, CircuitBreaker, JobStore, WebhookReceiver
from fanframe.services.webhook import NO_OUTPUT_ERROR, extract_output_url

PROVIDER_URL = "https://replicate.delivery/abc/output.png"
DURABLE_URL = "https://res.cloudinary.com/demo/image/upload/v1/fanframe/results/job-1.png"


class WebhookReceiverTest(TestCase):
    def setUp(self):
        self.now = timezone.now()
        self.job = GenerationJob.objects.create(
            id="job-1",
            user_id="user-1",
            subject_image_url="https://cdn.example.com/subject.png",
            garment_asset_url="https://cdn.example.com/shirt.png",
            background_asset_url="https://cdn.example.com/bg.png",
            status=GenerationJob.STATUS_PROCESSING,
            external_job_id="pred-1",
            started_at=self.now - timedelta(seconds=30),
        )
        GenerationLog.objects.create(id="job-1", external_user_id="user-1", status="processing")
        self.storage = Mock()
        self.storage.store_result.return_value = DURABLE_URL
        alerts = AlertSink()
        self.circuit = CircuitBreaker(failure_threshold=5, recovery_time=timedelta(minutes=2), alerts=alerts)
        self.receiver = WebhookReceiver(
            job_store=JobStore(),
            circuit_breaker=self.circuit,
            storage=self.storage,
            alerts=alerts,
            slow_threshold_ms=90000,
            clock=lambda: self.now,
        )

    def test_success_persists_durable_copy(self):
        outcome = self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "completed")
        self.assertTrue(outcome.acknowledged)
        self.assertEqual(self.job.status, GenerationJob.STATUS_COMPLETED)
        self.assertEqual(self.job.result_image_url, DURABLE_URL)
        self.assertIsNotNone(self.job.completed_at)
        self.storage.store_result.assert_called_once_with("job-1", PROVIDER_URL)

        log = GenerationLog.objects.get(id="job-1")
        self.assertEqual(log.status, GenerationJob.STATUS_COMPLETED)
        self.assertEqual(log.processing_time_ms, 30000)
        self.assertFalse(SystemAlert.objects.filter(type="slow_processing").exists())

    def test_success_closes_half_open_circuit(self):
        CircuitState.objects.create(name="provider", state=CircuitState.STATE_HALF_OPEN, failure_count=5)

        self.receiver.on_callback("pred-1", "succeeded", output=PROVIDER_URL)

        circuit = CircuitState.objects.get(name="provider")
        self.assertEqual(circuit.state, CircuitState.STATE_CLOSED)
        self.assertEqual(circuit.failure_count, 0)

    def test_duplicate_delivery_is_not_reapplied(self):
        self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])
        self.storage.store_result.return_value = "https://res.cloudinary.com/demo/second.png"

        outcome = self.receiver.on_callback("pred-1", "succeeded", output=["https://replicate.delivery/other.png"])

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "duplicate")
        self.assertTrue(outcome.acknowledged)
        self.assertEqual(self.job.result_image_url, DURABLE_URL)
        self.assertEqual(self.storage.store_result.call_count, 1)

    def test_failure_after_completion_is_ignored(self):
        self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])

        outcome = self.receiver.on_callback("pred-1", "failed", error="late failure")

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "duplicate")
        self.assertEqual(self.job.status, GenerationJob.STATUS_COMPLETED)
        self.assertFalse(CircuitState.objects.filter(failure_count__gt=0).exists())

    def test_unknown_prediction_is_not_acknowledged(self):
        outcome = self.receiver.on_callback("pred-unknown", "succeeded", output=[PROVIDER_URL])

        self.assertFalse(outcome.acknowledged)
        self.assertEqual(outcome.action, "not_found")
        self.assertIsNone(outcome.job_id)

    def test_success_without_output_fails_the_job(self):
        for output in (None, [], "", [""]):
            with self.subTest(output=output):
                GenerationJob.objects.filter(id="job-1").update(
                    status=GenerationJob.STATUS_PROCESSING, error_message=None, completed_at=None
                )

                outcome = self.receiver.on_callback("pred-1", "succeeded", output=output)

                self.job.refresh_from_db()
                self.assertEqual(outcome.action, "failed")
                self.assertEqual(self.job.status, GenerationJob.STATUS_FAILED)
                self.assertEqual(self.job.error_message, NO_OUTPUT_ERROR)
                self.assertIsNone(self.job.result_image_url)

        self.assertEqual(CircuitState.objects.get(name="provider").failure_count, 4)
        self.storage.store_result.assert_not_called()

    def test_provider_failure_records_circuit_failure(self):
        outcome = self.receiver.on_callback("pred-1", "failed", error="NSFW content detected")

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "failed")
        self.assertEqual(self.job.error_message, "NSFW content detected")
        self.assertEqual(CircuitState.objects.get(name="provider").failure_count, 1)
        log = GenerationLog.objects.get(id="job-1")
        self.assertEqual(log.status, GenerationJob.STATUS_FAILED)
        self.assertEqual(log.error_message, "NSFW content detected")

    def test_cancellation_without_error_gets_a_message(self):
        self.receiver.on_callback("pred-1", "canceled")

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, GenerationJob.STATUS_FAILED)
        self.assertEqual(self.job.error_message, "Prediction canceled")

    def test_intermediate_status_is_ignored(self):
        outcome = self.receiver.on_callback("pred-1", "processing")

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "ignored")
        self.assertEqual(self.job.status, GenerationJob.STATUS_PROCESSING)
        self.assertFalse(CircuitState.objects.exists())

    def test_copy_failure_falls_back_to_provider_url(self):
        self.storage.store_result.side_effect = RuntimeError("cloudinary down")

        outcome = self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "completed")
        self.assertEqual(self.job.result_image_url, PROVIDER_URL)

    def test_slow_processing_raises_warning(self):
        GenerationJob.objects.filter(id="job-1").update(started_at=self.now - timedelta(seconds=120))

        self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])

        alert = SystemAlert.objects.get(type="slow_processing")
        self.assertEqual(alert.severity, SystemAlert.SEVERITY_WARNING)
        self.assertIn("120.0s", alert.message)

    def test_late_webhook_after_client_timeout_still_completes(self):
        GenerationJob.objects.filter(id="job-1").update(started_at=self.now - timedelta(minutes=5))

        outcome = self.receiver.on_callback("pred-1", "succeeded", output=[PROVIDER_URL])

        self.job.refresh_from_db()
        self.assertEqual(outcome.action, "completed")
        self.assertEqual(self.job.status, GenerationJob.STATUS_COMPLETED)


class ExtractOutputUrlTest(TestCase):
    def test_variants(self):
        self.assertEqual(extract_output_url(["https://a.png", "https://b.png"]), "https://a.png")
        self.assertEqual(extract_output_url([None, " https://b.png "]), "https://b.png")
        self.assertEqual(extract_output_url("https://a.png"), "https://a.png")
        self.assertIsNone(extract_output_url({"url": "https://a.png"}))
        self.assertIsNone(extract_output_url("   "))
