from django.test import SimpleTestCase
from celery import Celery

import config
from fanframe import tasks


class CeleryConfigTest(SimpleTestCase):
    def test_celery_app_is_exposed(self):
        self.assertTrue(hasattr(config, "celery_app"))
        self.assertIsInstance(config.celery_app, Celery)

    def test_beat_schedule_targets_registered_tasks(self):
        schedule = config.celery_app.conf.beat_schedule
        registered = {
            tasks.purge_finished_generations.name,
            tasks.cleanup_failed_generations.name,
            tasks.cleanup_stale_rate_limits.name,
        }

        self.assertEqual({entry["task"] for entry in schedule.values()}, registered)
