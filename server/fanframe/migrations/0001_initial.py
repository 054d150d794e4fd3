import django.utils.timezone
from django.db import migrations, models

import fanframe.models.generation


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GenerationJob",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=fanframe.models.generation.new_job_id,
                        editable=False,
                        max_length=36,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "user_id",
                    models.CharField(
                        blank=True,
                        help_text="Storefront user id; empty for anonymous generations",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "subject_image_url",
                    models.URLField(
                        help_text="Durable URL of the uploaded subject photo",
                        max_length=1000,
                    ),
                ),
                ("garment_asset_url", models.URLField(max_length=1000)),
                ("background_asset_url", models.URLField(max_length=1000)),
                ("garment_id", models.CharField(default="unknown", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "external_job_id",
                    models.CharField(
                        blank=True,
                        help_text="Prediction id returned by the inference provider",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("result_image_url", models.URLField(blank=True, max_length=1000, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "generation_queue",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="genqueue_status_created_idx"),
                    models.Index(fields=["user_id", "-created_at"], name="genqueue_user_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="GenerationLog",
            fields=[
                ("id", models.CharField(max_length=36, primary_key=True, serialize=False)),
                ("external_user_id", models.CharField(blank=True, max_length=255, null=True)),
                ("garment_id", models.CharField(default="unknown", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("error_message", models.TextField(blank=True, null=True)),
                ("processing_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "generations",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="generations_created_idx"),
                    models.Index(fields=["status", "created_at"], name="generations_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RateLimitCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=255)),
                ("action", models.CharField(default="generation", max_length=50)),
                ("count", models.PositiveIntegerField(default=0)),
                ("window_start", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "rate_limits",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "action"),
                        name="unique_rate_limit_per_user_action",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CircuitState",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("closed", "Closed"),
                            ("open", "Open"),
                            ("half-open", "Half-open"),
                        ],
                        default="closed",
                        max_length=20,
                    ),
                ),
                ("failure_count", models.PositiveIntegerField(default=0)),
                ("last_failure_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "circuit_states",
            },
        ),
        migrations.CreateModel(
            name="SystemAlert",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("high_usage", "High usage"),
                            ("api_error", "API error"),
                            ("slow_processing", "Slow processing"),
                            ("error_spike", "Error spike"),
                        ],
                        max_length=30,
                    ),
                ),
                ("message", models.TextField()),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("info", "Info"),
                            ("warning", "Warning"),
                            ("critical", "Critical"),
                        ],
                        default="info",
                        max_length=20,
                    ),
                ),
                ("resolved", models.BooleanField(default=False)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "system_alerts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["resolved", "-created_at"], name="alerts_resolved_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SystemSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.TextField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "system_settings",
                "ordering": ["key"],
            },
        ),
    ]
