from django.contrib import admin

from fanframe.models import (
    CircuitState,
    GenerationJob,
    GenerationLog,
    RateLimitCounter,
    SystemAlert,
    SystemSetting,
)
from fanframe.services import CircuitBreaker
from fanframe.tasks.cleanup import destroy_job_assets


@admin.register(GenerationJob)
class GenerationJobAdmin(admin.ModelAdmin):
    """Admin for GenerationJob model."""

    list_display = ["id", "user_id", "garment_id", "status", "created_at", "completed_at"]
    list_filter = ["status", "garment_id", "created_at"]
    search_fields = ["id", "user_id", "external_job_id"]
    readonly_fields = ["id", "created_at", "started_at", "completed_at"]
    date_hierarchy = "created_at"

    fieldsets = (
        (None, {"fields": ("id", "user_id", "garment_id", "status")}),
        (
            "Images",
            {"fields": ("subject_image_url", "garment_asset_url", "background_asset_url", "result_image_url")},
        ),
        ("Provider", {"fields": ("external_job_id", "error_message")}),
        ("Timestamps", {"fields": ("created_at", "started_at", "completed_at")}),
    )

    actions = ["delete_with_cleanup"]

    def delete_with_cleanup(self, request, queryset):
        """Delete jobs and their stored images."""
        count = 0
        for job in queryset:
            destroy_job_assets(job)
            job.delete()
            count += 1

        self.message_user(request, f"{count} jobs deleted with Cloudinary cleanup")

    delete_with_cleanup.short_description = "Delete with Cloudinary cleanup"


@admin.register(GenerationLog)
class GenerationLogAdmin(admin.ModelAdmin):
    list_display = ["id", "external_user_id", "garment_id", "status", "processing_time_ms", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "external_user_id"]
    date_hierarchy = "created_at"


@admin.register(SystemAlert)
class SystemAlertAdmin(admin.ModelAdmin):
    """Admin for SystemAlert model."""

    list_display = ["type", "severity", "message", "resolved", "created_at"]
    list_filter = ["resolved", "severity", "type"]
    readonly_fields = ["created_at", "resolved_at"]

    actions = ["resolve_alerts"]

    def resolve_alerts(self, request, queryset):
        """Mark selected alerts as resolved."""
        count = 0
        for alert in queryset.filter(resolved=False):
            alert.resolve()
            count += 1
        self.message_user(request, f"{count} alerts resolved")

    resolve_alerts.short_description = "Mark selected alerts as resolved"


@admin.register(CircuitState)
class CircuitStateAdmin(admin.ModelAdmin):
    list_display = ["name", "state", "failure_count", "last_failure_at", "updated_at"]
    readonly_fields = ["updated_at"]

    actions = ["reset_circuit"]

    def reset_circuit(self, request, queryset):
        """Force the selected circuits closed."""
        for circuit in queryset:
            CircuitBreaker(name=circuit.name).reset()
        self.message_user(request, f"{queryset.count()} circuits reset")

    reset_circuit.short_description = "Reset selected circuits (close)"


@admin.register(RateLimitCounter)
class RateLimitCounterAdmin(admin.ModelAdmin):
    list_display = ["user_id", "action", "count", "window_start"]
    search_fields = ["user_id"]


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ["key", "description", "updated_at"]
    search_fields = ["key"]
