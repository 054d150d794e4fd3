from django.apps import AppConfig


class FanframeConfig(AppConfig):
    name = "fanframe"
    verbose_name = "FanFrame generation pipeline"
    default_auto_field = "django.db.models.BigAutoField"
