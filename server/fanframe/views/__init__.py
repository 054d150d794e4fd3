from fanframe.views.api_root import api_root
from fanframe.views.generation import generation_position, generation_status, submit_generation
from fanframe.views.health import health_check
from fanframe.views.stats import admin_stats
from fanframe.views.webhook import provider_webhook

__all__ = [
    "api_root",
    "generation_position",
    "generation_status",
    "submit_generation",
    "health_check",
    "admin_stats",
    "provider_webhook",
]
