"""Database models exposed by the `fanframe` Django app.

This package aggregates model classes to provide a convenient import surface
for other parts of the backend.
"""

from .generation import GenerationJob, GenerationLog
from .protection import CircuitState, RateLimitCounter
from .system import SystemAlert, SystemSetting

__all__ = [
    "CircuitState",
    "GenerationJob",
    "GenerationLog",
    "RateLimitCounter",
    "SystemAlert",
    "SystemSetting",
]
