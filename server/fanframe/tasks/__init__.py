from .cleanup import cleanup_failed_generations, cleanup_stale_rate_limits, purge_finished_generations

__all__ = [
    "cleanup_failed_generations",
    "cleanup_stale_rate_limits",
    "purge_finished_generations",
]
