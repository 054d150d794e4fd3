from django.utils import timezone

from fanframe.models import GenerationJob, GenerationLog
from fanframe.services.side_effects import non_critical


@non_critical("generation log")
def record_generation(job_id, **fields):
    """
    Upsert the reporting entry for a job

    Only the given fields are written, so concurrent upserts for the same job
    (dispatch and webhook) do not clobber each other's columns.
    """
    if fields.get('status') in GenerationJob.TERMINAL_STATUSES:
        fields.setdefault('completed_at', timezone.now())
    entry, _ = GenerationLog.objects.update_or_create(id=job_id, defaults=fields)
    return entry
