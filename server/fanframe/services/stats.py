"""Operational statistics computed from the generation log."""

import math

from django.utils import timezone

from fanframe.models import GenerationJob, GenerationLog, SystemAlert


def percentile(values, pct):
    """Nearest-rank percentile of an already sorted list, None when empty."""
    if not values:
        return None
    rank = max(1, math.ceil(pct / 100 * len(values)))
    return values[rank - 1]


def generation_stats(since=None, until=None):
    """
    Summarize generations created in [since, until)

    Defaults to the current UTC day. The success rate is 100 when there is
    nothing to report so dashboards do not show an empty day as an outage.
    """
    now = timezone.now()
    if since is None:
        since = now.replace(hour=0, minute=0, second=0, microsecond=0)
    entries = GenerationLog.objects.filter(created_at__gte=since)
    if until is not None:
        entries = entries.filter(created_at__lt=until)

    rows = list(entries.values('external_user_id', 'status', 'processing_time_ms', 'created_at'))
    total = len(rows)
    successful = sum(1 for row in rows if row['status'] == GenerationJob.STATUS_COMPLETED)
    failed = sum(1 for row in rows if row['status'] == GenerationJob.STATUS_FAILED)
    times = sorted(row['processing_time_ms'] for row in rows if row['processing_time_ms'])

    hourly = {f"{hour:02d}:00": {'count': 0, 'success': 0, 'failed': 0} for hour in range(24)}
    for row in rows:
        bucket = hourly[f"{row['created_at'].hour:02d}:00"]
        bucket['count'] += 1
        if row['status'] == GenerationJob.STATUS_COMPLETED:
            bucket['success'] += 1
        elif row['status'] == GenerationJob.STATUS_FAILED:
            bucket['failed'] += 1

    return {
        'since': since,
        'until': until,
        'total_generations': total,
        'successful_generations': successful,
        'failed_generations': failed,
        'success_rate': round(successful / total * 100) if total else 100,
        'avg_processing_time_ms': round(sum(times) / len(times)) if times else 0,
        'p50_processing_time_ms': percentile(times, 50),
        'p95_processing_time_ms': percentile(times, 95),
        'unique_users': len({row['external_user_id'] for row in rows if row['external_user_id']}),
        'active_alerts': SystemAlert.objects.filter(resolved=False).count(),
        'hourly': [{'hour': hour, **counts} for hour, counts in hourly.items()],
    }
