from datetime import timedelta

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from fanframe.services.stats import generation_stats
from fanframe.utils import format_error

PERIOD_HOURS = {"day": 24, "week": 24 * 7, "month": 24 * 30}


@api_view(["GET"])
@permission_classes([IsAdminUser])
def admin_stats(request):
    """
    Generation statistics for operators.

    `period` is `today` (default, since midnight UTC), `day`, `week` or `month`.
    """
    period = request.query_params.get("period", "today")
    if period == "today":
        since = None
    elif period in PERIOD_HOURS:
        since = timezone.now() - timedelta(hours=PERIOD_HOURS[period])
    else:
        return Response(
            format_error(
                code="validation_error",
                message="Unknown period",
                details={"period": period, "allowed": ["today", *PERIOD_HOURS]},
            ),
            status=status.HTTP_400_BAD_REQUEST,
        )

    stats = generation_stats(since=since)
    stats["period"] = period
    return Response(stats)
