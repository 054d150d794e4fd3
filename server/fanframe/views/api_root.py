from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse


@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """
    API root endpoint to make the browsable API navigable.
    """
    return Response(
        {
            "health": reverse("health_check", request=request, format=format),
            "generations_submit": reverse("submit_generation", request=request, format=format),
            "generations_webhook": reverse("generation-webhook", request=request, format=format),
            "admin_stats": reverse("admin_stats", request=request, format=format),
            "generation_status_template": "/api/generations/{job_id}/",
            "generation_position_template": "/api/generations/{job_id}/position/",
        }
    )
