from django.urls import path

from fanframe import views

urlpatterns = [
    path("", views.api_root, name="api_root"),
    path("health/", views.health_check, name="health_check"),
    path("admin/stats/", views.admin_stats, name="admin_stats"),
    path("generations/", views.submit_generation, name="submit_generation"),
    path("generations/webhook/", views.provider_webhook, name="generation-webhook"),
    path("generations/<str:job_id>/", views.generation_status, name="generation_status"),
    path("generations/<str:job_id>/position/", views.generation_position, name="generation_position"),
]
