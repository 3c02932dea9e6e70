"""
URL configuration for Bastion project.

The board is API-only; the admin is the only HTML surface.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),
    # REST API
    path("api/", include("apps.api.urls", namespace="api")),
]
