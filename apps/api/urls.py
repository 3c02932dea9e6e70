"""URL configuration for the REST API."""

from django.urls import path

from . import views

app_name = "api"

urlpatterns = [
    path("health/", views.health_check, name="health"),
    path("v1/shifts/board/", views.ShiftBoardView.as_view(), name="board"),
    path("v1/shifts/bulk-actions/", views.BulkActionView.as_view(), name="bulk-actions"),
    path(
        "v1/shifts/bulk-actions/<str:operation_id>/",
        views.BulkOperationDetailView.as_view(),
        name="bulk-action-detail",
    ),
    path("v1/shifts/workflow/", views.WorkflowView.as_view(), name="workflow"),
    path("v1/shifts/urgent-alerts/", views.UrgentAlertListView.as_view(), name="urgent-alerts"),
    path(
        "v1/shifts/urgent-alerts/<str:alert_id>/acknowledge/",
        views.AlertAcknowledgeView.as_view(),
        name="alert-acknowledge",
    ),
    path(
        "v1/shifts/urgent-alerts/<str:alert_id>/resolve/",
        views.AlertResolveView.as_view(),
        name="alert-resolve",
    ),
    path("v1/shifts/<str:shift_id>/history/", views.ShiftHistoryView.as_view(), name="shift-history"),
]
