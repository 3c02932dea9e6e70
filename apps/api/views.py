"""REST API views for the shift board."""

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import error_response
from apps.core.results import ErrorCode, ServiceError
from apps.shifts import services
from apps.shifts.repositories import snapshot_from_model

from .serializers import (
    AlertFilterSerializer,
    AlertResolveSerializer,
    BoardFilterSerializer,
    BulkOperationSerializer,
    MoveRequestSerializer,
    ShiftSerializer,
    ShiftTransitionSerializer,
    UrgencyAlertSerializer,
)


logger = logging.getLogger(__name__)


def actor_id(request: Request) -> str:
    return request.user.get_username()


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request: Request) -> Response:
    """Health check endpoint."""
    return Response({"status": "healthy", "service": "bastion"})


class ShiftBoardView(APIView):
    """
    GET  /api/v1/shifts/board/ - Shifts, columns, metrics and recent activity.
    POST /api/v1/shifts/board/ - Move one shift to another column.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        filters = BoardFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        engine = services.build_workflow_engine()
        shifts = list(services.board_shifts(**filters.validated_data))
        metrics = engine.metrics.compute_metrics(snapshot_from_model(shift) for shift in shifts)
        recent = services.recent_transitions(settings.BASTION_RECENT_ACTIVITY_LIMIT)

        return Response({
            "shifts": ShiftSerializer(shifts, many=True).data,
            "columns": [column.as_dict() for column in engine.graph.columns()],
            "metrics": metrics.as_dict(),
            "recentActivity": ShiftTransitionSerializer(recent, many=True).data,
        })

    def post(self, request: Request) -> Response:
        move = MoveRequestSerializer(data=request.data)
        move.is_valid(raise_exception=True)
        data = move.validated_data

        changes = {"assigned_guard_id": data["guardId"]} if "guardId" in data else None
        result = services.build_workflow_engine().executor.execute_transition(
            data["shiftId"],
            data["newStatus"],
            actor_id(request),
            reason=data.get("reason") or None,
            changes=changes,
        )
        if not result.ok:
            return error_response(result.error)
        return Response({"transition": result.value.as_dict()}, status=status.HTTP_200_OK)


class BulkActionView(APIView):
    """POST /api/v1/shifts/bulk-actions/ - Run one action over up to 50 shifts."""
    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        result = services.build_workflow_engine().bulk.execute_bulk_action(request.data, actor_id(request))
        if not result.ok:
            return error_response(result.error)

        operation = result.value
        return Response(
            {"operation": operation.as_dict(), "summary": operation.summary()},
            status=status.HTTP_201_CREATED,
        )


class BulkOperationDetailView(APIView):
    """GET /api/v1/shifts/bulk-actions/<id>/ - A stored bulk operation."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request, operation_id: str) -> Response:
        operation = services.get_bulk_operation(operation_id)
        if operation is None:
            raise NotFound("Bulk operation not found")
        return Response({"operation": BulkOperationSerializer(operation).data})


class ShiftHistoryView(APIView):
    """GET /api/v1/shifts/<id>/history/ - Transitions of one shift, oldest first."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request, shift_id: str) -> Response:
        history = services.shift_history(shift_id)
        if history is None:
            return error_response(ServiceError(ErrorCode.SHIFT_NOT_FOUND, "Shift not found"))
        data = ShiftTransitionSerializer(history, many=True).data
        return Response({"shiftId": shift_id, "count": len(data), "results": data})


class WorkflowView(APIView):
    """GET /api/v1/shifts/workflow/ - Column configuration and allowed moves."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        graph = services.build_workflow_engine().graph
        return Response({"columns": [column.as_dict() for column in graph.columns()]})


class UrgentAlertListView(APIView):
    """GET /api/v1/shifts/urgent-alerts/ - Open alerts, newest first."""
    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        filters = AlertFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        alerts = services.open_alerts(**filters.validated_data)
        data = UrgencyAlertSerializer(alerts, many=True).data
        return Response({"count": len(data), "results": data})


class AlertAcknowledgeView(APIView):
    """POST /api/v1/shifts/urgent-alerts/<id>/acknowledge/"""
    permission_classes = [IsAuthenticated]

    def post(self, request: Request, alert_id: str) -> Response:
        alert = services.get_alert(alert_id)
        if alert is None:
            raise NotFound("Alert not found")
        try:
            alert.acknowledge(actor_id(request))
        except ValueError:
            return error_response(ServiceError(ErrorCode.INVALID_REQUEST, "Alert is already resolved"))

        logger.info("Alert %s acknowledged by %s", alert.pk, actor_id(request))
        return Response({"alert": UrgencyAlertSerializer(alert).data})


class AlertResolveView(APIView):
    """POST /api/v1/shifts/urgent-alerts/<id>/resolve/ - Manual resolution with an optional reason."""
    permission_classes = [IsAuthenticated]

    def post(self, request: Request, alert_id: str) -> Response:
        body = AlertResolveSerializer(data=request.data)
        body.is_valid(raise_exception=True)

        alert = services.get_alert(alert_id)
        if alert is None:
            raise NotFound("Alert not found")
        try:
            alert.resolve(actor_id(request), reason=body.validated_data["reason"])
        except ValueError:
            return error_response(ServiceError(ErrorCode.INVALID_REQUEST, "Alert is already resolved"))

        logger.info("Alert %s resolved by %s", alert.pk, actor_id(request))
        return Response({"alert": UrgencyAlertSerializer(alert).data})
