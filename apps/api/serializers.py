"""
Serializers for the REST API.

Field names on the wire are camelCase; the models keep snake_case and the
output serializers map between them with ``source=``.
"""

from rest_framework import serializers

from apps.shifts.choices import MAX_PRIORITY, MIN_PRIORITY, AlertPriority, AlertType, ShiftStatus
from apps.shifts.models import BulkOperation, Shift, ShiftTransition, UrgencyAlert


class CommaSeparatedField(serializers.Field):
    """Query parameter holding ``a,b,c``; each item is validated by ``child``."""

    default_error_messages = {"invalid": "Expected a comma-separated list."}

    def __init__(self, child, **kwargs):
        self.child = child
        kwargs.setdefault("required", False)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail("invalid")
        items = [item.strip() for item in data.split(",") if item.strip()]
        return [self.child.run_validation(item) for item in items]

    def to_representation(self, value):
        return ",".join(str(item) for item in value)


# =============================================================================
# Input
# =============================================================================


class MoveRequestSerializer(serializers.Serializer):
    """Single move on the board: ``{shiftId, newStatus, reason?, guardId?}``."""

    shiftId = serializers.CharField(max_length=64)
    newStatus = serializers.ChoiceField(choices=ShiftStatus.choices)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    guardId = serializers.CharField(required=False, max_length=64)

    def validate(self, attrs):
        if "guardId" in attrs and attrs["newStatus"] != ShiftStatus.ASSIGNED:
            raise serializers.ValidationError({"guardId": "guardId can only be given when moving to assigned."})
        return attrs


class BoardFilterSerializer(serializers.Serializer):
    statuses = CommaSeparatedField(child=serializers.ChoiceField(choices=ShiftStatus.choices))
    priorities = CommaSeparatedField(
        child=serializers.IntegerField(min_value=MIN_PRIORITY, max_value=MAX_PRIORITY)
    )
    guards = CommaSeparatedField(child=serializers.CharField(max_length=64))
    assignment_status = serializers.ChoiceField(
        choices=["assigned", "unassigned", "all"], required=False, default="all"
    )
    urgent_only = serializers.BooleanField(required=False, default=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError({"end_date": "end_date must not be before start_date."})
        return attrs


class AlertFilterSerializer(serializers.Serializer):
    alert_types = CommaSeparatedField(child=serializers.ChoiceField(choices=AlertType.choices))
    priorities = CommaSeparatedField(child=serializers.ChoiceField(choices=AlertPriority.choices))


class AlertResolveSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


# =============================================================================
# Output
# =============================================================================


class UrgencyAlertSerializer(serializers.ModelSerializer):
    shiftId = serializers.CharField(source="shift_id", read_only=True)
    alertType = serializers.CharField(source="alert_type", read_only=True)
    resolvedBy = serializers.CharField(source="resolved_by", read_only=True)
    resolvedReason = serializers.CharField(source="resolved_reason", read_only=True)
    resolvedAt = serializers.DateTimeField(source="resolved_at", read_only=True)
    acknowledgedBy = serializers.CharField(source="acknowledged_by", read_only=True)
    acknowledgedAt = serializers.DateTimeField(source="acknowledged_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = UrgencyAlert
        fields = [
            "id",
            "shiftId",
            "alertType",
            "priority",
            "message",
            "resolved",
            "resolvedBy",
            "resolvedReason",
            "resolvedAt",
            "acknowledgedBy",
            "acknowledgedAt",
            "createdAt",
        ]
        read_only_fields = fields


class ShiftSerializer(serializers.ModelSerializer):
    """Board card. Expects ``alerts`` to be prefetched."""

    clientName = serializers.CharField(source="client_name", read_only=True)
    siteName = serializers.CharField(source="site_name", read_only=True)
    startsAt = serializers.DateTimeField(source="starts_at", read_only=True)
    endsAt = serializers.DateTimeField(source="ends_at", read_only=True)
    assignedGuardId = serializers.CharField(source="assigned_guard_id", read_only=True, allow_null=True)
    templateId = serializers.CharField(source="template_id", read_only=True, allow_null=True)
    urgentAlerts = serializers.SerializerMethodField()
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Shift
        fields = [
            "id",
            "title",
            "clientName",
            "siteName",
            "startsAt",
            "endsAt",
            "status",
            "priority",
            "assignedGuardId",
            "templateId",
            "urgentAlerts",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_urgentAlerts(self, obj) -> list:
        return UrgencyAlertSerializer(obj.open_alerts(), many=True).data


class ShiftTransitionSerializer(serializers.ModelSerializer):
    """Audit entry, same keys as the transition returned by a move."""

    transitionId = serializers.CharField(source="id", read_only=True)
    shiftId = serializers.CharField(source="shift_id", read_only=True)
    previousStatus = serializers.CharField(source="previous_status", read_only=True)
    newStatus = serializers.CharField(source="new_status", read_only=True)
    actorId = serializers.CharField(source="actor_id", read_only=True)
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)
    bulkOperationId = serializers.CharField(source="bulk_operation_id", read_only=True, allow_null=True)

    class Meta:
        model = ShiftTransition
        fields = [
            "transitionId",
            "shiftId",
            "previousStatus",
            "newStatus",
            "method",
            "reason",
            "actorId",
            "timestamp",
            "bulkOperationId",
        ]
        read_only_fields = fields


class BulkOperationSerializer(serializers.ModelSerializer):
    operationType = serializers.CharField(source="operation_type", read_only=True)
    shiftIds = serializers.JSONField(source="shift_ids", read_only=True)
    executedBy = serializers.CharField(source="executed_by", read_only=True)
    executedAt = serializers.DateTimeField(source="executed_at", read_only=True)
    summary = serializers.SerializerMethodField()

    class Meta:
        model = BulkOperation
        fields = [
            "id",
            "operationType",
            "shiftIds",
            "parameters",
            "reason",
            "executedBy",
            "executedAt",
            "status",
            "results",
            "summary",
        ]
        read_only_fields = fields

    def get_summary(self, obj) -> dict:
        return obj.summary()
