# models.py (Django 5.x) - Shift workflow board
#
# A shift moves through the board columns:
# unassigned -> assigned -> confirmed -> in_progress -> completed -> archived
# with issue_logged as the side path. Legal moves live in workflow/graph.py.

from __future__ import annotations

import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from .choices import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    AlertPriority,
    AlertType,
    BulkAction,
    BulkOperationStatus,
    ShiftStatus,
    TransitionMethod,
)
from .workflow.types import success_summary


class ShiftTemplate(models.Model):
    """Reusable shift blueprint used by the clone bulk action."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True)
    title = models.CharField(max_length=200)
    client_name = models.CharField(max_length=200, blank=True, default="")
    site_name = models.CharField(max_length=200, blank=True, default="")
    priority = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(MIN_PRIORITY), MaxValueValidator(MAX_PRIORITY)],
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Shift(models.Model):
    """
    A schedulable unit of guard work.

    The workflow engine owns ``status`` and ``priority``. Client, site and
    timing data belong to the scheduling side and are only read here.
    """
    Status = ShiftStatus

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200, blank=True, default="")
    client_name = models.CharField(max_length=200, blank=True, default="")
    site_name = models.CharField(max_length=200, blank=True, default="")
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20, choices=ShiftStatus.choices, default=ShiftStatus.UNASSIGNED, db_index=True
    )
    priority = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(MIN_PRIORITY), MaxValueValidator(MAX_PRIORITY)],
    )
    assigned_guard_id = models.CharField(max_length=64, null=True, blank=True)
    template = models.ForeignKey(
        ShiftTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="shifts",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at", "created_at"]

    def __str__(self) -> str:
        return f"{self.title or 'Shift'} [{self.status}]"

    def open_alerts(self) -> list[UrgencyAlert]:
        """Unresolved alerts, read through any prefetched ``alerts``."""
        return [alert for alert in self.alerts.all() if not alert.resolved]


class UrgencyAlert(models.Model):
    """
    A flag raised by the alerting subsystem for a shift that needs attention.

    Alerts are created elsewhere. The workflow engine only resolves them when
    the shift leaves the status the alert was raised for.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name="alerts")
    alert_type = models.CharField(max_length=30, choices=AlertType.choices)
    priority = models.CharField(max_length=10, choices=AlertPriority.choices, default=AlertPriority.MEDIUM)
    message = models.CharField(max_length=255, blank=True, default="")

    resolved = models.BooleanField(default=False)
    resolved_by = models.CharField(max_length=150, blank=True, default="")
    resolved_reason = models.CharField(max_length=255, blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)

    acknowledged_by = models.CharField(max_length=150, blank=True, default="")
    acknowledged_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        state = "resolved" if self.resolved else "open"
        return f"{self.alert_type} ({state})"

    def resolve(self, resolved_by: str, reason: str = "") -> None:
        """Mark the alert resolved. Raises ValueError if it already is."""
        if self.resolved:
            raise ValueError(f"Alert {self.pk} is already resolved")

        self.resolved = True
        self.resolved_by = resolved_by
        self.resolved_reason = reason
        self.resolved_at = timezone.now()
        self.save(update_fields=["resolved", "resolved_by", "resolved_reason", "resolved_at"])

    def acknowledge(self, acknowledged_by: str) -> None:
        if self.resolved:
            raise ValueError(f"Alert {self.pk} is already resolved")

        self.acknowledged_by = acknowledged_by
        self.acknowledged_at = timezone.now()
        self.save(update_fields=["acknowledged_by", "acknowledged_at"])


class AppendOnlyQuerySet(models.QuerySet):
    """Bulk update and delete are refused for audit tables."""

    def update(self, **kwargs):
        raise ValueError(f"{self.model.__name__} records are immutable")

    def delete(self):
        raise ValueError(f"{self.model.__name__} records are immutable")


class ShiftTransition(models.Model):
    """Audit trail for status changes. Rows are written once and never changed."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.PROTECT, related_name="transitions")
    previous_status = models.CharField(max_length=20, choices=ShiftStatus.choices)
    new_status = models.CharField(max_length=20, choices=ShiftStatus.choices)
    method = models.CharField(max_length=10, choices=TransitionMethod.choices, default=TransitionMethod.MANUAL)
    reason = models.TextField(blank=True, default="")
    actor_id = models.CharField(max_length=150)
    created_at = models.DateTimeField(default=timezone.now)
    bulk_operation_id = models.UUIDField(null=True, blank=True, db_index=True)

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.shift_id}: {self.previous_status} → {self.new_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Transition records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Transition records are immutable")


class BulkOperation(models.Model):
    """One bulk request with its per-shift outcomes, stored after it has run."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    operation_type = models.CharField(max_length=20, choices=BulkAction.choices)
    shift_ids = models.JSONField(default=list)
    parameters = models.JSONField(default=dict, blank=True)
    reason = models.TextField(blank=True, default="")
    executed_by = models.CharField(max_length=150)
    executed_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=10, choices=BulkOperationStatus.choices)
    results = models.JSONField(default=list)

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        ordering = ["-executed_at"]

    def __str__(self) -> str:
        return f"{self.operation_type} x{len(self.shift_ids)} ({self.status})"

    def summary(self) -> dict:
        successes = sum(1 for result in self.results if result.get("success"))
        return success_summary(len(self.shift_ids), successes)

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Bulk operations are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Bulk operations are immutable")


class ShiftNotification(models.Model):
    """Outbox row picked up by the notification subsystem."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name="notifications")
    message = models.CharField(max_length=500)
    sent_by = models.CharField(max_length=150)
    created_at = models.DateTimeField(default=timezone.now)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Notification for {self.shift_id}"
