"""Enumerations shared by the shift models and the workflow engine."""

from django.db import models


class ShiftStatus(models.TextChoices):
    # Declaration order is the canonical path, issue_logged is the side path.
    UNASSIGNED = "unassigned", "Unassigned"
    ASSIGNED = "assigned", "Assigned"
    CONFIRMED = "confirmed", "Confirmed"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    ISSUE_LOGGED = "issue_logged", "Issue Logged"
    ARCHIVED = "archived", "Archived"


class BulkAction(models.TextChoices):
    ASSIGN = "assign", "Assign guard"
    STATUS_CHANGE = "status_change", "Change status"
    PRIORITY_UPDATE = "priority_update", "Update priority"
    NOTIFICATION = "notification", "Send notification"
    CLONE = "clone", "Clone from template"


class BulkOperationStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class TransitionMethod(models.TextChoices):
    MANUAL = "manual", "Manual"
    BULK = "bulk", "Bulk"


class AlertType(models.TextChoices):
    UNASSIGNED_24H = "unassigned_24h", "Unassigned within 24 hours"
    UNCONFIRMED_12H = "unconfirmed_12h", "Unconfirmed within 12 hours"
    NO_SHOW_RISK = "no_show_risk", "No-show risk"
    UNDERSTAFFED = "understaffed", "Understaffed"
    CERTIFICATION_GAP = "certification_gap", "Certification gap"


class AlertPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


MIN_PRIORITY = 1
MAX_PRIORITY = 5
