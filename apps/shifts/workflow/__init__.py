"""
Shift workflow engine.

Framework-free apart from ``django.utils.timezone`` as the default clock and
``TextChoices`` enums. Collaborators are passed in; see ``ports``.
"""

from .alerts import ALERT_STATUS_BINDINGS, AlertResolutionCoordinator
from .bulk import MAX_BULK_SHIFTS, BulkActionOrchestrator, BulkActionRequest, validate_parameters
from .executor import TransitionExecutor
from .graph import WORKFLOW_COLUMNS, StatusGraph, TransitionValidator, WorkflowColumn
from .metrics import MetricsAggregator
from .ports import PersistenceError, ShiftNotFound, TemplateNotFound
from .types import AlertRecord, BulkOperationRecord, ItemResult, Metrics, ShiftSnapshot, Transition


__all__ = [
    "ALERT_STATUS_BINDINGS",
    "MAX_BULK_SHIFTS",
    "WORKFLOW_COLUMNS",
    "AlertRecord",
    "AlertResolutionCoordinator",
    "BulkActionOrchestrator",
    "BulkActionRequest",
    "BulkOperationRecord",
    "ItemResult",
    "Metrics",
    "MetricsAggregator",
    "PersistenceError",
    "ShiftNotFound",
    "ShiftSnapshot",
    "StatusGraph",
    "TemplateNotFound",
    "Transition",
    "TransitionExecutor",
    "TransitionValidator",
    "WorkflowColumn",
    "validate_parameters",
]
