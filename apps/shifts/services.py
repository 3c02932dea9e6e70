"""
Wiring and read-side queries for the shift board.

``build_workflow_engine()`` assembles the engine with the ORM adapters. Views
call it once per request; nothing is cached between requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from django.db.models import Exists, OuterRef, Q, QuerySet
from django.utils import timezone

from .choices import ShiftStatus
from .models import BulkOperation, Shift, ShiftTransition, UrgencyAlert
from .repositories import (
    DjangoAlertStore,
    DjangoNotifier,
    DjangoShiftStore,
    ModelAuditSink,
    ModelOperationLog,
    TemplateCloner,
    parse_uuid,
)
from .workflow import (
    AlertResolutionCoordinator,
    BulkActionOrchestrator,
    MetricsAggregator,
    StatusGraph,
    TransitionExecutor,
    TransitionValidator,
)
from .workflow.ports import Clock


@dataclass(frozen=True)
class WorkflowEngine:
    graph: StatusGraph
    validator: TransitionValidator
    executor: TransitionExecutor
    bulk: BulkActionOrchestrator
    metrics: MetricsAggregator


def build_workflow_engine(*, clock: Clock = timezone.now) -> WorkflowEngine:
    graph = StatusGraph()
    validator = TransitionValidator(graph, clock=clock)
    shifts = DjangoShiftStore()
    executor = TransitionExecutor(
        shifts=shifts,
        audit=ModelAuditSink(),
        alerts=AlertResolutionCoordinator(DjangoAlertStore()),
        validator=validator,
        clock=clock,
    )
    bulk = BulkActionOrchestrator(
        executor=executor,
        shifts=shifts,
        notifier=DjangoNotifier(),
        cloner=TemplateCloner(),
        operations=ModelOperationLog(),
        clock=clock,
    )
    return WorkflowEngine(
        graph=graph,
        validator=validator,
        executor=executor,
        bulk=bulk,
        metrics=MetricsAggregator(graph),
    )


# =============================================================================
# Read side
# =============================================================================


def board_shifts(
    *,
    statuses: list[str] | None = None,
    priorities: list[int] | None = None,
    guards: list[str] | None = None,
    assignment_status: str = "all",
    urgent_only: bool = False,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QuerySet[Shift]:
    """Shifts shown on the board. Archived shifts only appear when asked for."""
    unresolved = UrgencyAlert.objects.filter(shift=OuterRef("pk"), resolved=False)
    qs = Shift.objects.prefetch_related("alerts")

    if statuses:
        qs = qs.filter(status__in=statuses)
    else:
        qs = qs.exclude(status=ShiftStatus.ARCHIVED)

    if priorities:
        qs = qs.filter(priority__in=priorities)
    if guards:
        qs = qs.filter(assigned_guard_id__in=guards)

    if assignment_status == "assigned":
        qs = qs.filter(assigned_guard_id__isnull=False).exclude(assigned_guard_id="")
    elif assignment_status == "unassigned":
        qs = qs.filter(Q(assigned_guard_id__isnull=True) | Q(assigned_guard_id=""))

    if urgent_only:
        qs = qs.filter(Exists(unresolved))

    if start_date:
        qs = qs.filter(starts_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(starts_at__date__lte=end_date)

    return qs.order_by("starts_at", "created_at")


def recent_transitions(limit: int = 20) -> QuerySet[ShiftTransition]:
    return ShiftTransition.objects.order_by("-created_at")[:limit]


def shift_history(shift_id: str) -> QuerySet[ShiftTransition] | None:
    """Transitions of one shift, oldest first, or None when the shift does not exist."""
    pk = parse_uuid(shift_id)
    if pk is None or not Shift.objects.filter(pk=pk).exists():
        return None
    return ShiftTransition.objects.filter(shift_id=pk).order_by("created_at")


def get_bulk_operation(operation_id: str) -> BulkOperation | None:
    pk = parse_uuid(operation_id)
    if pk is None:
        return None
    return BulkOperation.objects.filter(pk=pk).first()


def open_alerts(*, alert_types: list[str] | None = None, priorities: list[str] | None = None) -> QuerySet[UrgencyAlert]:
    qs = UrgencyAlert.objects.filter(resolved=False).select_related("shift")
    if alert_types:
        qs = qs.filter(alert_type__in=alert_types)
    if priorities:
        qs = qs.filter(priority__in=priorities)
    return qs.order_by("-created_at")


def get_alert(alert_id: str) -> UrgencyAlert | None:
    pk = parse_uuid(alert_id)
    if pk is None:
        return None
    return UrgencyAlert.objects.select_related("shift").filter(pk=pk).first()
