"""
Board columns, the legal status graph and the transition validator.

Canonical path:  unassigned -> assigned -> confirmed -> in_progress -> completed -> archived
Recovery path:   {unassigned, assigned, confirmed, in_progress} -> issue_logged
                 issue_logged -> {assigned, archived}

Anything else is illegal, including staying in the same column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.utils import timezone

from apps.core.results import ErrorCode, Ok, Result, fail

from ..choices import ShiftStatus
from .ports import Clock
from .types import ShiftSnapshot


@dataclass(frozen=True)
class WorkflowColumn:
    id: str
    title: str
    allowed_transitions: frozenset[str]
    requires_validation: bool
    description: str = ""
    max_items: int | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            # Keep the board's column order rather than set order
            "allowedTransitions": [s for s in ShiftStatus.values if s in self.allowed_transitions],
            "requiresValidation": self.requires_validation,
            "maxItems": self.max_items,
        }


WORKFLOW_COLUMNS = (
    WorkflowColumn(
        id=ShiftStatus.UNASSIGNED,
        title="Unassigned",
        description="Shifts awaiting guard assignment",
        allowed_transitions=frozenset({ShiftStatus.ASSIGNED, ShiftStatus.ISSUE_LOGGED}),
        requires_validation=True,
    ),
    WorkflowColumn(
        id=ShiftStatus.ASSIGNED,
        title="Assigned",
        description="Shifts assigned to guards but not confirmed",
        allowed_transitions=frozenset({ShiftStatus.CONFIRMED, ShiftStatus.ISSUE_LOGGED}),
        requires_validation=True,
    ),
    WorkflowColumn(
        id=ShiftStatus.CONFIRMED,
        title="Confirmed",
        description="Guards have confirmed availability",
        allowed_transitions=frozenset({ShiftStatus.IN_PROGRESS, ShiftStatus.ISSUE_LOGGED}),
        requires_validation=True,
    ),
    WorkflowColumn(
        id=ShiftStatus.IN_PROGRESS,
        title="In Progress",
        description="Shifts currently active",
        allowed_transitions=frozenset({ShiftStatus.COMPLETED, ShiftStatus.ISSUE_LOGGED}),
        requires_validation=True,
    ),
    WorkflowColumn(
        id=ShiftStatus.COMPLETED,
        title="Completed",
        description="Successfully completed shifts",
        allowed_transitions=frozenset({ShiftStatus.ARCHIVED}),
        requires_validation=False,
    ),
    WorkflowColumn(
        id=ShiftStatus.ISSUE_LOGGED,
        title="Issue Logged",
        description="Shifts with reported issues",
        allowed_transitions=frozenset({ShiftStatus.ASSIGNED, ShiftStatus.ARCHIVED}),
        requires_validation=True,
        max_items=25,
    ),
    WorkflowColumn(
        id=ShiftStatus.ARCHIVED,
        title="Archived",
        description="Historical shifts",
        allowed_transitions=frozenset(),
        requires_validation=False,
    ),
)

# Statuses that need a guard on the shift before a shift may enter them
GUARD_REQUIRED_STATUSES = frozenset({ShiftStatus.CONFIRMED, ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED})


class StatusGraph:
    """Lookup over the static column configuration."""

    def __init__(self, columns: tuple[WorkflowColumn, ...] = WORKFLOW_COLUMNS):
        self._columns = {column.id: column for column in columns}
        self._ordered = tuple(columns)

    def columns(self) -> tuple[WorkflowColumn, ...]:
        return self._ordered

    def column(self, status: str) -> WorkflowColumn | None:
        return self._columns.get(status)

    def is_allowed(self, from_status: str, to_status: str) -> bool:
        column = self._columns.get(from_status)
        return column is not None and to_status in column.allowed_transitions


class TransitionValidator:
    """
    Checks a proposed move against the graph and, for columns flagged with
    ``requires_validation``, against the shift itself.
    """

    def __init__(self, graph: StatusGraph | None = None, clock: Clock = timezone.now):
        self.graph = graph or StatusGraph()
        self.clock = clock

    def is_allowed(self, from_status: str, to_status: str) -> bool:
        return self.graph.is_allowed(from_status, to_status)

    def validate(
        self,
        from_status: str,
        to_status: str,
        shift: ShiftSnapshot | None = None,
    ) -> Result[tuple[str, str]]:
        if not self.graph.is_allowed(from_status, to_status):
            return fail(
                ErrorCode.INVALID_TRANSITION,
                f"Invalid transition from {from_status} to {to_status}",
                from_status=from_status,
                to_status=to_status,
            )

        column = self.graph.column(from_status)
        if shift is not None and column.requires_validation:
            broken = self._check_rules(to_status, shift)
            if broken is not None:
                rule, message = broken
                return fail(
                    ErrorCode.INVALID_TRANSITION,
                    message,
                    from_status=from_status,
                    to_status=to_status,
                    rule=rule,
                )

        return Ok((from_status, to_status))

    def _check_rules(self, to_status: str, shift: ShiftSnapshot) -> tuple[str, str] | None:
        if to_status in GUARD_REQUIRED_STATUSES and not shift.assigned_guard_id:
            return (
                "GUARD_ASSIGNMENT_REQUIRED",
                f"A guard must be assigned before the shift can move to {to_status}",
            )

        if to_status == ShiftStatus.IN_PROGRESS and shift.starts_at is not None:
            if shift.starts_at > self.clock():
                return (
                    "SHIFT_NOT_STARTED",
                    "Shift cannot be marked in progress before its start time",
                )

        return None
