"""
Value objects passed between the workflow engine and its ports.

These are plain frozen dataclasses. The Django models stay behind the
adapters in ``apps.shifts.repositories``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from apps.core.results import Err, Ok

from ..choices import BulkOperationStatus


def success_summary(total: int, successes: int) -> dict[str, Any]:
    """Counts and success rate (percent, two decimals) of a bulk operation."""
    return {
        "totalShifts": total,
        "successCount": successes,
        "failureCount": total - successes,
        "successRate": round(successes / total * 100, 2) if total else 0.0,
    }


@dataclass(frozen=True)
class AlertRecord:
    id: str
    alert_type: str
    priority: str = "medium"
    resolved: bool = False


@dataclass(frozen=True)
class ShiftSnapshot:
    """The workflow-relevant fields of a shift at one point in time."""
    id: str
    status: str
    priority: int = 3
    assigned_guard_id: str | None = None
    starts_at: datetime | None = None
    alerts: tuple[AlertRecord, ...] = ()

    @property
    def has_open_alerts(self) -> bool:
        return any(not alert.resolved for alert in self.alerts)


@dataclass(frozen=True)
class Transition:
    """Immutable audit record of one status change."""
    id: str
    shift_id: str
    previous_status: str
    new_status: str
    method: str
    actor_id: str
    timestamp: datetime
    reason: str | None = None
    bulk_operation_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "transitionId": self.id,
            "shiftId": self.shift_id,
            "previousStatus": self.previous_status,
            "newStatus": self.new_status,
            "method": self.method,
            "reason": self.reason,
            "actorId": self.actor_id,
            "timestamp": self.timestamp.isoformat(),
            "bulkOperationId": self.bulk_operation_id,
        }


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one shift inside a bulk operation."""
    shift_id: str
    outcome: Ok | Err

    @property
    def success(self) -> bool:
        return self.outcome.ok

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"shiftId": self.shift_id, "success": self.outcome.ok}
        if self.outcome.ok:
            data["value"] = self.outcome.value
        else:
            data["error"] = self.outcome.error.as_dict()
        return data


@dataclass(frozen=True)
class BulkOperationRecord:
    id: str
    operation_type: str
    shift_ids: tuple[str, ...]
    parameters: dict[str, Any]
    executed_by: str
    executed_at: datetime
    results: tuple[ItemResult, ...]
    reason: str | None = None

    @property
    def status(self) -> str:
        if all(result.success for result in self.results):
            return BulkOperationStatus.COMPLETED
        return BulkOperationStatus.FAILED

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    def summary(self) -> dict[str, Any]:
        return success_summary(len(self.shift_ids), self.success_count)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "operationType": self.operation_type,
            "shiftIds": list(self.shift_ids),
            "parameters": self.parameters,
            "reason": self.reason,
            "executedBy": self.executed_by,
            "executedAt": self.executed_at.isoformat(),
            "status": str(self.status),
            "results": [result.as_dict() for result in self.results],
        }


@dataclass(frozen=True)
class Metrics:
    total_shifts: int
    shifts_by_status: dict[str, int]
    completion_rate: float
    urgent_alerts_count: int
    workflow_bottlenecks: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    capacity_warnings: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalShifts": self.total_shifts,
            "shiftsByStatus": dict(self.shifts_by_status),
            "completionRate": self.completion_rate,
            "urgentAlertsCount": self.urgent_alerts_count,
            "workflowBottlenecks": list(self.workflow_bottlenecks),
            "capacityWarnings": list(self.capacity_warnings),
        }
