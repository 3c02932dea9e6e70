"""
Interfaces the workflow engine uses to reach its collaborators.

Implementations raise ``ShiftNotFound`` / ``TemplateNotFound`` for missing
records and ``PersistenceError`` for store failures. The Django adapters live
in ``apps.shifts.repositories``; tests substitute in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol

from .types import AlertRecord, BulkOperationRecord, ShiftSnapshot, Transition


Clock = Callable[[], datetime]


class PersistenceError(Exception):
    """The data store rejected or failed a read or write."""


class ShiftNotFound(LookupError):
    pass


class TemplateNotFound(LookupError):
    pass


class ShiftStore(Protocol):
    def get(self, shift_id: str) -> ShiftSnapshot | None: ...

    def compare_and_set_status(
        self,
        shift_id: str,
        expected_status: str,
        new_status: str,
        changes: dict[str, Any] | None = None,
    ) -> bool:
        """Write ``new_status`` only if the stored status still equals ``expected_status``."""
        ...

    def update_priority(self, shift_id: str, priority: int) -> None: ...


class AlertStore(Protocol):
    def open_alerts(self, shift_id: str) -> list[AlertRecord]: ...

    def resolve(self, alert_id: str, *, resolved_by: str, reason: str) -> None: ...


class AuditSink(Protocol):
    """Append-only sink for transition records."""

    def record(self, transition: Transition) -> None: ...


class Notifier(Protocol):
    def notify(self, shift_id: str, message: str, actor_id: str) -> str: ...


class ShiftCloner(Protocol):
    def clone(self, template_id: str, source_shift_id: str, actor_id: str) -> str: ...


class OperationLog(Protocol):
    def save(self, operation: BulkOperationRecord) -> None: ...
