"""
Django ORM adapters for the workflow engine ports.

Every adapter turns ``django.db.DatabaseError`` into ``PersistenceError`` so
the engine never sees ORM exceptions. Ids arrive as strings from the API; an
id that is not a UUID cannot exist and is treated as missing.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any

from django.db import DatabaseError
from django.utils import timezone

from .choices import ShiftStatus
from .models import BulkOperation, Shift, ShiftNotification, ShiftTemplate, ShiftTransition, UrgencyAlert
from .workflow.ports import PersistenceError, ShiftNotFound, TemplateNotFound
from .workflow.types import AlertRecord, BulkOperationRecord, ShiftSnapshot, Transition


logger = logging.getLogger(__name__)

# Fields the executor may write together with a status change
WRITABLE_WITH_STATUS = frozenset({"assigned_guard_id"})


@contextmanager
def translate_db_errors():
    try:
        yield
    except DatabaseError as exc:
        raise PersistenceError(str(exc)) from exc


def parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def alert_record(alert: UrgencyAlert) -> AlertRecord:
    return AlertRecord(
        id=str(alert.pk),
        alert_type=alert.alert_type,
        priority=alert.priority,
        resolved=alert.resolved,
    )


def snapshot_from_model(shift: Shift) -> ShiftSnapshot:
    """Build the engine view of a shift. Prefetch ``alerts`` when loading many."""
    return ShiftSnapshot(
        id=str(shift.pk),
        status=shift.status,
        priority=shift.priority,
        assigned_guard_id=shift.assigned_guard_id,
        starts_at=shift.starts_at,
        alerts=tuple(alert_record(alert) for alert in shift.alerts.all()),
    )


class DjangoShiftStore:

    def get(self, shift_id: str) -> ShiftSnapshot | None:
        pk = parse_uuid(shift_id)
        if pk is None:
            return None
        with translate_db_errors():
            shift = Shift.objects.prefetch_related("alerts").filter(pk=pk).first()
            return snapshot_from_model(shift) if shift else None

    def compare_and_set_status(
        self,
        shift_id: str,
        expected_status: str,
        new_status: str,
        changes: dict[str, Any] | None = None,
    ) -> bool:
        fields = dict(changes or {})
        unknown = set(fields) - WRITABLE_WITH_STATUS
        if unknown:
            raise ValueError(f"Cannot write {sorted(unknown)} with a status change")

        pk = parse_uuid(shift_id)
        if pk is None:
            return False
        with translate_db_errors():
            updated = Shift.objects.filter(pk=pk, status=expected_status).update(
                status=new_status,
                updated_at=timezone.now(),
                **fields,
            )
        return updated == 1

    def update_priority(self, shift_id: str, priority: int) -> None:
        pk = parse_uuid(shift_id)
        if pk is None:
            raise ShiftNotFound(shift_id)
        with translate_db_errors():
            updated = Shift.objects.filter(pk=pk).update(priority=priority, updated_at=timezone.now())
        if not updated:
            raise ShiftNotFound(shift_id)


class DjangoAlertStore:

    def open_alerts(self, shift_id: str) -> list[AlertRecord]:
        with translate_db_errors():
            alerts = UrgencyAlert.objects.filter(shift_id=shift_id, resolved=False)
            return [alert_record(alert) for alert in alerts]

    def resolve(self, alert_id: str, *, resolved_by: str, reason: str) -> None:
        with translate_db_errors():
            alert = UrgencyAlert.objects.get(pk=alert_id)
            alert.resolve(resolved_by, reason=reason)


class ModelAuditSink:
    """Writes ``ShiftTransition`` rows."""

    def record(self, transition: Transition) -> None:
        with translate_db_errors():
            ShiftTransition.objects.create(
                id=transition.id,
                shift_id=transition.shift_id,
                previous_status=transition.previous_status,
                new_status=transition.new_status,
                method=transition.method,
                reason=transition.reason or "",
                actor_id=transition.actor_id,
                created_at=transition.timestamp,
                bulk_operation_id=transition.bulk_operation_id,
            )


class DjangoNotifier:
    """Queues a notification row; delivery happens outside this project."""

    def notify(self, shift_id: str, message: str, actor_id: str) -> str:
        pk = parse_uuid(shift_id)
        if pk is None:
            raise ShiftNotFound(shift_id)
        with translate_db_errors():
            if not Shift.objects.filter(pk=pk).exists():
                raise ShiftNotFound(shift_id)
            notification = ShiftNotification.objects.create(shift_id=pk, message=message, sent_by=actor_id)
        return str(notification.pk)


class TemplateCloner:
    """
    Creates a new unassigned shift from an active template, placed in the
    time window of the source shift.
    """

    def clone(self, template_id: str, source_shift_id: str, actor_id: str) -> str:
        template_pk = parse_uuid(template_id)
        source_pk = parse_uuid(source_shift_id)

        with translate_db_errors():
            template = None
            if template_pk is not None:
                template = ShiftTemplate.objects.filter(pk=template_pk, is_active=True).first()
            if template is None:
                raise TemplateNotFound(template_id)

            source = Shift.objects.filter(pk=source_pk).first() if source_pk is not None else None
            if source is None:
                raise ShiftNotFound(source_shift_id)

            clone = Shift.objects.create(
                title=template.title,
                client_name=template.client_name,
                site_name=template.site_name,
                priority=template.priority,
                starts_at=source.starts_at,
                ends_at=source.ends_at,
                status=ShiftStatus.UNASSIGNED,
                template=template,
            )

        logger.info("Shift %s cloned from template %s by %s", clone.pk, template.name, actor_id)
        return str(clone.pk)


class ModelOperationLog:

    def save(self, operation: BulkOperationRecord) -> None:
        with translate_db_errors():
            BulkOperation.objects.create(
                id=operation.id,
                operation_type=operation.operation_type,
                shift_ids=list(operation.shift_ids),
                parameters=operation.parameters,
                reason=operation.reason or "",
                executed_by=operation.executed_by,
                executed_at=operation.executed_at,
                status=operation.status,
                results=[result.as_dict() for result in operation.results],
            )
