"""
Single-shift status change.

Pipeline, in order, each step with its own failure point:

1. load the shift              -> SHIFT_NOT_FOUND / DATABASE_ERROR
2. validate the move           -> INVALID_TRANSITION (nothing written)
3. persist the new status      -> DATABASE_ERROR / INVALID_TRANSITION on a lost race
4. resolve related alerts      -> logged only
5. write the audit record      -> DATABASE_ERROR (status stays persisted)

Step 3 is the durability boundary: once it succeeds the move stands.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from typing import Any

from django.utils import timezone

from apps.core.results import ErrorCode, Ok, Result, fail

from ..choices import TransitionMethod
from .alerts import AlertResolutionCoordinator
from .graph import TransitionValidator
from .ports import AuditSink, Clock, PersistenceError, ShiftStore
from .types import Transition


logger = logging.getLogger(__name__)


class TransitionExecutor:

    def __init__(
        self,
        shifts: ShiftStore,
        audit: AuditSink,
        alerts: AlertResolutionCoordinator,
        validator: TransitionValidator | None = None,
        clock: Clock = timezone.now,
    ):
        self.shifts = shifts
        self.audit = audit
        self.alerts = alerts
        self.validator = validator or TransitionValidator(clock=clock)
        self.clock = clock

    def execute_transition(
        self,
        shift_id: str,
        new_status: str,
        actor_id: str,
        *,
        reason: str | None = None,
        method: str = TransitionMethod.MANUAL,
        bulk_operation_id: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> Result[Transition]:
        """
        Move one shift to ``new_status``.

        ``changes`` are extra shift fields written together with the status,
        e.g. ``{"assigned_guard_id": ...}`` when assigning.
        """
        try:
            shift = self.shifts.get(shift_id)
        except PersistenceError:
            logger.exception("Failed to load shift %s", shift_id)
            return fail(ErrorCode.DATABASE_ERROR, "Failed to load shift")

        if shift is None:
            return fail(ErrorCode.SHIFT_NOT_FOUND, "Shift not found", shift_id=str(shift_id))

        previous_status = shift.status
        candidate = dataclasses.replace(shift, **changes) if changes else shift

        validation = self.validator.validate(previous_status, new_status, candidate)
        if not validation.ok:
            return validation

        try:
            written = self.shifts.compare_and_set_status(shift.id, previous_status, new_status, changes)
        except PersistenceError:
            logger.exception("Failed to persist status %s for shift %s", new_status, shift.id)
            return fail(ErrorCode.DATABASE_ERROR, "Failed to update shift status")

        if not written:
            return fail(
                ErrorCode.INVALID_TRANSITION,
                "Shift status changed while the transition was in progress",
                from_status=previous_status,
                to_status=new_status,
                reason="concurrent_update",
            )

        self.alerts.resolve_related(shift.id, previous_status, new_status)

        transition = Transition(
            id=str(uuid.uuid4()),
            shift_id=shift.id,
            previous_status=previous_status,
            new_status=str(new_status),
            method=str(method),
            actor_id=actor_id,
            timestamp=self.clock(),
            reason=reason,
            bulk_operation_id=bulk_operation_id,
        )

        try:
            self.audit.record(transition)
        except PersistenceError:
            logger.error(
                "Shift %s moved %s -> %s but audit record %s was not written",
                shift.id, previous_status, new_status, transition.id,
                exc_info=True,
            )
            return fail(
                ErrorCode.DATABASE_ERROR,
                "Shift status was updated but the audit record could not be written",
                transition_id=transition.id,
            )

        logger.info(
            "Shift %s moved %s -> %s by %s (%s)",
            shift.id, previous_status, new_status, actor_id, transition.method,
        )
        return Ok(transition)
