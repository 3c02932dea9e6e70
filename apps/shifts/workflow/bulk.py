"""
Bulk actions over up to fifty shifts.

Structural problems with the request (missing fields, unknown action, too
many ids) reject it before any shift is touched. Problems with the
action parameters do not reject it: every item is reported as failed with the
same message, so the response keeps one shape.

Items run one after another in request order and a failing item never stops
the rest.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from django.utils import timezone

from apps.core.results import ErrorCode, Ok, Result, fail

from ..choices import MAX_PRIORITY, MIN_PRIORITY, BulkAction, ShiftStatus, TransitionMethod
from .executor import TransitionExecutor
from .ports import (
    Clock,
    Notifier,
    OperationLog,
    PersistenceError,
    ShiftCloner,
    ShiftNotFound,
    ShiftStore,
    TemplateNotFound,
)
from .types import BulkOperationRecord, ItemResult


logger = logging.getLogger(__name__)

MAX_BULK_SHIFTS = 50
MAX_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class BulkActionRequest:
    action: str
    shift_ids: tuple[str, ...]
    parameters: dict[str, Any]
    reason: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> Result[BulkActionRequest]:
        """Check the request structure. Parameters are checked later, per action."""
        if not isinstance(payload, Mapping):
            return fail(ErrorCode.INVALID_REQUEST, "Request body must be an object")

        action = payload.get("action")
        shift_ids = payload.get("shiftIds")

        if not action or not isinstance(shift_ids, list) or not shift_ids:
            return fail(ErrorCode.INVALID_REQUEST, "action and shiftIds array are required")

        if not all(isinstance(shift_id, str) and shift_id for shift_id in shift_ids):
            return fail(ErrorCode.INVALID_REQUEST, "shiftIds must be a list of shift id strings")

        if not isinstance(action, str) or action not in BulkAction.values:
            return fail(
                ErrorCode.INVALID_ACTION,
                f"Invalid action. Must be one of: {', '.join(BulkAction.values)}",
            )

        if len(shift_ids) > MAX_BULK_SHIFTS:
            return fail(
                ErrorCode.TOO_MANY_SHIFTS,
                f"Maximum {MAX_BULK_SHIFTS} shifts allowed per bulk operation",
                count=len(shift_ids),
            )

        parameters = payload.get("parameters") or {}
        if not isinstance(parameters, Mapping):
            return fail(ErrorCode.INVALID_REQUEST, "parameters must be an object")

        reason = payload.get("reason")
        if reason is not None and not isinstance(reason, str):
            return fail(ErrorCode.INVALID_REQUEST, "reason must be a string")

        return Ok(cls(action=action, shift_ids=tuple(shift_ids), parameters=dict(parameters), reason=reason))


def whole_number(value: Any) -> int | None:
    """Return ``value`` as an int when it is a JSON number without a fraction (3 or 3.0)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def validate_parameters(action: str, parameters: Mapping[str, Any]) -> str | None:
    """Return the problem with the action parameters, or None when they are usable."""
    if action == BulkAction.ASSIGN:
        if not parameters.get("guardId"):
            return "guardId is required for assignment action"

    elif action == BulkAction.STATUS_CHANGE:
        new_status = parameters.get("newStatus")
        if not new_status:
            return "newStatus is required for status change action"
        if new_status not in ShiftStatus.values:
            return f"Invalid newStatus. Must be one of: {', '.join(ShiftStatus.values)}"

    elif action == BulkAction.PRIORITY_UPDATE:
        priority = parameters.get("priority")
        if priority is None:
            return "priority is required for priority update action"
        priority = whole_number(priority)
        if priority is None or not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            return f"priority must be an integer between {MIN_PRIORITY} and {MAX_PRIORITY}"

    elif action == BulkAction.NOTIFICATION:
        message = parameters.get("message")
        if not isinstance(message, str) or not message.strip():
            return "message is required for notification action"
        if len(message) > MAX_MESSAGE_LENGTH:
            return f"message must be {MAX_MESSAGE_LENGTH} characters or less"

    elif action == BulkAction.CLONE:
        if not parameters.get("templateId"):
            return "templateId is required for clone action"

    else:
        return f"Unsupported action: {action}"

    return None


class BulkActionOrchestrator:

    def __init__(
        self,
        executor: TransitionExecutor,
        shifts: ShiftStore,
        notifier: Notifier,
        cloner: ShiftCloner,
        operations: OperationLog | None = None,
        clock: Clock = timezone.now,
    ):
        self.executor = executor
        self.shifts = shifts
        self.notifier = notifier
        self.cloner = cloner
        self.operations = operations
        self.clock = clock
        self._handlers: dict[str, Callable[..., Result]] = {
            BulkAction.ASSIGN: self._assign,
            BulkAction.STATUS_CHANGE: self._change_status,
            BulkAction.PRIORITY_UPDATE: self._update_priority,
            BulkAction.NOTIFICATION: self._notify,
            BulkAction.CLONE: self._clone,
        }

    def execute_bulk_action(self, payload: Any, actor_id: str) -> Result[BulkOperationRecord]:
        parsed = BulkActionRequest.from_payload(payload)
        if not parsed.ok:
            return parsed
        request = parsed.value

        operation_id = str(uuid.uuid4())
        executed_at = self.clock()

        problem = validate_parameters(request.action, request.parameters)
        if problem is not None:
            results = tuple(
                ItemResult(shift_id, fail(ErrorCode.INVALID_PARAMETERS, problem))
                for shift_id in request.shift_ids
            )
        else:
            handler = self._handlers[request.action]
            results = tuple(
                self._run_item(handler, shift_id, request, actor_id, operation_id)
                for shift_id in request.shift_ids
            )

        operation = BulkOperationRecord(
            id=operation_id,
            operation_type=request.action,
            shift_ids=request.shift_ids,
            parameters=request.parameters,
            executed_by=actor_id,
            executed_at=executed_at,
            results=results,
            reason=request.reason,
        )
        self._store(operation)

        summary = operation.summary()
        logger.info(
            "Bulk %s %s by %s: %d/%d succeeded",
            request.action, operation_id, actor_id, summary["successCount"], summary["totalShifts"],
        )
        return Ok(operation)

    def _run_item(self, handler, shift_id, request, actor_id, operation_id) -> ItemResult:
        try:
            outcome = handler(shift_id, request, actor_id, operation_id)
        except Exception:
            logger.exception("Bulk %s %s failed on shift %s", request.action, operation_id, shift_id)
            outcome = fail(ErrorCode.INTERNAL_SERVER_ERROR, "Unexpected error while processing shift")
        return ItemResult(shift_id, outcome)

    def _store(self, operation: BulkOperationRecord) -> None:
        if self.operations is None:
            return
        try:
            self.operations.save(operation)
        except PersistenceError:
            logger.exception("Bulk operation %s ran but could not be stored", operation.id)

    # -------------------------------------------------------------------------
    # Per-item handlers
    # -------------------------------------------------------------------------

    def _change_status(self, shift_id, request, actor_id, operation_id) -> Result:
        result = self.executor.execute_transition(
            shift_id,
            request.parameters["newStatus"],
            actor_id,
            reason=request.reason,
            method=TransitionMethod.BULK,
            bulk_operation_id=operation_id,
        )
        if not result.ok:
            return result
        transition = result.value
        return Ok({
            "transitionId": transition.id,
            "previousStatus": transition.previous_status,
            "newStatus": transition.new_status,
        })

    def _assign(self, shift_id, request, actor_id, operation_id) -> Result:
        guard_id = str(request.parameters["guardId"])
        result = self.executor.execute_transition(
            shift_id,
            ShiftStatus.ASSIGNED,
            actor_id,
            reason=request.reason,
            method=TransitionMethod.BULK,
            bulk_operation_id=operation_id,
            changes={"assigned_guard_id": guard_id},
        )
        if not result.ok:
            return result
        return Ok({"transitionId": result.value.id, "guardId": guard_id})

    def _update_priority(self, shift_id, request, actor_id, operation_id) -> Result:
        priority = whole_number(request.parameters["priority"])
        outcome = _call_port(self.shifts.update_priority, shift_id, priority)
        if not outcome.ok:
            return outcome
        return Ok({"priority": priority})

    def _notify(self, shift_id, request, actor_id, operation_id) -> Result:
        outcome = _call_port(self.notifier.notify, shift_id, request.parameters["message"], actor_id)
        if not outcome.ok:
            return outcome
        return Ok({"notificationId": outcome.value})

    def _clone(self, shift_id, request, actor_id, operation_id) -> Result:
        template_id = str(request.parameters["templateId"])
        outcome = _call_port(self.cloner.clone, template_id, shift_id, actor_id)
        if not outcome.ok:
            return outcome
        return Ok({"clonedShiftId": outcome.value, "templateId": template_id})


def _call_port(method, *args) -> Result:
    """Run a port call and turn its documented exceptions into failures."""
    try:
        return Ok(method(*args))
    except ShiftNotFound:
        return fail(ErrorCode.SHIFT_NOT_FOUND, "Shift not found")
    except TemplateNotFound:
        return fail(ErrorCode.INVALID_PARAMETERS, "templateId does not match an active shift template")
    except PersistenceError:
        logger.exception("Store failure during %s", getattr(method, "__name__", "bulk item"))
        return fail(ErrorCode.DATABASE_ERROR, "Failed to update shift")

