"""
Tests for the shifts application.

This module tests:
- The workflow engine against in-memory fakes (graph, validator, executor,
  alert resolution, bulk actions, metrics)
- Model behavior (immutability, alert resolution)
- The ORM adapters and the wired engine against the database

Uses Django TestCase with pytest-django compatibility.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.contrib import admin
from django.db.models import ProtectedError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.core.results import ErrorCode

from .admin import UrgencyAlertInline
from .choices import AlertType, BulkOperationStatus, ShiftStatus, TransitionMethod
from .models import BulkOperation, Shift, ShiftNotification, ShiftTemplate, ShiftTransition, UrgencyAlert
from .repositories import DjangoAlertStore, DjangoShiftStore, TemplateCloner, snapshot_from_model
from .services import board_shifts, build_workflow_engine, shift_history
from .workflow import (
    AlertRecord,
    AlertResolutionCoordinator,
    BulkActionOrchestrator,
    BulkActionRequest,
    MetricsAggregator,
    ShiftSnapshot,
    StatusGraph,
    TransitionExecutor,
    TransitionValidator,
    validate_parameters,
)
from .workflow.ports import PersistenceError, ShiftNotFound, TemplateNotFound


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=dt_timezone.utc)

LEGAL_EDGES = {
    ("unassigned", "assigned"),
    ("unassigned", "issue_logged"),
    ("assigned", "confirmed"),
    ("assigned", "issue_logged"),
    ("confirmed", "in_progress"),
    ("confirmed", "issue_logged"),
    ("in_progress", "completed"),
    ("in_progress", "issue_logged"),
    ("completed", "archived"),
    ("issue_logged", "assigned"),
    ("issue_logged", "archived"),
}


def fixed_clock():
    return NOW


# =============================================================================
# IN-MEMORY FAKES
# =============================================================================


class FakeShiftStore:
    def __init__(self, *shifts):
        self.shifts = {shift.id: shift for shift in shifts}
        self.fail_reads = False
        self.fail_writes = False
        self.lose_race = False
        self.reads = 0
        self.writes = 0

    def get(self, shift_id):
        self.reads += 1
        if self.fail_reads:
            raise PersistenceError("read failed")
        return self.shifts.get(shift_id)

    def compare_and_set_status(self, shift_id, expected_status, new_status, changes=None):
        if self.fail_writes:
            raise PersistenceError("write failed")
        current = self.shifts.get(shift_id)
        if self.lose_race or current is None or current.status != expected_status:
            return False
        self.writes += 1
        self.shifts[shift_id] = replace(current, status=new_status, **(changes or {}))
        return True

    def update_priority(self, shift_id, priority):
        if shift_id not in self.shifts:
            raise ShiftNotFound(shift_id)
        self.writes += 1
        self.shifts[shift_id] = replace(self.shifts[shift_id], priority=priority)


class FakeAlertStore:
    def __init__(self, alerts_by_shift=None):
        self.alerts_by_shift = alerts_by_shift or {}
        self.resolved = []
        self.fail_query = False
        self.fail_on = set()

    def open_alerts(self, shift_id):
        if self.fail_query:
            raise PersistenceError("query failed")
        return [alert for alert in self.alerts_by_shift.get(shift_id, []) if not alert.resolved]

    def resolve(self, alert_id, *, resolved_by, reason):
        if alert_id in self.fail_on:
            raise PersistenceError("resolve failed")
        self.resolved.append((alert_id, resolved_by, reason))


class FakeAuditSink:
    def __init__(self):
        self.records = []
        self.fail = False

    def record(self, transition):
        if self.fail:
            raise PersistenceError("audit write failed")
        self.records.append(transition)


class FakeNotifier:
    def __init__(self, store, explode_on=()):
        self.store = store
        self.explode_on = set(explode_on)
        self.sent = []

    def notify(self, shift_id, message, actor_id):
        if shift_id in self.explode_on:
            raise RuntimeError("notification backend exploded")
        if shift_id not in self.store.shifts:
            raise ShiftNotFound(shift_id)
        self.sent.append((shift_id, message, actor_id))
        return f"notification-{len(self.sent)}"


class FakeCloner:
    def __init__(self, store, templates=("tpl-1",)):
        self.store = store
        self.templates = set(templates)
        self.clones = []

    def clone(self, template_id, source_shift_id, actor_id):
        if template_id not in self.templates:
            raise TemplateNotFound(template_id)
        if source_shift_id not in self.store.shifts:
            raise ShiftNotFound(source_shift_id)
        self.clones.append((template_id, source_shift_id))
        return f"clone-{len(self.clones)}"


class FakeOperationLog:
    def __init__(self):
        self.saved = []
        self.fail = False

    def save(self, operation):
        if self.fail:
            raise PersistenceError("operation log unavailable")
        self.saved.append(operation)


class FakeEngine:
    """The workflow engine wired to fakes, with the fakes exposed for assertions."""

    def __init__(self, *shifts, alerts=None, notifier_explodes_on=()):
        self.store = FakeShiftStore(*shifts)
        self.alert_store = FakeAlertStore(alerts)
        self.audit = FakeAuditSink()
        self.notifier = FakeNotifier(self.store, explode_on=notifier_explodes_on)
        self.cloner = FakeCloner(self.store)
        self.operations = FakeOperationLog()
        self.executor = TransitionExecutor(
            shifts=self.store,
            audit=self.audit,
            alerts=AlertResolutionCoordinator(self.alert_store),
            validator=TransitionValidator(clock=fixed_clock),
            clock=fixed_clock,
        )
        self.bulk = BulkActionOrchestrator(
            executor=self.executor,
            shifts=self.store,
            notifier=self.notifier,
            cloner=self.cloner,
            operations=self.operations,
            clock=fixed_clock,
        )

    def status_of(self, shift_id):
        return self.store.shifts[shift_id].status


def snapshot(shift_id, status=ShiftStatus.UNASSIGNED, **kwargs):
    return ShiftSnapshot(id=shift_id, status=status, **kwargs)


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_shift(status_value=ShiftStatus.UNASSIGNED, title="Night patrol", **kwargs):
    """Create and return a test Shift instance."""
    return Shift.objects.create(status=status_value, title=title, **kwargs)


def create_alert(shift, alert_type=AlertType.UNASSIGNED_24H, **kwargs):
    """Create and return an open UrgencyAlert on ``shift``."""
    return UrgencyAlert.objects.create(shift=shift, alert_type=alert_type, **kwargs)


def create_template(name="night-gate", is_active=True, **kwargs):
    """Create and return a ShiftTemplate."""
    kwargs.setdefault("title", "Night gate cover")
    return ShiftTemplate.objects.create(name=name, is_active=is_active, **kwargs)


# =============================================================================
# STATUS GRAPH / VALIDATOR TESTS
# =============================================================================


class StatusGraphTests(SimpleTestCase):
    """Tests for the legal move graph."""

    def test_legal_edges_are_exactly_forward_and_recovery_paths(self):
        graph = StatusGraph()
        allowed = {
            (src, dst)
            for src in ShiftStatus.values
            for dst in ShiftStatus.values
            if graph.is_allowed(src, dst)
        }
        self.assertEqual(allowed, LEGAL_EDGES)

    def test_same_status_is_never_allowed(self):
        graph = StatusGraph()
        for status_value in ShiftStatus.values:
            self.assertFalse(graph.is_allowed(status_value, status_value))

    def test_unknown_status_is_not_allowed(self):
        self.assertFalse(StatusGraph().is_allowed("cancelled", "assigned"))

    def test_columns_follow_board_order(self):
        columns = StatusGraph().columns()

        self.assertEqual([column.id for column in columns], ShiftStatus.values)

    def test_issue_logged_column_has_capacity_hint(self):
        column = StatusGraph().column(ShiftStatus.ISSUE_LOGGED)

        self.assertEqual(column.max_items, 25)
        self.assertEqual(column.as_dict()["allowedTransitions"], ["assigned", "archived"])


class TransitionValidatorTests(SimpleTestCase):
    """Tests for TransitionValidator.validate()."""

    def setUp(self):
        self.validator = TransitionValidator(clock=fixed_clock)

    def test_every_illegal_pair_is_rejected_with_the_attempted_pair(self):
        for src in ShiftStatus.values:
            for dst in ShiftStatus.values:
                if (src, dst) in LEGAL_EDGES:
                    continue
                result = self.validator.validate(src, dst)
                self.assertFalse(result.ok, (src, dst))
                self.assertEqual(result.error.code, ErrorCode.INVALID_TRANSITION)
                self.assertEqual(result.error.details["from_status"], src)
                self.assertEqual(result.error.details["to_status"], dst)

    def test_legal_move_returns_pair(self):
        result = self.validator.validate("unassigned", "assigned")

        self.assertTrue(result.ok)
        self.assertEqual(result.value, ("unassigned", "assigned"))

    def test_confirming_without_guard_breaks_guard_rule(self):
        result = self.validator.validate("assigned", "confirmed", snapshot("s1", ShiftStatus.ASSIGNED))

        self.assertFalse(result.ok)
        self.assertEqual(result.error.code, ErrorCode.INVALID_TRANSITION)
        self.assertEqual(result.error.details["rule"], "GUARD_ASSIGNMENT_REQUIRED")

    def test_confirming_with_guard_passes(self):
        shift = snapshot("s1", ShiftStatus.ASSIGNED, assigned_guard_id="guard-1")

        self.assertTrue(self.validator.validate("assigned", "confirmed", shift).ok)

    def test_starting_before_start_time_breaks_start_rule(self):
        shift = snapshot(
            "s1", ShiftStatus.CONFIRMED, assigned_guard_id="guard-1", starts_at=NOW + timedelta(hours=2)
        )

        result = self.validator.validate("confirmed", "in_progress", shift)

        self.assertFalse(result.ok)
        self.assertEqual(result.error.details["rule"], "SHIFT_NOT_STARTED")

    def test_starting_after_start_time_passes(self):
        shift = snapshot(
            "s1", ShiftStatus.CONFIRMED, assigned_guard_id="guard-1", starts_at=NOW - timedelta(minutes=5)
        )

        self.assertTrue(self.validator.validate("confirmed", "in_progress", shift).ok)

    def test_rules_skipped_for_columns_without_validation(self):
        # completed -> archived needs no guard
        shift = snapshot("s1", ShiftStatus.COMPLETED)

        self.assertTrue(self.validator.validate("completed", "archived", shift).ok)


# =============================================================================
# ALERT RESOLUTION TESTS
# =============================================================================


class AlertResolutionCoordinatorTests(SimpleTestCase):
    """Tests for auto-resolution of alerts bound to the previous status."""

    def make(self, *alerts):
        store = FakeAlertStore({"s1": list(alerts)})
        return store, AlertResolutionCoordinator(store)

    def test_resolves_alerts_bound_to_previous_status(self):
        store, coordinator = self.make(
            AlertRecord("a1", AlertType.UNASSIGNED_24H),
            AlertRecord("a2", AlertType.UNDERSTAFFED),
        )

        count = coordinator.resolve_related("s1", "unassigned", "assigned")

        self.assertEqual(count, 2)
        self.assertEqual(
            store.resolved[0],
            ("a1", "system", "Auto-resolved due to status change to assigned"),
        )

    def test_leaves_alerts_bound_to_other_statuses(self):
        store, coordinator = self.make(
            AlertRecord("a1", AlertType.UNCONFIRMED_12H),
            AlertRecord("a2", AlertType.NO_SHOW_RISK),
        )

        self.assertEqual(coordinator.resolve_related("s1", "unassigned", "assigned"), 0)
        self.assertEqual(store.resolved, [])

    def test_certification_gap_is_never_auto_resolved(self):
        store, coordinator = self.make(AlertRecord("a1", AlertType.CERTIFICATION_GAP))

        for src, dst in LEGAL_EDGES:
            coordinator.resolve_related("s1", src, dst)

        self.assertEqual(store.resolved, [])

    def test_unchanged_status_resolves_nothing(self):
        store, coordinator = self.make(AlertRecord("a1", AlertType.UNASSIGNED_24H))

        self.assertEqual(coordinator.resolve_related("s1", "unassigned", "unassigned"), 0)

    def test_failed_resolution_is_excluded_from_count(self):
        store, coordinator = self.make(
            AlertRecord("a1", AlertType.UNASSIGNED_24H),
            AlertRecord("a2", AlertType.UNASSIGNED_24H),
        )
        store.fail_on.add("a1")

        with self.assertLogs("apps.shifts.workflow.alerts", level="WARNING"):
            count = coordinator.resolve_related("s1", "unassigned", "assigned")

        self.assertEqual(count, 1)

    def test_failed_query_returns_zero(self):
        store, coordinator = self.make(AlertRecord("a1", AlertType.UNASSIGNED_24H))
        store.fail_query = True

        with self.assertLogs("apps.shifts.workflow.alerts", level="ERROR"):
            self.assertEqual(coordinator.resolve_related("s1", "unassigned", "assigned"), 0)


# =============================================================================
# TRANSITION EXECUTOR TESTS
# =============================================================================


class TransitionExecutorTests(SimpleTestCase):
    """Tests for TransitionExecutor.execute_transition()."""

    def test_move_returns_transition_and_persists_status(self):
        engine = FakeEngine(snapshot("s1"))

        result = engine.executor.execute_transition("s1", "assigned", "dispatcher", reason="Manager assignment")

        self.assertTrue(result.ok)
        transition = result.value
        self.assertTrue(transition.id)
        self.assertEqual(transition.previous_status, "unassigned")
        self.assertEqual(transition.new_status, "assigned")
        self.assertEqual(transition.method, "manual")
        self.assertEqual(transition.reason, "Manager assignment")
        self.assertEqual(transition.timestamp, NOW)
        self.assertEqual(engine.status_of("s1"), "assigned")
        self.assertEqual(engine.audit.records, [transition])

    def test_illegal_move_writes_nothing(self):
        engine = FakeEngine(snapshot("s1"))

        result = engine.executor.execute_transition("s1", "completed", "dispatcher")

        self.assertFalse(result.ok)
        self.assertEqual(result.error.code, ErrorCode.INVALID_TRANSITION)
        self.assertEqual(engine.status_of("s1"), "unassigned")
        self.assertEqual(engine.store.writes, 0)
        self.assertEqual(engine.audit.records, [])

    def test_missing_shift(self):
        engine = FakeEngine()

        result = engine.executor.execute_transition("nope", "assigned", "dispatcher")

        self.assertEqual(result.error.code, ErrorCode.SHIFT_NOT_FOUND)

    def test_load_failure_is_database_error(self):
        engine = FakeEngine(snapshot("s1"))
        engine.store.fail_reads = True

        with self.assertLogs("apps.shifts.workflow.executor", level="ERROR"):
            result = engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertEqual(result.error.code, ErrorCode.DATABASE_ERROR)

    def test_write_failure_is_database_error(self):
        engine = FakeEngine(snapshot("s1"))
        engine.store.fail_writes = True

        with self.assertLogs("apps.shifts.workflow.executor", level="ERROR"):
            result = engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertEqual(result.error.code, ErrorCode.DATABASE_ERROR)
        self.assertEqual(engine.audit.records, [])

    def test_lost_race_is_reported_as_concurrent_update(self):
        engine = FakeEngine(snapshot("s1"))
        engine.store.lose_race = True

        result = engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertEqual(result.error.code, ErrorCode.INVALID_TRANSITION)
        self.assertEqual(result.error.details["reason"], "concurrent_update")
        self.assertEqual(engine.audit.records, [])

    def test_audit_failure_keeps_status_and_reports_database_error(self):
        engine = FakeEngine(snapshot("s1"))
        engine.audit.fail = True

        with self.assertLogs("apps.shifts.workflow.executor", level="ERROR"):
            result = engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertEqual(result.error.code, ErrorCode.DATABASE_ERROR)
        self.assertIn("transition_id", result.error.details)
        self.assertEqual(engine.status_of("s1"), "assigned")

    def test_move_resolves_alerts_bound_to_previous_status(self):
        engine = FakeEngine(
            snapshot("s1"),
            alerts={"s1": [AlertRecord("a1", AlertType.UNASSIGNED_24H)]},
        )

        engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertEqual(engine.alert_store.resolved[0][:2], ("a1", "system"))

    def test_alert_failure_does_not_fail_the_move(self):
        engine = FakeEngine(snapshot("s1"))
        engine.alert_store.fail_query = True

        with self.assertLogs("apps.shifts.workflow.alerts", level="ERROR"):
            result = engine.executor.execute_transition("s1", "assigned", "dispatcher")

        self.assertTrue(result.ok)
        self.assertEqual(len(engine.audit.records), 1)

    def test_changes_are_written_and_validated_with_the_status(self):
        engine = FakeEngine(snapshot("s1", ShiftStatus.ISSUE_LOGGED))

        result = engine.executor.execute_transition(
            "s1", "assigned", "dispatcher", changes={"assigned_guard_id": "guard-9"}
        )

        self.assertTrue(result.ok)
        self.assertEqual(engine.store.shifts["s1"].assigned_guard_id, "guard-9")


# =============================================================================
# BULK ACTION TESTS
# =============================================================================


class BulkActionRequestTests(SimpleTestCase):
    """Structural checks that reject a bulk request as a whole."""

    def assertRejected(self, payload, code):
        result = BulkActionRequest.from_payload(payload)
        self.assertFalse(result.ok)
        self.assertEqual(result.error.code, code)
        return result.error

    def test_non_object_payload(self):
        self.assertRejected(["assign"], ErrorCode.INVALID_REQUEST)

    def test_missing_action(self):
        error = self.assertRejected({"shiftIds": ["s1"]}, ErrorCode.INVALID_REQUEST)
        self.assertEqual(error.message, "action and shiftIds array are required")

    def test_missing_or_empty_shift_ids(self):
        self.assertRejected({"action": "assign"}, ErrorCode.INVALID_REQUEST)
        self.assertRejected({"action": "assign", "shiftIds": []}, ErrorCode.INVALID_REQUEST)
        self.assertRejected({"action": "assign", "shiftIds": "s1"}, ErrorCode.INVALID_REQUEST)

    def test_non_string_shift_id(self):
        self.assertRejected({"action": "assign", "shiftIds": ["s1", 2]}, ErrorCode.INVALID_REQUEST)

    def test_unknown_action(self):
        error = self.assertRejected({"action": "delete", "shiftIds": ["s1"]}, ErrorCode.INVALID_ACTION)
        self.assertIn("status_change", error.message)

    def test_more_than_fifty_shifts(self):
        payload = {"action": "assign", "shiftIds": [f"s{i}" for i in range(51)]}

        error = self.assertRejected(payload, ErrorCode.TOO_MANY_SHIFTS)
        self.assertEqual(error.message, "Maximum 50 shifts allowed per bulk operation")

    def test_exactly_fifty_shifts_is_accepted(self):
        payload = {"action": "assign", "shiftIds": [f"s{i}" for i in range(50)], "parameters": {"guardId": "g"}}

        self.assertTrue(BulkActionRequest.from_payload(payload).ok)

    def test_parameters_must_be_an_object(self):
        self.assertRejected(
            {"action": "assign", "shiftIds": ["s1"], "parameters": ["guard"]}, ErrorCode.INVALID_REQUEST
        )


class ValidateParametersTests(SimpleTestCase):
    """Per-action parameter contracts."""

    def test_messages(self):
        cases = [
            ("assign", {}, "guardId is required for assignment action"),
            ("status_change", {}, "newStatus is required for status change action"),
            ("priority_update", {}, "priority is required for priority update action"),
            ("priority_update", {"priority": 0}, "priority must be an integer between 1 and 5"),
            ("priority_update", {"priority": 6}, "priority must be an integer between 1 and 5"),
            ("priority_update", {"priority": "3"}, "priority must be an integer between 1 and 5"),
            ("priority_update", {"priority": True}, "priority must be an integer between 1 and 5"),
            ("priority_update", {"priority": 2.5}, "priority must be an integer between 1 and 5"),
            ("notification", {"message": ""}, "message is required for notification action"),
            ("notification", {"message": "x" * 501}, "message must be 500 characters or less"),
            ("clone", {}, "templateId is required for clone action"),
        ]
        for action, parameters, message in cases:
            with self.subTest(action=action, parameters=parameters):
                self.assertEqual(validate_parameters(action, parameters), message)

    def test_invalid_new_status_lists_the_statuses(self):
        message = validate_parameters("status_change", {"newStatus": "cancelled"})

        self.assertTrue(message.startswith("Invalid newStatus. Must be one of: unassigned, assigned"))

    def test_valid_parameters(self):
        self.assertIsNone(validate_parameters("assign", {"guardId": "guard-1"}))
        self.assertIsNone(validate_parameters("priority_update", {"priority": 5}))
        self.assertIsNone(validate_parameters("priority_update", {"priority": 3.0}))
        self.assertIsNone(validate_parameters("notification", {"message": "x" * 500}))


class BulkActionOrchestratorTests(SimpleTestCase):
    """Tests for BulkActionOrchestrator.execute_bulk_action()."""

    def run_bulk(self, engine, action, shift_ids, **parameters):
        result = engine.bulk.execute_bulk_action(
            {"action": action, "shiftIds": shift_ids, "parameters": parameters, "reason": "Weekly rota"},
            "dispatcher",
        )
        self.assertTrue(result.ok)
        return result.value

    def test_status_change_with_partial_failure(self):
        engine = FakeEngine(
            snapshot("s1"),
            snapshot("s2", ShiftStatus.ASSIGNED),
            snapshot("s3", ShiftStatus.COMPLETED),
        )

        operation = self.run_bulk(engine, "status_change", ["s1", "s2", "s3"], newStatus="issue_logged")

        self.assertEqual(
            operation.summary(),
            {"totalShifts": 3, "successCount": 2, "failureCount": 1, "successRate": 66.67},
        )
        self.assertEqual(operation.status, BulkOperationStatus.FAILED)
        self.assertEqual([r.shift_id for r in operation.results], ["s1", "s2", "s3"])
        self.assertEqual(operation.results[2].outcome.error.code, ErrorCode.INVALID_TRANSITION)

    def test_status_change_records_bulk_transitions(self):
        engine = FakeEngine(snapshot("s1"), snapshot("s2"))

        operation = self.run_bulk(engine, "status_change", ["s1", "s2"], newStatus="issue_logged")

        self.assertEqual(operation.status, BulkOperationStatus.COMPLETED)
        self.assertEqual(len(engine.audit.records), 2)
        for transition in engine.audit.records:
            self.assertEqual(transition.method, TransitionMethod.BULK)
            self.assertEqual(transition.bulk_operation_id, operation.id)
            self.assertEqual(transition.reason, "Weekly rota")
        value = operation.results[0].outcome.value
        self.assertEqual(value["previousStatus"], "unassigned")
        self.assertEqual(value["newStatus"], "issue_logged")

    def test_assign_sets_guard_and_status(self):
        engine = FakeEngine(snapshot("s1"), snapshot("s2", ShiftStatus.ASSIGNED, assigned_guard_id="g0"))

        operation = self.run_bulk(engine, "assign", ["s1", "s2"], guardId="guard-3")

        self.assertTrue(operation.results[0].success)
        self.assertEqual(operation.results[0].outcome.value["guardId"], "guard-3")
        self.assertEqual(engine.store.shifts["s1"].assigned_guard_id, "guard-3")
        self.assertEqual(engine.status_of("s1"), "assigned")
        # Already assigned: assigned -> assigned is not a legal move
        self.assertEqual(operation.results[1].outcome.error.code, ErrorCode.INVALID_TRANSITION)
        self.assertEqual(engine.store.shifts["s2"].assigned_guard_id, "g0")

    def test_priority_update(self):
        engine = FakeEngine(snapshot("s1"))

        operation = self.run_bulk(engine, "priority_update", ["s1", "missing"], priority=1)

        self.assertEqual(engine.store.shifts["s1"].priority, 1)
        self.assertEqual(operation.results[0].outcome.value, {"priority": 1})
        self.assertEqual(operation.results[1].outcome.error.code, ErrorCode.SHIFT_NOT_FOUND)

    def test_whole_float_priority_is_stored_as_int(self):
        engine = FakeEngine(snapshot("s1"))

        operation = self.run_bulk(engine, "priority_update", ["s1"], priority=4.0)

        self.assertTrue(operation.results[0].success)
        self.assertEqual(engine.store.shifts["s1"].priority, 4)
        self.assertIsInstance(engine.store.shifts["s1"].priority, int)
        self.assertEqual(operation.results[0].outcome.value, {"priority": 4})

    def test_out_of_range_priority_fails_every_item_without_side_effects(self):
        for priority in (0, 6):
            engine = FakeEngine(snapshot("s1"), snapshot("s2"))

            operation = self.run_bulk(engine, "priority_update", ["s1", "s2"], priority=priority)

            self.assertEqual(operation.success_count, 0)
            for item in operation.results:
                self.assertEqual(item.outcome.error.code, ErrorCode.INVALID_PARAMETERS)
                self.assertEqual(item.outcome.error.message, "priority must be an integer between 1 and 5")
            self.assertEqual(engine.store.writes, 0)

    def test_notification_queues_one_message_per_shift(self):
        engine = FakeEngine(snapshot("s1"), snapshot("s2"))

        operation = self.run_bulk(engine, "notification", ["s1", "s2"], message="Bring your badge")

        self.assertEqual(len(engine.notifier.sent), 2)
        self.assertEqual(operation.results[1].outcome.value, {"notificationId": "notification-2"})

    def test_unexpected_item_error_is_contained(self):
        engine = FakeEngine(snapshot("s1"), snapshot("s2"), snapshot("s3"), notifier_explodes_on={"s2"})

        with self.assertLogs("apps.shifts.workflow.bulk", level="ERROR"):
            operation = self.run_bulk(engine, "notification", ["s1", "s2", "s3"], message="Heads up")

        self.assertEqual([item.success for item in operation.results], [True, False, True])
        error = operation.results[1].outcome.error
        self.assertEqual(error.code, ErrorCode.INTERNAL_SERVER_ERROR)
        self.assertNotIn("exploded", error.message)

    def test_clone(self):
        engine = FakeEngine(snapshot("s1"))

        operation = self.run_bulk(engine, "clone", ["s1"], templateId="tpl-1")

        self.assertEqual(operation.results[0].outcome.value, {"clonedShiftId": "clone-1", "templateId": "tpl-1"})

    def test_clone_with_unknown_template(self):
        engine = FakeEngine(snapshot("s1"))

        operation = self.run_bulk(engine, "clone", ["s1"], templateId="tpl-404")

        self.assertEqual(operation.results[0].outcome.error.code, ErrorCode.INVALID_PARAMETERS)

    def test_too_many_shifts_touches_nothing(self):
        engine = FakeEngine(snapshot("s1"))

        result = engine.bulk.execute_bulk_action(
            {"action": "status_change", "shiftIds": ["s1"] * 51, "parameters": {"newStatus": "assigned"}},
            "dispatcher",
        )

        self.assertEqual(result.error.code, ErrorCode.TOO_MANY_SHIFTS)
        self.assertEqual(engine.store.reads, 0)
        self.assertEqual(engine.operations.saved, [])

    def test_operation_is_saved_once(self):
        engine = FakeEngine(snapshot("s1"))

        operation = self.run_bulk(engine, "priority_update", ["s1"], priority=2)

        self.assertEqual(engine.operations.saved, [operation])

    def test_operation_log_failure_does_not_fail_the_request(self):
        engine = FakeEngine(snapshot("s1"))
        engine.operations.fail = True

        with self.assertLogs("apps.shifts.workflow.bulk", level="ERROR"):
            operation = self.run_bulk(engine, "priority_update", ["s1"], priority=2)

        self.assertEqual(operation.status, BulkOperationStatus.COMPLETED)

    def test_as_dict_renders_tagged_results(self):
        engine = FakeEngine(snapshot("s1"))

        data = self.run_bulk(engine, "priority_update", ["s1", "s2"], priority=4).as_dict()

        self.assertEqual(data["results"][0], {"shiftId": "s1", "success": True, "value": {"priority": 4}})
        self.assertFalse(data["results"][1]["success"])
        self.assertEqual(data["results"][1]["error"]["code"], "SHIFT_NOT_FOUND")
        self.assertNotIn("value", data["results"][1])
        self.assertEqual(data["executedBy"], "dispatcher")


# =============================================================================
# METRICS TESTS
# =============================================================================


class MetricsAggregatorTests(SimpleTestCase):
    """Tests for MetricsAggregator.compute_metrics()."""

    def test_counts_rate_and_urgent_alerts(self):
        shifts = [
            snapshot("s1", ShiftStatus.UNASSIGNED, alerts=(AlertRecord("a1", AlertType.UNASSIGNED_24H),)),
            snapshot("s2", ShiftStatus.COMPLETED),
            snapshot("s3", ShiftStatus.ASSIGNED, alerts=(AlertRecord("a2", AlertType.UNCONFIRMED_12H, resolved=True),)),
        ]

        metrics = MetricsAggregator().compute_metrics(shifts)

        self.assertEqual(metrics.total_shifts, 3)
        self.assertEqual(metrics.completion_rate, 33.33)
        self.assertEqual(metrics.urgent_alerts_count, 1)
        self.assertEqual(metrics.shifts_by_status["archived"], 0)
        self.assertEqual(set(metrics.shifts_by_status), set(ShiftStatus.values))

    def test_empty_snapshot(self):
        metrics = MetricsAggregator().compute_metrics([])

        self.assertEqual(metrics.completion_rate, 0)
        self.assertEqual(metrics.workflow_bottlenecks, ())
        self.assertEqual(sum(metrics.shifts_by_status.values()), 0)

    def test_bottlenecks_are_statuses_above_twenty_percent(self):
        shifts = [snapshot(f"u{i}") for i in range(3)] + [snapshot(f"c{i}", ShiftStatus.COMPLETED) for i in range(7)]

        metrics = MetricsAggregator().compute_metrics(shifts)

        self.assertEqual(
            [b["status"] for b in metrics.workflow_bottlenecks],
            ["unassigned", "completed"],
        )

    def test_capacity_warning_when_issue_column_overflows(self):
        shifts = [snapshot(f"i{i}", ShiftStatus.ISSUE_LOGGED) for i in range(26)]

        metrics = MetricsAggregator().compute_metrics(shifts)

        self.assertEqual(
            list(metrics.capacity_warnings),
            [{"status": "issue_logged", "count": 26, "maxItems": 25}],
        )
        self.assertIn("capacityWarnings", metrics.as_dict())


# =============================================================================
# MODEL TESTS
# =============================================================================


class ShiftModelTests(TestCase):
    """Tests for Shift model defaults."""

    def test_create_shift_default_values(self):
        shift = Shift.objects.create()

        self.assertEqual(shift.status, ShiftStatus.UNASSIGNED)
        self.assertEqual(shift.priority, 3)
        self.assertIsNone(shift.assigned_guard_id)

    def test_open_alerts_skips_resolved(self):
        shift = create_shift()
        self.assertEqual(shift.open_alerts(), [])

        open_alert = create_alert(shift)
        create_alert(shift, alert_type=AlertType.UNDERSTAFFED).resolve("dispatcher")

        self.assertEqual(shift.open_alerts(), [open_alert])


class ShiftTransitionModelTests(TestCase):
    """Audit records are append-only."""

    def setUp(self):
        self.shift = create_shift()
        self.transition = ShiftTransition.objects.create(
            shift=self.shift,
            previous_status=ShiftStatus.UNASSIGNED,
            new_status=ShiftStatus.ASSIGNED,
            actor_id="dispatcher",
        )

    def test_update_raises_valueerror(self):
        self.transition.reason = "rewritten"

        with self.assertRaises(ValueError):
            self.transition.save()

    def test_delete_raises_valueerror(self):
        with self.assertRaises(ValueError):
            self.transition.delete()

        self.assertTrue(ShiftTransition.objects.filter(pk=self.transition.pk).exists())

    def test_queryset_delete_raises_valueerror(self):
        with self.assertRaises(ValueError):
            ShiftTransition.objects.all().delete()

        with self.assertRaises(ValueError):
            ShiftTransition.objects.filter(shift=self.shift).delete()

        self.assertEqual(ShiftTransition.objects.count(), 1)

    def test_queryset_update_raises_valueerror(self):
        with self.assertRaises(ValueError):
            ShiftTransition.objects.filter(pk=self.transition.pk).update(reason="rewritten")

        self.transition.refresh_from_db()
        self.assertEqual(self.transition.reason, "")

    def test_deleting_shift_with_history_is_protected(self):
        with self.assertRaises(ProtectedError):
            self.shift.delete()

        self.assertTrue(Shift.objects.filter(pk=self.shift.pk).exists())
        self.assertEqual(self.shift.transitions.count(), 1)

    def test_shift_without_history_can_be_deleted(self):
        other = create_shift(title="Spare")
        create_alert(other)

        other.delete()

        self.assertFalse(Shift.objects.filter(pk=other.pk).exists())
        self.assertFalse(UrgencyAlert.objects.filter(shift_id=other.pk).exists())


class BulkOperationModelTests(TestCase):

    def test_update_raises_valueerror(self):
        operation = BulkOperation.objects.create(
            operation_type="priority_update",
            shift_ids=["a", "b"],
            executed_by="dispatcher",
            status=BulkOperationStatus.FAILED,
            results=[{"shiftId": "a", "success": True}, {"shiftId": "b", "success": False}],
        )
        operation.status = BulkOperationStatus.COMPLETED

        with self.assertRaises(ValueError):
            operation.save()

    def test_summary_from_stored_results(self):
        operation = BulkOperation.objects.create(
            operation_type="priority_update",
            shift_ids=["a", "b", "c"],
            executed_by="dispatcher",
            status=BulkOperationStatus.FAILED,
            results=[{"success": True}, {"success": False}, {"success": True}],
        )

        self.assertEqual(operation.summary()["successRate"], 66.67)

    def test_delete_and_bulk_writes_raise_valueerror(self):
        operation = BulkOperation.objects.create(
            operation_type="notification",
            shift_ids=["a"],
            executed_by="dispatcher",
            status=BulkOperationStatus.COMPLETED,
        )

        with self.assertRaises(ValueError):
            operation.delete()
        with self.assertRaises(ValueError):
            BulkOperation.objects.all().delete()
        with self.assertRaises(ValueError):
            BulkOperation.objects.filter(pk=operation.pk).update(status=BulkOperationStatus.FAILED)

        operation.refresh_from_db()
        self.assertEqual(operation.status, BulkOperationStatus.COMPLETED)


class UrgencyAlertInlineTests(SimpleTestCase):
    """Alerts are resolved through UrgencyAlert.resolve(), not by ticking a box."""

    def test_resolution_fields_are_read_only(self):
        inline = UrgencyAlertInline(Shift, admin.site)

        readonly = inline.get_readonly_fields(request=None)

        for field in ("resolved", "resolved_by", "resolved_reason"):
            self.assertIn(field, readonly)


class UrgencyAlertModelTests(TestCase):

    def setUp(self):
        self.alert = create_alert(create_shift())

    def test_resolve(self):
        self.alert.resolve("dispatcher", reason="Covered by agency")

        self.alert.refresh_from_db()
        self.assertTrue(self.alert.resolved)
        self.assertEqual(self.alert.resolved_by, "dispatcher")
        self.assertEqual(self.alert.resolved_reason, "Covered by agency")
        self.assertIsNotNone(self.alert.resolved_at)

    def test_resolve_twice_raises_valueerror(self):
        self.alert.resolve("dispatcher")

        with self.assertRaises(ValueError):
            self.alert.resolve("dispatcher")

    def test_acknowledge(self):
        self.alert.acknowledge("dispatcher")

        self.alert.refresh_from_db()
        self.assertEqual(self.alert.acknowledged_by, "dispatcher")
        self.assertFalse(self.alert.resolved)


# =============================================================================
# REPOSITORY TESTS
# =============================================================================


class DjangoShiftStoreTests(TestCase):
    """Tests for the ORM shift adapter."""

    def setUp(self):
        self.store = DjangoShiftStore()
        self.shift = create_shift(assigned_guard_id="guard-1")

    def test_get_returns_snapshot(self):
        create_alert(self.shift)

        snap = self.store.get(str(self.shift.pk))

        self.assertEqual(snap.id, str(self.shift.pk))
        self.assertEqual(snap.status, "unassigned")
        self.assertEqual(snap.assigned_guard_id, "guard-1")
        self.assertTrue(snap.has_open_alerts)

    def test_get_with_malformed_id_returns_none(self):
        self.assertIsNone(self.store.get("not-a-uuid"))

    def test_compare_and_set_writes_when_status_matches(self):
        written = self.store.compare_and_set_status(
            str(self.shift.pk), "unassigned", "assigned", {"assigned_guard_id": "guard-2"}
        )

        self.shift.refresh_from_db()
        self.assertTrue(written)
        self.assertEqual(self.shift.status, "assigned")
        self.assertEqual(self.shift.assigned_guard_id, "guard-2")

    def test_compare_and_set_refuses_stale_status(self):
        written = self.store.compare_and_set_status(str(self.shift.pk), "confirmed", "in_progress")

        self.shift.refresh_from_db()
        self.assertFalse(written)
        self.assertEqual(self.shift.status, "unassigned")

    def test_compare_and_set_rejects_other_fields(self):
        with self.assertRaises(ValueError):
            self.store.compare_and_set_status(str(self.shift.pk), "unassigned", "assigned", {"priority": 1})

    def test_update_priority_on_missing_shift(self):
        with self.assertRaises(ShiftNotFound):
            self.store.update_priority("3f1c9a2e-8f4b-4c61-9a57-0d7c2b8e5a10", 2)


class DjangoAlertStoreTests(TestCase):

    def test_open_alerts_and_resolve(self):
        shift = create_shift()
        alert = create_alert(shift)
        create_alert(shift, alert_type=AlertType.UNDERSTAFFED, resolved=True)
        store = DjangoAlertStore()

        records = store.open_alerts(str(shift.pk))
        store.resolve(records[0].id, resolved_by="system", reason="done")

        self.assertEqual([record.id for record in records], [str(alert.pk)])
        alert.refresh_from_db()
        self.assertTrue(alert.resolved)


class TemplateClonerTests(TestCase):

    def setUp(self):
        start = timezone.now() + timedelta(days=2)
        self.source = create_shift(status_value=ShiftStatus.CONFIRMED, starts_at=start, ends_at=start + timedelta(hours=8))
        self.template = create_template(client_name="Harbour Logistics", priority=2)

    def test_clone_creates_unassigned_shift_in_source_window(self):
        clone_id = TemplateCloner().clone(str(self.template.pk), str(self.source.pk), "dispatcher")

        clone = Shift.objects.get(pk=clone_id)
        self.assertEqual(clone.status, ShiftStatus.UNASSIGNED)
        self.assertEqual(clone.title, "Night gate cover")
        self.assertEqual(clone.priority, 2)
        self.assertEqual(clone.starts_at, self.source.starts_at)
        self.assertEqual(clone.template, self.template)

    def test_inactive_template_is_not_found(self):
        self.template.is_active = False
        self.template.save()

        with self.assertRaises(TemplateNotFound):
            TemplateCloner().clone(str(self.template.pk), str(self.source.pk), "dispatcher")

    def test_missing_source_shift(self):
        with self.assertRaises(ShiftNotFound):
            TemplateCloner().clone(str(self.template.pk), "missing", "dispatcher")


# =============================================================================
# WIRED ENGINE TESTS
# =============================================================================


class WorkflowEngineTests(TestCase):
    """The engine built by build_workflow_engine() against the database."""

    def setUp(self):
        self.engine = build_workflow_engine()

    def test_move_persists_status_and_audit_record(self):
        shift = create_shift()

        result = self.engine.executor.execute_transition(
            str(shift.pk), "assigned", "dispatcher", reason="Manager assignment"
        )

        self.assertTrue(result.ok)
        shift.refresh_from_db()
        self.assertEqual(shift.status, "assigned")
        record = ShiftTransition.objects.get(pk=result.value.id)
        self.assertEqual(record.previous_status, "unassigned")
        self.assertEqual(record.new_status, "assigned")
        self.assertEqual(record.reason, "Manager assignment")

    def test_moved_shift_keeps_its_history_on_delete(self):
        shift = create_shift()
        result = self.engine.executor.execute_transition(str(shift.pk), "assigned", "dispatcher")
        self.assertTrue(result.ok)

        with self.assertRaises(ProtectedError):
            shift.delete()

        self.assertEqual(ShiftTransition.objects.filter(shift_id=shift.pk).count(), 1)

    def test_illegal_move_leaves_shift_unchanged(self):
        shift = create_shift()

        result = self.engine.executor.execute_transition(str(shift.pk), "completed", "dispatcher")

        shift.refresh_from_db()
        self.assertEqual(result.error.code, ErrorCode.INVALID_TRANSITION)
        self.assertEqual(shift.status, "unassigned")
        self.assertFalse(ShiftTransition.objects.exists())

    def test_leaving_unassigned_resolves_bound_alerts(self):
        shift = create_shift()
        bound = create_alert(shift, alert_type=AlertType.UNASSIGNED_24H)
        manual = create_alert(shift, alert_type=AlertType.CERTIFICATION_GAP)

        self.engine.executor.execute_transition(str(shift.pk), "assigned", "dispatcher")

        bound.refresh_from_db()
        manual.refresh_from_db()
        self.assertTrue(bound.resolved)
        self.assertEqual(bound.resolved_by, "system")
        self.assertEqual(bound.resolved_reason, "Auto-resolved due to status change to assigned")
        self.assertFalse(manual.resolved)

    def test_bulk_assign_is_stored_with_results(self):
        shifts = [create_shift(), create_shift()]
        ids = [str(s.pk) for s in shifts] + ["8d3c2f1e-0000-4000-8000-000000000000"]

        result = self.engine.bulk.execute_bulk_action(
            {"action": "assign", "shiftIds": ids, "parameters": {"guardId": "guard-5"}},
            "dispatcher",
        )

        operation = result.value
        self.assertEqual(operation.summary()["successRate"], 66.67)
        stored = BulkOperation.objects.get(pk=operation.id)
        self.assertEqual(stored.status, BulkOperationStatus.FAILED)
        self.assertEqual(stored.results[2]["error"]["code"], "SHIFT_NOT_FOUND")
        self.assertEqual(
            ShiftTransition.objects.filter(bulk_operation_id=operation.id, method="bulk").count(), 2
        )
        self.assertEqual(Shift.objects.filter(assigned_guard_id="guard-5", status="assigned").count(), 2)

    def test_bulk_notification_writes_outbox_rows(self):
        shift = create_shift()

        self.engine.bulk.execute_bulk_action(
            {"action": "notification", "shiftIds": [str(shift.pk)], "parameters": {"message": "Report to gate"}},
            "dispatcher",
        )

        notification = ShiftNotification.objects.get(shift=shift)
        self.assertEqual(notification.message, "Report to gate")
        self.assertEqual(notification.sent_by, "dispatcher")
        self.assertIsNone(notification.delivered_at)


class BoardQueryTests(TestCase):
    """Tests for the read-side helpers in services."""

    def test_archived_hidden_by_default(self):
        create_shift(ShiftStatus.ARCHIVED)
        visible = create_shift()

        self.assertEqual(list(board_shifts()), [visible])

    def test_filters(self):
        assigned = create_shift(ShiftStatus.ASSIGNED, assigned_guard_id="guard-1", priority=1)
        urgent = create_shift(priority=5)
        create_alert(urgent)

        self.assertEqual(list(board_shifts(statuses=["assigned"])), [assigned])
        self.assertEqual(list(board_shifts(priorities=[5])), [urgent])
        self.assertEqual(list(board_shifts(guards=["guard-1"])), [assigned])
        self.assertEqual(list(board_shifts(assignment_status="unassigned")), [urgent])
        self.assertEqual(list(board_shifts(urgent_only=True)), [urgent])

    def test_history_of_missing_shift_is_none(self):
        self.assertIsNone(shift_history("nope"))


# =============================================================================
# PYTEST-STYLE TESTS (shared fixtures from conftest.py)
# =============================================================================


@pytest.mark.django_db
def test_snapshot_from_model_carries_alerts(shift, unassigned_alert):
    snap = snapshot_from_model(shift)

    assert snap.alerts[0].alert_type == "unassigned_24h"
    assert snap.has_open_alerts


@pytest.mark.django_db
def test_shift_in_progress_rule_uses_injected_clock(assigned_shift, fixed_clock):
    engine = build_workflow_engine(clock=fixed_clock)

    confirmed = engine.executor.execute_transition(str(assigned_shift.pk), "confirmed", "dispatcher")
    started = engine.executor.execute_transition(str(assigned_shift.pk), "in_progress", "dispatcher")

    assert confirmed.ok
    assert started.ok
    assert started.value.timestamp == fixed_clock()


@pytest.mark.django_db
def test_bulk_clone_from_template(shift, shift_template):
    engine = build_workflow_engine()

    result = engine.bulk.execute_bulk_action(
        {"action": "clone", "shiftIds": [str(shift.pk)], "parameters": {"templateId": str(shift_template.pk)}},
        "dispatcher",
    )

    value = result.value.results[0].outcome.value
    clone = Shift.objects.get(pk=value["clonedShiftId"])
    assert clone.template == shift_template
    assert clone.status == ShiftStatus.UNASSIGNED
