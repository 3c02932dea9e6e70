"""
Tests for the REST API.

This module tests:
- ApiToken issue / authenticate / revoke
- Bearer authentication and the shared error body
- Board, bulk action, history, workflow and alert endpoints

Uses Django TestCase with pytest-django compatibility.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from rest_framework.test import APIClient

from apps.shifts.choices import AlertType, ShiftStatus
from apps.shifts.models import BulkOperation, Shift, ShiftTransition, UrgencyAlert

from .models import ApiToken

User = get_user_model()

MISSING_ID = "0b6f1f5e-3c8a-4d2e-9f41-7a2c5e8d9b30"


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_user(username="dispatcher", password="testpass123", **kwargs):
    """Create and return a test user."""
    return User.objects.create_user(username=username, password=password, **kwargs)


def create_token(user=None, label="Test Token", ttl_hours=None):
    """Create and return (token, raw_token)."""
    if user is None:
        user = create_user()
    return ApiToken.issue(user=user, label=label, ttl_hours=ttl_hours)


def create_shift(status_value=ShiftStatus.UNASSIGNED, **kwargs):
    """Create and return a test Shift instance."""
    kwargs.setdefault("title", "Night patrol")
    return Shift.objects.create(status=status_value, **kwargs)


class AuthenticatedAPITestCase(TestCase):
    """Base class with an API client authenticated as ``dispatcher``."""

    def setUp(self):
        self.client = APIClient()
        self.user = create_user()
        token_obj, raw_token = create_token(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_token}")

    def assertError(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code, response.data)
        self.assertEqual(response.data["error"]["code"], code)
        self.assertIn("message", response.data["error"])


# =============================================================================
# TOKEN MODEL TESTS
# =============================================================================


class ApiTokenModelTests(TestCase):
    """Tests for ApiToken.issue / authenticate_raw_token / revoke."""

    def setUp(self):
        self.user = create_user()

    def test_issue_creates_token_and_returns_raw_value(self):
        token, raw = ApiToken.issue(user=self.user, label="CLI")

        self.assertEqual(token.user, self.user)
        self.assertTrue(raw)
        self.assertNotEqual(token.token_hash, raw)
        self.assertIsNone(token.expires_at)

    def test_issue_with_ttl_sets_expiry(self):
        token, _ = ApiToken.issue(user=self.user, label="CLI", ttl_hours=2)

        self.assertGreater(token.expires_at, timezone.now() + timedelta(hours=1))

    def test_authenticate_valid_token_updates_last_used(self):
        token, raw = ApiToken.issue(user=self.user, label="CLI")

        found = ApiToken.authenticate_raw_token(raw)

        self.assertEqual(found.pk, token.pk)
        self.assertIsNotNone(found.last_used_at)

    def test_authenticate_unknown_token_returns_none(self):
        self.assertIsNone(ApiToken.authenticate_raw_token("not-a-token"))

    def test_authenticate_expired_token_returns_none(self):
        token, raw = ApiToken.issue(user=self.user, label="CLI", ttl_hours=1)
        token.expires_at = timezone.now() - timedelta(minutes=1)
        token.save()

        self.assertIsNone(ApiToken.authenticate_raw_token(raw))

    def test_revoke_is_idempotent(self):
        token, raw = ApiToken.issue(user=self.user, label="CLI")

        token.revoke()
        first = token.revoked_at
        token.revoke()

        self.assertEqual(token.revoked_at, first)
        self.assertIsNone(ApiToken.authenticate_raw_token(raw))


# =============================================================================
# AUTHENTICATION AND ERROR BODY TESTS
# =============================================================================


class AuthenticationTests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_health_check_needs_no_auth(self):
        response = self.client.get("/api/health/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "healthy")

    def test_missing_credentials_is_unauthorized(self):
        response = self.client.get("/api/v1/shifts/board/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["error"]["code"], "UNAUTHORIZED")

    def test_invalid_token_is_unauthorized(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer wrong")

        response = self.client.post("/api/v1/shifts/board/", {}, format="json")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["error"]["code"], "UNAUTHORIZED")

    def test_unauthorized_is_checked_before_request_shape(self):
        response = self.client.post(
            "/api/v1/shifts/bulk-actions/", {"action": "bogus"}, format="json"
        )

        self.assertEqual(response.status_code, 401)

    def test_session_login_is_accepted(self):
        create_user(username="supervisor", password="testpass123")
        self.client.login(username="supervisor", password="testpass123")

        response = self.client.get("/api/v1/shifts/workflow/")

        self.assertEqual(response.status_code, 200)


class UnexpectedErrorTests(AuthenticatedAPITestCase):

    def test_unexpected_exception_is_generic_500(self):
        with patch("apps.shifts.services.build_workflow_engine", side_effect=RuntimeError("secret detail")):
            with self.assertLogs("apps.core.exceptions", level="ERROR"):
                response = self.client.get("/api/v1/shifts/workflow/")

        self.assertError(response, 500, "INTERNAL_SERVER_ERROR")
        self.assertNotIn("secret", response.data["error"]["message"])


# =============================================================================
# BOARD TESTS
# =============================================================================


class BoardReadTests(AuthenticatedAPITestCase):
    """Tests for GET /api/v1/shifts/board/"""

    def test_board_lists_shifts_columns_and_metrics(self):
        unassigned = create_shift()
        create_shift(ShiftStatus.COMPLETED)
        create_shift(ShiftStatus.ASSIGNED, assigned_guard_id="guard-1")
        create_shift(ShiftStatus.ARCHIVED)
        UrgencyAlert.objects.create(shift=unassigned, alert_type=AlertType.UNASSIGNED_24H)

        response = self.client.get("/api/v1/shifts/board/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["shifts"]), 3)
        self.assertEqual(len(response.data["columns"]), 7)
        metrics = response.data["metrics"]
        self.assertEqual(metrics["totalShifts"], 3)
        self.assertEqual(metrics["completionRate"], 33.33)
        self.assertEqual(metrics["urgentAlertsCount"], 1)

    def test_board_card_shows_open_alerts(self):
        shift = create_shift()
        UrgencyAlert.objects.create(shift=shift, alert_type=AlertType.UNDERSTAFFED)

        response = self.client.get("/api/v1/shifts/board/")

        card = response.data["shifts"][0]
        self.assertEqual(card["id"], str(shift.pk))
        self.assertEqual(card["urgentAlerts"][0]["alertType"], "understaffed")

    def test_board_filters_by_status(self):
        create_shift()
        assigned = create_shift(ShiftStatus.ASSIGNED, assigned_guard_id="guard-1")

        response = self.client.get("/api/v1/shifts/board/", {"statuses": "assigned,confirmed"})

        self.assertEqual([card["id"] for card in response.data["shifts"]], [str(assigned.pk)])

    def test_board_filters_urgent_only(self):
        create_shift()
        urgent = create_shift()
        UrgencyAlert.objects.create(shift=urgent, alert_type=AlertType.UNASSIGNED_24H)

        response = self.client.get("/api/v1/shifts/board/", {"urgent_only": "true"})

        self.assertEqual([card["id"] for card in response.data["shifts"]], [str(urgent.pk)])

    def test_board_rejects_unknown_status_filter(self):
        response = self.client.get("/api/v1/shifts/board/", {"statuses": "cancelled"})

        self.assertError(response, 400, "INVALID_REQUEST")

    def test_board_shows_recent_activity(self):
        shift = create_shift()
        self.client.post(
            "/api/v1/shifts/board/", {"shiftId": str(shift.pk), "newStatus": "assigned"}, format="json"
        )

        response = self.client.get("/api/v1/shifts/board/")

        activity = response.data["recentActivity"]
        self.assertEqual(len(activity), 1)
        self.assertEqual(activity[0]["actorId"], "dispatcher")


class BoardMoveTests(AuthenticatedAPITestCase):
    """Tests for POST /api/v1/shifts/board/"""

    def move(self, shift_id, new_status, **extra):
        return self.client.post(
            "/api/v1/shifts/board/",
            {"shiftId": str(shift_id), "newStatus": new_status, **extra},
            format="json",
        )

    def test_move_returns_transition(self):
        shift = create_shift()

        response = self.move(shift.pk, "assigned", reason="Manager assignment")

        self.assertEqual(response.status_code, 200)
        transition = response.data["transition"]
        self.assertTrue(transition["transitionId"])
        self.assertEqual(transition["previousStatus"], "unassigned")
        self.assertEqual(transition["newStatus"], "assigned")
        self.assertEqual(transition["actorId"], "dispatcher")
        record = ShiftTransition.objects.get(pk=transition["transitionId"])
        self.assertEqual(record.reason, "Manager assignment")
        shift.refresh_from_db()
        self.assertEqual(shift.status, "assigned")

    def test_move_with_guard(self):
        shift = create_shift()

        response = self.move(shift.pk, "assigned", guardId="guard-4")

        self.assertEqual(response.status_code, 200)
        shift.refresh_from_db()
        self.assertEqual(shift.assigned_guard_id, "guard-4")

    def test_illegal_move_is_conflict(self):
        shift = create_shift()

        response = self.move(shift.pk, "completed")

        self.assertError(response, 409, "INVALID_TRANSITION")
        self.assertEqual(response.data["error"]["details"]["from_status"], "unassigned")
        shift.refresh_from_db()
        self.assertEqual(shift.status, "unassigned")

    def test_confirm_without_guard_is_conflict(self):
        shift = create_shift(ShiftStatus.ASSIGNED)

        response = self.move(shift.pk, "confirmed")

        self.assertError(response, 409, "INVALID_TRANSITION")
        self.assertEqual(response.data["error"]["details"]["rule"], "GUARD_ASSIGNMENT_REQUIRED")

    def test_unknown_shift(self):
        self.assertError(self.move(MISSING_ID, "assigned"), 404, "SHIFT_NOT_FOUND")
        self.assertError(self.move("not-a-uuid", "assigned"), 404, "SHIFT_NOT_FOUND")

    def test_missing_fields(self):
        response = self.client.post("/api/v1/shifts/board/", {"newStatus": "assigned"}, format="json")

        self.assertError(response, 400, "INVALID_REQUEST")
        self.assertIn("shiftId", response.data["error"]["details"]["fields"])

    def test_unknown_status_value(self):
        shift = create_shift()

        self.assertError(self.move(shift.pk, "cancelled"), 400, "INVALID_REQUEST")

    def test_malformed_json(self):
        response = self.client.post(
            "/api/v1/shifts/board/", data="{not json", content_type="application/json"
        )

        self.assertError(response, 400, "INVALID_REQUEST")


# =============================================================================
# BULK ACTION TESTS
# =============================================================================


class BulkActionAPITests(AuthenticatedAPITestCase):
    """Tests for POST /api/v1/shifts/bulk-actions/ and GET .../<id>/"""

    url = "/api/v1/shifts/bulk-actions/"

    def test_status_change_with_one_failure(self):
        shifts = [create_shift(), create_shift(ShiftStatus.ASSIGNED), create_shift(ShiftStatus.COMPLETED)]

        response = self.client.post(
            self.url,
            {
                "action": "status_change",
                "shiftIds": [str(s.pk) for s in shifts],
                "parameters": {"newStatus": "issue_logged"},
                "reason": "Client cancelled",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(
            response.data["summary"],
            {"totalShifts": 3, "successCount": 2, "failureCount": 1, "successRate": 66.67},
        )
        operation = response.data["operation"]
        self.assertEqual(operation["status"], "failed")
        self.assertEqual(operation["results"][2]["error"]["code"], "INVALID_TRANSITION")
        self.assertEqual(operation["executedBy"], "dispatcher")

    def test_invalid_priority_fails_every_item(self):
        shifts = [create_shift(), create_shift()]

        response = self.client.post(
            self.url,
            {"action": "priority_update", "shiftIds": [str(s.pk) for s in shifts], "parameters": {"priority": 6}},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["summary"]["successCount"], 0)
        for item in response.data["operation"]["results"]:
            self.assertEqual(item["error"]["code"], "INVALID_PARAMETERS")
            self.assertEqual(item["error"]["message"], "priority must be an integer between 1 and 5")
        self.assertEqual(Shift.objects.filter(priority=6).count(), 0)

    def test_too_many_shifts(self):
        response = self.client.post(
            self.url,
            {"action": "assign", "shiftIds": [MISSING_ID] * 51, "parameters": {"guardId": "g"}},
            format="json",
        )

        self.assertError(response, 400, "TOO_MANY_SHIFTS")
        self.assertFalse(BulkOperation.objects.exists())

    def test_unknown_action(self):
        response = self.client.post(self.url, {"action": "delete", "shiftIds": [MISSING_ID]}, format="json")

        self.assertError(response, 400, "INVALID_ACTION")

    def test_missing_shift_ids(self):
        response = self.client.post(self.url, {"action": "assign"}, format="json")

        self.assertError(response, 400, "INVALID_REQUEST")

    def test_stored_operation_can_be_fetched(self):
        shift = create_shift()
        created = self.client.post(
            self.url,
            {"action": "priority_update", "shiftIds": [str(shift.pk)], "parameters": {"priority": 1}},
            format="json",
        )
        operation_id = created.data["operation"]["id"]

        response = self.client.get(f"{self.url}{operation_id}/")

        self.assertEqual(response.status_code, 200)
        operation = response.data["operation"]
        self.assertEqual(operation["id"], operation_id)
        self.assertEqual(operation["status"], "completed")
        self.assertEqual(operation["summary"]["successRate"], 100.0)

    def test_unknown_operation(self):
        self.assertError(self.client.get(f"{self.url}{MISSING_ID}/"), 404, "NOT_FOUND")


# =============================================================================
# HISTORY / WORKFLOW TESTS
# =============================================================================


class ShiftHistoryAPITests(AuthenticatedAPITestCase):
    """Tests for GET /api/v1/shifts/{id}/history/"""

    def test_history_oldest_first(self):
        shift = create_shift()
        for new_status, extra in (("assigned", {"guardId": "guard-1"}), ("issue_logged", {})):
            self.client.post(
                "/api/v1/shifts/board/",
                {"shiftId": str(shift.pk), "newStatus": new_status, **extra},
                format="json",
            )

        response = self.client.get(f"/api/v1/shifts/{shift.pk}/history/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(
            [entry["newStatus"] for entry in response.data["results"]], ["assigned", "issue_logged"]
        )

    def test_history_of_unknown_shift(self):
        self.assertError(self.client.get(f"/api/v1/shifts/{MISSING_ID}/history/"), 404, "SHIFT_NOT_FOUND")


class WorkflowAPITests(AuthenticatedAPITestCase):

    def test_columns(self):
        response = self.client.get("/api/v1/shifts/workflow/")

        columns = {column["id"]: column for column in response.data["columns"]}
        self.assertEqual(list(columns), ShiftStatus.values)
        self.assertEqual(columns["unassigned"]["allowedTransitions"], ["assigned", "issue_logged"])
        self.assertEqual(columns["archived"]["allowedTransitions"], [])
        self.assertEqual(columns["issue_logged"]["maxItems"], 25)


# =============================================================================
# URGENT ALERT TESTS
# =============================================================================


class UrgentAlertAPITests(AuthenticatedAPITestCase):

    def setUp(self):
        super().setUp()
        self.shift = create_shift()
        self.alert = UrgencyAlert.objects.create(
            shift=self.shift, alert_type=AlertType.UNASSIGNED_24H, priority="high"
        )
        UrgencyAlert.objects.create(shift=self.shift, alert_type=AlertType.CERTIFICATION_GAP, priority="low")
        UrgencyAlert.objects.create(
            shift=self.shift, alert_type=AlertType.NO_SHOW_RISK, resolved=True, resolved_by="system"
        )

    def test_lists_open_alerts(self):
        response = self.client.get("/api/v1/shifts/urgent-alerts/")

        self.assertEqual(response.data["count"], 2)

    def test_filters(self):
        by_type = self.client.get("/api/v1/shifts/urgent-alerts/", {"alert_types": "unassigned_24h"})
        by_priority = self.client.get("/api/v1/shifts/urgent-alerts/", {"priorities": "low"})

        self.assertEqual(by_type.data["results"][0]["id"], str(self.alert.pk))
        self.assertEqual(by_priority.data["results"][0]["alertType"], "certification_gap")

    def test_acknowledge(self):
        response = self.client.post(f"/api/v1/shifts/urgent-alerts/{self.alert.pk}/acknowledge/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["alert"]["acknowledgedBy"], "dispatcher")

    def test_resolve_then_resolve_again(self):
        url = f"/api/v1/shifts/urgent-alerts/{self.alert.pk}/resolve/"

        first = self.client.post(url, {"reason": "Agency guard booked"}, format="json")
        second = self.client.post(url, {}, format="json")

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.data["alert"]["resolved"])
        self.assertEqual(first.data["alert"]["resolvedReason"], "Agency guard booked")
        self.assertError(second, 400, "INVALID_REQUEST")

    def test_unknown_alert(self):
        response = self.client.post(f"/api/v1/shifts/urgent-alerts/{MISSING_ID}/acknowledge/")

        self.assertError(response, 404, "NOT_FOUND")

    def test_move_resolves_bound_alert(self):
        self.client.post(
            "/api/v1/shifts/board/", {"shiftId": str(self.shift.pk), "newStatus": "assigned"}, format="json"
        )

        response = self.client.get("/api/v1/shifts/urgent-alerts/")

        self.assertEqual([a["alertType"] for a in response.data["results"]], ["certification_gap"])


# =============================================================================
# PYTEST-STYLE TESTS (shared fixtures from conftest.py)
# =============================================================================


@pytest.mark.django_db
def test_revoked_token_is_rejected(api_client, revoked_token):
    token_obj, raw_token = revoked_token
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_token}")

    response = api_client.get("/api/v1/shifts/board/")

    assert response.status_code == 401


@pytest.mark.django_db
def test_expired_token_is_rejected(api_client, expired_token):
    token_obj, raw_token = expired_token
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_token}")

    assert api_client.get("/api/v1/shifts/workflow/").status_code == 401


@pytest.mark.django_db
def test_bulk_notification_via_api(authenticated_api_client, shift):
    response = authenticated_api_client.post(
        "/api/v1/shifts/bulk-actions/",
        {"action": "notification", "shiftIds": [str(shift.pk)], "parameters": {"message": "Gate code changed"}},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["operation"]["results"][0]["value"]["notificationId"]
    assert shift.notifications.get().message == "Gate code changed"
