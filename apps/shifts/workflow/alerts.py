"""Auto-resolution of urgency alerts when a shift leaves a status."""

from __future__ import annotations

import logging

from ..choices import AlertType, ShiftStatus
from .ports import AlertStore


logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

# Status each alert type is raised for. Once the shift leaves that status the
# alert no longer applies. Certification gaps need a person to clear them.
ALERT_STATUS_BINDINGS = {
    AlertType.UNASSIGNED_24H: ShiftStatus.UNASSIGNED,
    AlertType.UNDERSTAFFED: ShiftStatus.UNASSIGNED,
    AlertType.UNCONFIRMED_12H: ShiftStatus.ASSIGNED,
    AlertType.NO_SHOW_RISK: ShiftStatus.CONFIRMED,
}


class AlertResolutionCoordinator:
    """
    Resolves the open alerts of a shift that are bound to its previous status.

    Best-effort: failures are logged and never raised, so a transition that
    has already been persisted is not affected.
    """

    def __init__(self, alerts: AlertStore, bindings: dict[str, str] | None = None):
        self.alerts = alerts
        self.bindings = ALERT_STATUS_BINDINGS if bindings is None else bindings

    def resolve_related(self, shift_id: str, previous_status: str, new_status: str) -> int:
        """Return the number of alerts resolved."""
        if previous_status == new_status:
            return 0

        try:
            open_alerts = self.alerts.open_alerts(shift_id)
        except Exception:
            logger.exception("Could not load open alerts for shift %s", shift_id)
            return 0

        reason = f"Auto-resolved due to status change to {new_status}"
        resolved = 0

        for alert in open_alerts:
            if alert.resolved or self.bindings.get(alert.alert_type) != previous_status:
                continue
            try:
                self.alerts.resolve(alert.id, resolved_by=SYSTEM_ACTOR, reason=reason)
            except Exception:
                logger.warning(
                    "Could not auto-resolve alert %s on shift %s", alert.id, shift_id, exc_info=True
                )
                continue
            resolved += 1

        if resolved:
            logger.info(
                "Auto-resolved %d alert(s) on shift %s (%s -> %s)",
                resolved, shift_id, previous_status, new_status,
            )
        return resolved
