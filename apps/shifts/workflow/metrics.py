"""Board metrics over a snapshot of shifts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from ..choices import ShiftStatus
from .graph import StatusGraph
from .types import Metrics, ShiftSnapshot


# A status holding more than this share of all shifts is reported as a bottleneck
BOTTLENECK_SHARE = 0.2


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


class MetricsAggregator:
    """Pure computation; the caller decides which shifts are in the snapshot."""

    def __init__(self, graph: StatusGraph | None = None):
        self.graph = graph or StatusGraph()

    def compute_metrics(self, shifts: Iterable[ShiftSnapshot]) -> Metrics:
        shifts = list(shifts)
        total = len(shifts)

        counts = Counter(shift.status for shift in shifts)
        by_status = {status: counts.get(status, 0) for status in ShiftStatus.values}

        bottlenecks = tuple(
            {"status": status, "count": count, "share": _percent(count, total)}
            for status, count in by_status.items()
            if total and count > total * BOTTLENECK_SHARE
        )

        capacity_warnings = tuple(
            {"status": str(column.id), "count": by_status[column.id], "maxItems": column.max_items}
            for column in self.graph.columns()
            if column.max_items is not None and by_status[column.id] > column.max_items
        )

        return Metrics(
            total_shifts=total,
            shifts_by_status=by_status,
            completion_rate=_percent(by_status[ShiftStatus.COMPLETED], total),
            urgent_alerts_count=sum(1 for shift in shifts if shift.has_open_alerts),
            workflow_bottlenecks=bottlenecks,
            capacity_warnings=capacity_warnings,
        )
