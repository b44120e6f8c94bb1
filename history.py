"""
Views over persisted pipe records.

Stored rows only keep (length, diameter, stock_length, job_id), not the bar a
cut was placed on, so layouts are rebuilt by re-running the packer's first-fit
placement. A job whose cuts changed between runs gets a different layout.
"""

from datetime import datetime, timezone

from models import CutAssignment
from packer import check_feasible, first_fit


def reconstruct_plan(persisted_cuts, stock_length):
    """Rebuild stock bars from stored rows: longest first, first-fit, no traceability codes."""
    cuts = [
        CutAssignment(length=row["length"], diameter=row["diameter"], position=0)
        for row in persisted_cuts
    ]
    check_feasible((c.length for c in cuts), stock_length)
    cuts.sort(key=lambda c: c.length, reverse=True)

    def place(cut, bar, position):
        cut.position = position
        return cut

    return first_fit(cuts, stock_length, place)


def build_visualization(persisted_cuts):
    """Group stored rows by stock length and rebuild a plan for each group."""
    groups = {}
    for row in persisted_cuts:
        groups.setdefault(row["stock_length"], []).append(row)

    out = []
    for stock_length in sorted(groups):
        plan = reconstruct_plan(groups[stock_length], stock_length)
        out.append({
            "stockLength": stock_length,
            "cuttingPlan": [bar.to_dict() for bar in plan],
        })
    return out


def to_naive_utc(value):
    """datetime or ISO string -> naive UTC datetime (SQLite CURRENT_TIMESTAMP is UTC)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise TypeError("expected a datetime or ISO string, got {!r}".format(value))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def cuts_in_range(persisted_cuts, start, end):
    """Rows whose created_at lies within [start, end], both ends inclusive."""
    start = to_naive_utc(start)
    end = to_naive_utc(end)
    return [
        row for row in persisted_cuts
        if start <= to_naive_utc(row["created_at"]) <= end
    ]
