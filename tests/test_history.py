from datetime import datetime, timezone

import pytest

from errors import InfeasibleRequestError
from history import build_visualization, cuts_in_range, reconstruct_plan, to_naive_utc


def _row(length, stock_length=24, created_at="2024-03-01 12:00:00", diameter=1.9):
    return {"length": length, "diameter": diameter, "stock_length": stock_length,
            "job_id": "job-1", "created_at": created_at}


def test_reconstruct_plan_repacks_longest_first():
    plan = reconstruct_plan([_row(6), _row(10), _row(8)], 24)

    assert [[c.length for c in bar.cuts] for bar in plan] == [[10, 8], [6]]
    assert [[c.position for c in bar.cuts] for bar in plan] == [[0, 10], [0]]
    assert [bar.remaining_length for bar in plan] == [4, 16]
    assert all(c.rfid_code is None for bar in plan for c in bar.cuts)


def test_reconstruct_plan_serializes_without_codes():
    cut = reconstruct_plan([_row(10)], 24)[0].to_dict()["cuts"][0]
    assert cut == {"length": 10, "diameter": 1.9, "position": 0}


def test_reconstruct_plan_empty():
    assert reconstruct_plan([], 24) == []


def test_reconstruct_plan_rejects_rows_longer_than_stock():
    with pytest.raises(InfeasibleRequestError):
        reconstruct_plan([_row(30)], 24)


def test_build_visualization_groups_by_stock_length():
    rows = [_row(100, 300), _row(10, 24), _row(150, 300), _row(8, 24)]
    data = build_visualization(rows)

    assert [g["stockLength"] for g in data] == [24, 300]
    assert [[c["length"] for c in b["cuts"]] for b in data[0]["cuttingPlan"]] == [[10, 8]]
    assert [[c["length"] for c in b["cuts"]] for b in data[1]["cuttingPlan"]] == [[150, 100]]


def test_cuts_in_range_is_inclusive():
    rows = [
        _row(1, created_at="2024-01-01 00:00:00"),
        _row(2, created_at="2024-01-15 10:30:00"),
        _row(3, created_at="2024-01-31 23:59:59"),
        _row(4, created_at="2024-02-01 00:00:01"),
    ]
    picked = cuts_in_range(rows, "2024-01-01", "2024-01-31T23:59:59Z")
    assert [r["length"] for r in picked] == [1, 2, 3]


def test_cuts_in_range_accepts_datetimes():
    rows = [_row(1, created_at=datetime(2024, 5, 1, 9, 0))]
    assert cuts_in_range(rows, datetime(2024, 5, 1), datetime(2024, 5, 2)) == rows


def test_to_naive_utc():
    assert to_naive_utc("2024-01-01T10:00:00+02:00") == datetime(2024, 1, 1, 8, 0)
    assert to_naive_utc(datetime(2024, 1, 1, 8, tzinfo=timezone.utc)) == datetime(2024, 1, 1, 8)
    with pytest.raises(ValueError):
        to_naive_utc("yesterday")
    with pytest.raises(TypeError):
        to_naive_utc(12)
