"""
Cutting-stock packer for one OD group.

Greedy first-fit over the current bar with a descending presort:
- requests sorted longest first (stable, so equal lengths keep input order)
- cuts go into the open bar while they fit; otherwise the bar is closed and a new one opened
- WASTE_ELEMENT is reserved once at the end of every bar for the saw cutoff
No backtracking: earlier bars are never revisited.
"""

import logging

from errors import InfeasibleRequestError
from models import CutAssignment, OptimizationResult, StockBar, format_number
from od_classes import INCHES_PER_FOOT, classify

logger = logging.getLogger(__name__)

# Cutoff lost at the end of each stock bar (inches).
WASTE_ELEMENT = 2


def usable_length(stock_length):
    return stock_length - WASTE_ELEMENT


def check_feasible(lengths, stock_length):
    """Raise InfeasibleRequestError for the first length that cannot fit an empty bar."""
    usable = usable_length(stock_length)
    for length in lengths:
        if length > usable:
            raise InfeasibleRequestError(length, usable)


def first_fit(items, stock_length, place):
    """
    Lay out items (already sorted) on stock bars of stock_length.

    place(item, bar, position) must return the CutAssignment to append and is
    called once per item, in order. Returns the closed bars; an empty
    trailing bar is never returned.
    """
    usable = usable_length(stock_length)
    plan = []
    bar = StockBar(stock_index=0, stock_length=stock_length, remaining_length=usable)

    for item in items:
        length = item.length
        if bar.remaining_length < length:
            plan.append(bar)
            bar = StockBar(stock_index=bar.stock_index + 1,
                           stock_length=stock_length, remaining_length=usable)

        position = usable - bar.remaining_length
        bar.cuts.append(place(item, bar, position))
        bar.remaining_length -= length

    if bar.cuts:
        plan.append(bar)
    return plan


def traceability_code(prefix, request, cut_number):
    """"{prefix}-{odKey}-{lengthFt}-{n}", n being 1-based within the bar."""
    od_key = request.od_class or classify(request.diameter)
    return "{}-{}-{}-{}".format(
        prefix, od_key, format_number(request.length / INCHES_PER_FOOT), cut_number
    )


def summarize(plan, stock_length, used_length):
    stock_pieces = len(plan)
    total_length = stock_pieces * stock_length
    if total_length:
        utilization = used_length / total_length * 100
    else:
        utilization = 0.0
    return OptimizationResult(
        stock_pieces=stock_pieces,
        wastage=total_length - used_length,
        total_length=total_length,
        utilization=utilization,
        cutting_plan=plan,
    )


def pack(requests, stock_length, code_prefix):
    """
    Pack one OD-homogeneous group of CutRequests onto bars of stock_length.

    Every request is validated before anything is placed, so an infeasible
    request leaves no partial plan behind.
    """
    check_feasible((r.length for r in requests), stock_length)

    # 1. Longest first; sorted() is stable so ties keep input order
    ordered = sorted(requests, key=lambda r: r.length, reverse=True)

    # 2. Single forward pass
    def place(request, bar, position):
        return CutAssignment(
            length=request.length,
            diameter=request.diameter,
            position=position,
            rfid_code=traceability_code(code_prefix, request, len(bar.cuts) + 1),
            part_number=request.part_number,
            drill_operations=request.drill_operations,
        )

    plan = first_fit(ordered, stock_length, place)

    # 3. Metrics
    result = summarize(plan, stock_length, sum(r.length for r in requests))
    logger.debug(
        "Packed %d cut(s) onto %d bar(s) of %s (utilization %.2f%%)",
        len(requests), result.stock_pieces, format_number(stock_length), result.utilization,
    )
    return result


def pipe_records(result, job_id):
    """Rows to persist for a packed result: one per placed cut."""
    records = []
    for bar in result.cutting_plan:
        for cut in bar.cuts:
            records.append({
                "length": cut.length,
                "diameter": cut.diameter,
                "stock_length": bar.stock_length,
                "job_id": job_id,
            })
    return records
