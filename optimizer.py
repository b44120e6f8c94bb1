"""
Pipe optimization service: job checks, OD grouping, packing and persistence.

The store argument is anything exposing get_job_by_id, insert_pipes_batch and
list_pipes_by_job_id; the db module by default.
"""

import logging
import threading
from contextlib import contextmanager

import csv_ingest
import db
import history
from errors import JobNotFoundError, PersistenceError
from models import OptimizationResult
from od_classes import STOCK_LENGTHS_FT, classify, stock_length_inches
from packer import pack, pipe_records

logger = logging.getLogger(__name__)

# Stock length used when requests are not split by OD class.
DEFAULT_STOCK_LENGTH = 6000

# Per-job advisory locks: concurrent optimizations of one job run one at a time
# in this process. Other processes sharing the database are not coordinated.
# job_id -> [lock, holders and waiters]; entries go away with their last user.
_job_locks = {}
_job_locks_guard = threading.Lock()


@contextmanager
def job_lock(job_id):
    with _job_locks_guard:
        entry = _job_locks.get(job_id)
        if entry is None:
            entry = _job_locks[job_id] = [threading.Lock(), 0]
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _job_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _job_locks[job_id]


class UnitOfWork:
    """Collects the pipe records of one optimization and writes them in one batch."""

    def __init__(self, store, job_id):
        self.store = store
        self.job_id = job_id
        self.records = []

    def add(self, result):
        self.records.extend(pipe_records(result, self.job_id))

    def commit(self):
        try:
            self.store.insert_pipes_batch(self.records)
        except Exception as e:
            logger.error("Saving %d pipe record(s) for job %s failed",
                         len(self.records), self.job_id, exc_info=True)
            raise PersistenceError("Failed to save pipe records: {}".format(e)) from e


def require_job(job_id, store=db):
    job = store.get_job_by_id(job_id)
    if not job:
        raise JobNotFoundError(job_id)
    return job


def code_prefix(job, job_id):
    """Sales order number from the job details, else the first 6 chars of the job id."""
    details = job.get("details") or {}
    return details.get("salesOrderNumber") or str(job_id)[:6]


def group_by_od(requests):
    """OD class -> requests, in first-seen order. Explicit classes win over diameter."""
    groups = {}
    for r in requests:
        groups.setdefault(r.od_class or classify(r.diameter), []).append(r)
    return groups


def merge_results(results):
    """
    Combine per-group results. Bar indices are kept as packed, so every group
    starts again at 0. Utilization is weighted by each group's total length.
    """
    total_length = sum(r.total_length for r in results)
    if total_length:
        utilization = sum(r.utilization * r.total_length for r in results) / total_length
    else:
        utilization = 0.0
    return OptimizationResult(
        stock_pieces=sum(r.stock_pieces for r in results),
        wastage=sum(r.wastage for r in results),
        total_length=total_length,
        utilization=utilization,
        cutting_plan=[bar for r in results for bar in r.cutting_plan],
    )


def optimize(requests, job_id, stock_length=None, store=db, stock_lengths=STOCK_LENGTHS_FT):
    """
    Optimize cutting for a job and persist one pipe record per placed cut.

    Requests with no explicit OD class anywhere, or that all fall into one
    class, are packed together on stock_length (or DEFAULT_STOCK_LENGTH).
    Otherwise each OD class is packed on its own standard stock length,
    unless stock_length overrides it.
    """
    job = require_job(job_id, store)
    prefix = code_prefix(job, job_id)

    with job_lock(job_id):
        uow = UnitOfWork(store, job_id)

        groups = group_by_od(requests)
        if len(groups) <= 1 or not any(r.od_class for r in requests):
            result = pack(requests, stock_length or DEFAULT_STOCK_LENGTH, prefix)
            uow.add(result)
        else:
            results = []
            for od_key, group in groups.items():
                group_stock = stock_length or stock_length_inches(od_key, stock_lengths)
                group_result = pack(group, group_stock, prefix)
                uow.add(group_result)
                results.append(group_result)
            result = merge_results(results)

        uow.commit()

    logger.info(
        "Job %s: %d cut(s) on %d stock piece(s), %.2f%% utilization",
        job_id, len(requests), result.stock_pieces, result.utilization,
    )
    return result


def optimize_csv(raw_text, job_id, store=db):
    """Parse an ERP export and optimize the pipes found in it."""
    requests = csv_ingest.extract_cut_requests(csv_ingest.parse(raw_text))
    return optimize(requests, job_id, store=store)


def get_history(job_id, store=db):
    require_job(job_id, store)
    return store.list_pipes_by_job_id(job_id)


def filter_by_date_range(job_id, start, end, store=db):
    return history.cuts_in_range(get_history(job_id, store), start, end)


def visualize(job_id, store=db):
    return history.build_visualization(get_history(job_id, store))
