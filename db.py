"""
Database layer for the pipe optimizer.
- Local: SQLite (PIPE_DB_PATH, default database.db beside this file)
- Production: Turso (libsql) when TURSO_DATABASE_URL and TURSO_AUTH_TOKEN are set.

Only what the optimizer needs: job lookup, batched pipe writes, pipe listing.
"""

import json
import logging
import os
import uuid

logger = logging.getLogger(__name__)

_TURSO_URL = os.environ.get("TURSO_DATABASE_URL")
_TURSO_TOKEN = os.environ.get("TURSO_AUTH_TOKEN")
_USE_TURSO = bool(_TURSO_URL and _TURSO_TOKEN)

_JOB_COLUMNS = ["id", "details", "status", "created_at"]
_PIPE_COLUMNS = ["id", "length", "diameter", "stock_length", "job_id", "created_at"]


def _db_path():
    default = os.path.join(os.path.dirname(os.path.abspath(__file__)), "database.db")
    return os.environ.get("PIPE_DB_PATH", default)


def _sqlite_conn():
    import sqlite3
    c = sqlite3.connect(_db_path())
    c.row_factory = sqlite3.Row
    return c


def _turso_conn():
    import libsql
    # Local file is a replica, Turso is source of truth.
    local = "/tmp/pipe_optimizer.db" if os.name != "nt" else os.path.join(os.environ.get("TMP", "."), "pipe_optimizer.db")
    c = libsql.connect(local, sync_url=_TURSO_URL, auth_token=_TURSO_TOKEN)
    c.sync()
    return c


def get_db():
    if _USE_TURSO:
        return _turso_conn()
    return _sqlite_conn()


def _close_sync(conn):
    if _USE_TURSO and hasattr(conn, "sync"):
        try:
            conn.sync()
        except Exception:
            logger.warning("Turso sync failed on close", exc_info=True)
    conn.close()


def _commit(conn):
    conn.commit()
    if _USE_TURSO and hasattr(conn, "sync"):
        conn.sync()


def _rows_to_dicts(rows, cols):
    # sqlite3.Row supports keys(); libsql returns plain tuples
    if rows and hasattr(rows[0], "keys"):
        return [dict(r) for r in rows]
    return [dict(zip(cols, r)) for r in rows]


def init_db():
    conn = get_db()
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                details TEXT NOT NULL DEFAULT '{}',
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pipes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                length REAL NOT NULL,
                diameter REAL NOT NULL,
                stock_length REAL NOT NULL,
                job_id TEXT NOT NULL REFERENCES jobs(id),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_pipes_job_id ON pipes (job_id)")
        _commit(conn)
    finally:
        _close_sync(conn)


# ------------------------------
# Jobs
# ------------------------------

def create_job(details=None, status="pending"):
    """Insert a job and return it. Jobs are owned elsewhere; this seeds local stores."""
    job_id = str(uuid.uuid4())
    conn = get_db()
    try:
        conn.execute(
            "INSERT INTO jobs (id, details, status) VALUES (?, ?, ?)",
            (job_id, json.dumps(details or {}), status),
        )
        _commit(conn)
    finally:
        _close_sync(conn)
    return get_job_by_id(job_id)


def get_job_by_id(job_id):
    """Job dict with details decoded, or None."""
    conn = get_db()
    try:
        cur = conn.execute(
            "SELECT id, details, status, created_at FROM jobs WHERE id = ?", (job_id,)
        )
        rows = _rows_to_dicts(cur.fetchall(), _JOB_COLUMNS)
    finally:
        _close_sync(conn)
    if not rows:
        return None
    job = rows[0]
    job["details"] = json.loads(job["details"] or "{}")
    return job


# ------------------------------
# Pipes
# ------------------------------

def insert_pipes_batch(records):
    """
    Insert pipe records in one transaction. records: list of dicts with
    length, diameter, stock_length, job_id. Nothing is written if any insert fails.
    """
    if not records:
        return
    conn = get_db()
    try:
        try:
            for r in records:
                conn.execute(
                    "INSERT INTO pipes (length, diameter, stock_length, job_id) VALUES (?, ?, ?, ?)",
                    (r["length"], r["diameter"], r["stock_length"], r["job_id"]),
                )
            _commit(conn)
        except Exception:
            conn.rollback()
            raise
    finally:
        _close_sync(conn)


def list_pipes_by_job_id(job_id):
    """All pipe rows for a job, newest first."""
    conn = get_db()
    try:
        cur = conn.execute(
            "SELECT id, length, diameter, stock_length, job_id, created_at FROM pipes "
            "WHERE job_id = ? ORDER BY created_at DESC, id DESC",
            (job_id,),
        )
        return _rows_to_dicts(cur.fetchall(), _PIPE_COLUMNS)
    finally:
        _close_sync(conn)
