import pytest


class FakeStore:
    """In-memory stand-in for the db module."""

    def __init__(self):
        self.jobs = {}
        self.pipes = []
        self.fail_writes = False
        self.batches = 0

    def add_job(self, job_id, details=None):
        self.jobs[job_id] = {"id": job_id, "details": details or {}, "status": "pending"}
        return self.jobs[job_id]

    def get_job_by_id(self, job_id):
        return self.jobs.get(job_id)

    def insert_pipes_batch(self, records):
        if self.fail_writes:
            raise RuntimeError("disk full")
        self.batches += 1
        for r in records:
            row = dict(r)
            row["id"] = len(self.pipes) + 1
            row.setdefault("created_at", "2024-03-01 12:00:00")
            self.pipes.append(row)

    def list_pipes_by_job_id(self, job_id):
        return [p for p in reversed(self.pipes) if p["job_id"] == job_id]


@pytest.fixture
def store():
    s = FakeStore()
    s.add_job("4f1c9a22-0000-0000-0000-000000000000", {"salesOrderNumber": "SO-7781"})
    s.add_job("b7e3d5aa-0000-0000-0000-000000000000")
    return s


@pytest.fixture
def sqlite_db(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPE_DB_PATH", str(tmp_path / "test.db"))
    import db
    db.init_db()
    return db


@pytest.fixture
def client(sqlite_db):
    from app import app
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
