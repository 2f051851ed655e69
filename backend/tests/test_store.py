import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_job, make_resume
from resume_optimizer.errors import PersistenceError
from resume_optimizer.models import STATUS_OPTIMIZED, STATUS_PENDING


def test_count_jobs_by_status(store):
    make_job(store)
    make_job(store)
    make_job(store, status=STATUS_OPTIMIZED)

    assert store.count_jobs() == 3
    assert store.count_jobs("All") == 3
    assert store.count_jobs(STATUS_PENDING) == 2
    assert store.count_jobs(STATUS_OPTIMIZED) == 1

    jobs, pagination = store.list_jobs(STATUS_PENDING, page=1, limit=1)
    assert len(jobs) == 1
    assert pagination.total == 2
    assert pagination.pages == 2


def test_is_job_base(store):
    used = make_resume(store)
    spare = make_resume(store, "Someone else\n")
    make_job(store, base_resume_id=used.id)

    assert store.is_job_base(used.id)
    assert not store.is_job_base(spare.id)


def test_storage_failure_becomes_persistence_error(store, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(store.db, "commit", failing_commit)
    with pytest.raises(PersistenceError) as exc:
        make_job(store)
    assert exc.value.status_code == 500
    assert "database is locked" in exc.value.details
