import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeAI, make_job, make_resume
from resume_optimizer.errors import (
    AIServiceError, EmptyContentError, NotFoundError, PersistenceError, ValidationError,
)
from resume_optimizer.events import JobEventBus
from resume_optimizer.models import ResumeVersion, STATUS_OPTIMIZED, STATUS_PENDING
from resume_optimizer.optimizer import OptimizationOrchestrator

FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def orchestrator(store, fake_ai):
    return OptimizationOrchestrator(store, fake_ai, now=lambda: FIXED_NOW)


def _resume_count(store):
    return store.db.query(ResumeVersion).count()


def test_optimize_transitions_job_and_persists_version(store, orchestrator, fake_ai):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    assert job.status == STATUS_PENDING

    result = run(orchestrator.optimize(job.id))

    assert result.jobId == job.id
    assert result.optimizedResumeText == fake_ai.optimized.strip()
    assert result.changesSummary.headline == "Added SQL and ETL keywords"
    assert result.changesSummary.keywordsAdded == ["SQL", "ETL"]
    assert result.updatedJob.status == STATUS_OPTIMIZED
    assert result.updatedJob.optimizedOn is not None
    assert result.diff.stats.total == (
        result.diff.stats.additions + result.diff.stats.deletions + result.diff.stats.unchanged
    )

    store.db.expire_all()
    job = store.get_job(job.id)
    assert job.status == STATUS_OPTIMIZED
    assert job.optimized_on is not None
    assert job.changes_summary == "Added SQL and ETL keywords"
    version = store.get_resume(job.latest_optimized_resume_id)
    assert version is not None
    assert version.owner_job_id == job.id
    assert version.optimized_resume_text == fake_ai.optimized.strip()
    assert version.keywords_added == ["SQL", "ETL"]
    # the base resume is untouched
    assert store.get_resume(base.id).base_resume_text == base.base_resume_text
    assert store.get_resume(base.id).optimized_resume_text is None


def test_prompts_carry_job_description_and_resume(store, orchestrator, fake_ai):
    base = make_resume(store, "Jane Doe\nAnalyst\n")
    job = make_job(store, base_resume_id=base.id, job_description="Looking for Tableau skills")
    run(orchestrator.optimize(job.id))

    (rewrite_sys, rewrite_user), (summary_sys, summary_user) = fake_ai.calls
    assert "Looking for Tableau skills" in rewrite_user
    assert "Jane Doe\nAnalyst" in rewrite_user
    assert "summarizer" in summary_sys
    assert fake_ai.optimized.strip() in summary_user


def test_reoptimize_updates_same_version_in_place(store, orchestrator, fake_ai):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    run(orchestrator.optimize(job.id))
    first_version_id = store.get_job(job.id).latest_optimized_resume_id
    count = _resume_count(store)

    fake_ai.optimized = "Jane Doe\nLead Data Engineer\n"
    fake_ai.summary_json = '{"headline": "Promoted title", "summary": "s", "keywordsAdded": ["Leadership"]}'
    result = run(orchestrator.optimize(job.id))

    store.db.expire_all()
    job = store.get_job(job.id)
    assert job.latest_optimized_resume_id == first_version_id
    assert _resume_count(store) == count
    version = store.get_resume(first_version_id)
    assert version.optimized_resume_text == "Jane Doe\nLead Data Engineer"
    assert version.keywords_added == ["Leadership"]
    assert job.changes_summary == "Promoted title"
    assert result.updatedJob.status == STATUS_OPTIMIZED


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_resume_fails_without_writes(store, orchestrator, fake_ai, text):
    base = make_resume(store, text)
    job = make_job(store, base_resume_id=base.id)
    count = _resume_count(store)

    with pytest.raises(EmptyContentError):
        run(orchestrator.optimize(job.id))

    assert fake_ai.calls == []
    assert _resume_count(store) == count
    store.db.expire_all()
    assert store.get_job(job.id).status == STATUS_PENDING


def test_no_resume_and_no_override_fails(store, orchestrator, fake_ai):
    job = make_job(store)
    with pytest.raises(NotFoundError) as exc:
        run(orchestrator.optimize(job.id))
    assert exc.value.code == "NO_RESUME_ERROR"
    assert fake_ai.calls == []
    assert _resume_count(store) == 0


def test_unknown_override_resume_is_a_validation_error(store, orchestrator):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    with pytest.raises(ValidationError) as exc:
        run(orchestrator.optimize(job.id, "does-not-exist"))
    assert exc.value.code == "RESUME_NOT_FOUND"


def test_missing_job_and_missing_job_id(store, orchestrator):
    with pytest.raises(NotFoundError):
        run(orchestrator.optimize("nope"))
    with pytest.raises(ValidationError):
        run(orchestrator.optimize(None))


def test_override_resume_becomes_job_base(store, orchestrator, fake_ai):
    old = make_resume(store, "Old resume\n")
    new = make_resume(store, "New resume\n")
    job = make_job(store, base_resume_id=old.id)

    run(orchestrator.optimize(job.id, new.id))

    store.db.expire_all()
    job = store.get_job(job.id)
    assert job.base_resume_id == new.id
    assert "New resume" in fake_ai.calls[0][1]


@pytest.mark.parametrize("fail_on_call", [1, 2])
def test_ai_failure_leaves_no_partial_state(store, fake_ai, fail_on_call):
    class FailingAI(FakeAI):
        async def invoke(self, system_prompt, user_prompt):
            if len(self.calls) + 1 == fail_on_call:
                self.calls.append((system_prompt, user_prompt))
                raise AIServiceError("AI service call failed after 3 attempts: rate limited", attempts=3)
            return await super().invoke(system_prompt, user_prompt)

    ai = FailingAI()
    orchestrator = OptimizationOrchestrator(store, ai)
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    count = _resume_count(store)

    with pytest.raises(AIServiceError):
        run(orchestrator.optimize(job.id))

    assert len(ai.calls) == fail_on_call
    assert _resume_count(store) == count
    store.db.expire_all()
    job = store.get_job(job.id)
    assert job.status == STATUS_PENDING
    assert job.optimized_on is None
    assert job.latest_optimized_resume_id is None


def test_listener_receives_resolved_job_and_failures_are_ignored(store, fake_ai):
    bus = JobEventBus()
    received = []

    def broken(event, payload):
        raise RuntimeError("listener down")

    async def recorder(event, payload):
        received.append((event, payload))

    bus.subscribe(broken)
    bus.subscribe(recorder)
    orchestrator = OptimizationOrchestrator(store, fake_ai, notifier=bus)
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)

    result = run(orchestrator.optimize(job.id))

    assert result.updatedJob.status == STATUS_OPTIMIZED
    assert len(received) == 1
    event, payload = received[0]
    assert event == "job:updated"
    assert payload["id"] == job.id
    assert payload["status"] == STATUS_OPTIMIZED
    assert payload["latestOptimizedResume"]["keywordsAdded"] == ["SQL", "ETL"]
    assert payload["baseResume"]["id"] == base.id


def test_get_diff_requires_both_resumes(store, orchestrator):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    with pytest.raises(ValidationError) as exc:
        orchestrator.get_diff(job.id)
    assert exc.value.code == "MISSING_RESUMES_ERROR"

    run(orchestrator.optimize(job.id))
    out = orchestrator.get_diff(job.id)
    assert out.jobId == job.id
    assert out.changesSummary == "Added SQL and ETL keywords"
    assert out.keywordsAdded == ["SQL", "ETL"]
    assert out.diff.stats.additions > 0


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_commit_failure_on_reoptimize_rolls_back(store, orchestrator, fake_ai, monkeypatch):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    run(orchestrator.optimize(job.id))
    version_id = store.get_job(job.id).latest_optimized_resume_id
    before = store.get_resume(version_id).optimized_resume_text

    fake_ai.optimized = "Jane Doe\nPrincipal Data Engineer\n"
    monkeypatch.setattr(store.db, "commit", _failing_commit)
    with pytest.raises(PersistenceError):
        run(orchestrator.optimize(job.id))
    monkeypatch.undo()

    store.db.expire_all()
    job = store.get_job(job.id)
    assert job.latest_optimized_resume_id == version_id
    assert job.changes_summary == "Added SQL and ETL keywords"
    assert store.get_resume(version_id).optimized_resume_text == before


def test_commit_failure_on_first_optimize_leaves_job_pending(store, orchestrator, monkeypatch):
    base = make_resume(store)
    job = make_job(store, base_resume_id=base.id)
    count = _resume_count(store)

    monkeypatch.setattr(store.db, "commit", _failing_commit)
    with pytest.raises(PersistenceError):
        run(orchestrator.optimize(job.id))
    monkeypatch.undo()

    store.db.expire_all()
    assert _resume_count(store) == count
    job = store.get_job(job.id)
    assert job.status == STATUS_PENDING
    assert job.latest_optimized_resume_id is None
