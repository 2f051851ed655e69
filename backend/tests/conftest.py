import os
import sys
from pathlib import Path

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure backend package is importable
backend_root = Path(__file__).resolve().parents[1]
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))

# Settings are read once on first import; keep the import-time engine in memory
# and never pick up real credentials.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AI_PROVIDER"] = "gemini"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["BATCH_PAUSE_SECONDS"] = "0"


class FakeAI:
    """Scripted stand-in for AIClient: rewrite calls get markers, summary calls get JSON."""

    def __init__(self, optimized="Jane Doe\nSenior Data Engineer\nBuilt SQL and ETL pipelines\n",
                 summary_json='{"headline": "Added SQL and ETL keywords", '
                              '"summary": "Reframed experience around data pipelines.", '
                              '"keywordsAdded": ["SQL", "ETL"]}'):
        self.optimized = optimized
        self.summary_json = summary_json
        self.calls = []
        self.fail_with = None

    async def invoke(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if self.fail_with is not None:
            raise self.fail_with
        if "summarizer" in system_prompt:
            return f"Here you go:\n{self.summary_json}\n"
        return f"Sure!\n---START_OPTIMIZED---\n{self.optimized}\n---END_OPTIMIZED---\nGood luck."


@pytest.fixture
def engine(tmp_path):
    from resume_optimizer import db
    import resume_optimizer.models  # noqa: F401

    test_db_path = tmp_path / "test.db"
    eng = create_engine(f"sqlite:///{test_db_path}", connect_args={"check_same_thread": False})
    db.Base.metadata.create_all(bind=eng)
    return eng


@pytest.fixture
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    from resume_optimizer.store import JobStore
    return JobStore(db_session)


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def client(engine, fake_ai, tmp_path, monkeypatch):
    """FastAPI TestClient with an isolated SQLite DB, files dir and fake AI."""
    files_dir = tmp_path / "files"
    files_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("FILES_DIR", str(files_dir))

    from resume_optimizer import db, deps
    from resume_optimizer.batch import BatchRunner
    from resume_optimizer.config import get_settings
    from resume_optimizer.main import app
    from resume_optimizer.rate_limiter import ClientRateLimiter

    get_settings.cache_clear()
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    def override_batch_runner(orchestrator=Depends(deps.get_orchestrator)):
        return BatchRunner(orchestrator, pause_seconds=0)

    app.dependency_overrides[db.get_db] = override_get_db
    app.dependency_overrides[deps.get_ai_client] = lambda: fake_ai
    app.dependency_overrides[deps.get_batch_runner] = override_batch_runner
    app.state.general_limiter = ClientRateLimiter(100, 900)
    app.state.optimize_limiter = ClientRateLimiter(20, 900)
    yield TestClient(app)
    app.dependency_overrides.clear()
    get_settings.cache_clear()


def make_resume(store, text="Jane Doe\nData Engineer\nBuilt pipelines\n"):
    return store.create_resume(text)


def make_job(store, base_resume_id=None, **overrides):
    fields = dict(
        client_name="Jane Doe",
        company_name="Acme",
        position="Data Engineer",
        job_description="We need SQL and ETL experience.",
        base_resume_id=base_resume_id,
    )
    fields.update(overrides)
    return store.create_job(**fields)
