"""FastAPI dependency wiring. Tests swap these via ``app.dependency_overrides``."""
from fastapi import Depends
from sqlalchemy.orm import Session

from .ai_client import AIClient
from .batch import BatchRunner
from .config import get_settings
from .db import get_db
from .events import JOB_BUS, JobEventBus
from .optimizer import OptimizationOrchestrator
from .rate_limiter import TokenBucket
from .store import JobStore

_settings = get_settings()
# one bucket per process, shared by every AI client the app builds
AI_LIMITER = TokenBucket.per_minute(_settings.ai_rate_limit_per_minute, _settings.ai_rate_limit_burst)


def get_store(db: Session = Depends(get_db)) -> JobStore:
    return JobStore(db)


def get_event_bus() -> JobEventBus:
    return JOB_BUS


def get_ai_client() -> AIClient:
    return AIClient.from_settings(get_settings(), limiter=AI_LIMITER)


def get_orchestrator(store: JobStore = Depends(get_store),
                     ai: AIClient = Depends(get_ai_client),
                     bus: JobEventBus = Depends(get_event_bus)) -> OptimizationOrchestrator:
    return OptimizationOrchestrator(store, ai, notifier=bus)


def get_batch_runner(orchestrator: OptimizationOrchestrator = Depends(get_orchestrator)) -> BatchRunner:
    return BatchRunner(orchestrator, pause_seconds=get_settings().batch_pause_seconds)
