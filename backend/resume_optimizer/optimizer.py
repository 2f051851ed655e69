"""
Optimization orchestrator.
Drives a job from Pending Optimization to Optimized: rewrite the resume through
the AI client, summarize the changes, persist the optimized version and the job
update in one commit, notify listeners and return the diff.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Tuple

from .diff_service import compute_diff
from .errors import EmptyContentError, NotFoundError, ValidationError
from .events import JOB_UPDATED, JobEventBus
from .models import Job, ResumeVersion, STATUS_OPTIMIZED, uid
from .prompts import (
    OPTIMIZATION_SYSTEM_PROMPT, CHANGES_SUMMARY_SYSTEM_PROMPT,
    build_optimization_prompt, build_changes_summary_prompt,
)
from .response_parser import extract_optimized_text, extract_change_summary
from .schemas import ChangeSummary, JobDiffOut, OptimizationResult, UpdatedJob
from .store import JobStore, job_out

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def invoke(self, system_prompt: str, user_prompt: str) -> str: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def has_text(text: Optional[str]) -> bool:
    return bool(text and text.strip())


class OptimizationOrchestrator:
    def __init__(self, store: JobStore, ai: TextGenerator, notifier: Optional[JobEventBus] = None,
                 now: Callable[[], datetime] = utcnow):
        self.store = store
        self.ai = ai
        self.notifier = notifier
        self._now = now

    # ----- AI steps -----
    async def rewrite(self, job_description: str, base_resume_text: str) -> str:
        raw = await self.ai.invoke(
            OPTIMIZATION_SYSTEM_PROMPT,
            build_optimization_prompt(job_description, base_resume_text),
        )
        return extract_optimized_text(raw)

    async def summarize(self, base_resume_text: str, optimized_resume_text: str) -> ChangeSummary:
        raw = await self.ai.invoke(
            CHANGES_SUMMARY_SYSTEM_PROMPT,
            build_changes_summary_prompt(base_resume_text, optimized_resume_text),
        )
        return extract_change_summary(raw)

    async def generate(self, job: Job, base_resume_text: str) -> Tuple[str, ChangeSummary]:
        # AI errors propagate untouched; nothing has been written yet
        optimized = await self.rewrite(job.job_description or "", base_resume_text)
        summary = await self.summarize(base_resume_text, optimized)
        return optimized, summary

    # ----- resolution -----
    def _require_job(self, job_id: Optional[str]) -> Job:
        if not job_id:
            raise ValidationError("Missing jobId")
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found", code="JOB_NOT_FOUND")
        return job

    def resolve_resume(self, job: Job, resume_id: Optional[str] = None) -> ResumeVersion:
        if resume_id:
            resume = self.store.get_resume(resume_id)
            if resume is None:
                raise ValidationError("Resume not found", code="RESUME_NOT_FOUND",
                                      details=f"resumeId {resume_id} does not exist")
            return resume
        resume = self.store.get_resume(job.base_resume_id)
        if resume is None:
            raise NotFoundError("No resume associated with job", code="NO_RESUME_ERROR",
                                details="Job must have a baseResume or provide resumeId")
        return resume

    # ----- persistence -----
    def commit_optimization(self, job: Job, base_resume_text: str, optimized_text: str,
                            summary: ChangeSummary, base_resume_id: Optional[str] = None) -> ResumeVersion:
        """Write the optimized version and the job update as one commit."""
        version = self.store.get_resume(job.latest_optimized_resume_id)
        if version is not None:
            version.optimized_resume_text = optimized_text
            version.keywords_added = list(summary.keywordsAdded)
        else:
            version = ResumeVersion(
                id=uid(),
                owner_job_id=job.id,
                base_resume_text=base_resume_text,
                optimized_resume_text=optimized_text,
                keywords_added=list(summary.keywordsAdded),
                files=[],
            )
            self.store.add(version)

        job.status = STATUS_OPTIMIZED
        job.optimized_on = self._now()
        job.changes_summary = summary.headline
        job.latest_optimized_resume_id = version.id
        if base_resume_id and base_resume_id != job.base_resume_id:
            job.base_resume_id = base_resume_id

        self.store.commit()
        self.store.refresh(job)
        self.store.refresh(version)
        return version

    async def notify(self, job: Job) -> None:
        if self.notifier is None:
            return
        payload = job_out(self.store, job).model_dump(mode="json")
        await self.notifier.publish(JOB_UPDATED, payload)

    # ----- operations -----
    async def optimize(self, job_id: Optional[str], resume_id: Optional[str] = None) -> OptimizationResult:
        job = self._require_job(job_id)
        resume = self.resolve_resume(job, resume_id)
        base_text = resume.base_resume_text or ""
        if not has_text(base_text):
            raise EmptyContentError("Resume has no text content")

        logger.info(f"Optimizing resume {resume.id} for job {job.id}")
        optimized_text, summary = await self.generate(job, base_text)
        self.commit_optimization(job, base_text, optimized_text, summary,
                                 base_resume_id=resume.id if resume_id else None)
        logger.info(f"Job {job.id} optimized: {summary.headline}")

        await self.notify(job)
        return OptimizationResult(
            jobId=job.id,
            optimizedResumeText=optimized_text,
            changesSummary=summary,
            updatedJob=UpdatedJob(status=job.status, optimizedOn=job.optimized_on,
                                  changesSummary=job.changes_summary),
            diff=compute_diff(base_text, optimized_text),
        )

    async def optimize_stored(self, job_id: str) -> Job:
        """Batch path: the job's own base resume only, no override."""
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found", code="JOB_NOT_FOUND")
        resume = self.store.get_resume(job.base_resume_id)
        if resume is None or not has_text(resume.base_resume_text):
            raise EmptyContentError("No resume text available")

        base_text = resume.base_resume_text
        optimized_text, summary = await self.generate(job, base_text)
        self.commit_optimization(job, base_text, optimized_text, summary)
        await self.notify(job)
        return job

    def get_diff(self, job_id: str) -> JobDiffOut:
        job = self._require_job(job_id)
        base = self.store.get_resume(job.base_resume_id)
        optimized = self.store.get_resume(job.latest_optimized_resume_id)
        if base is None or optimized is None:
            raise ValidationError("Job does not have both base and optimized resumes",
                                  code="MISSING_RESUMES_ERROR")
        return JobDiffOut(
            jobId=job.id,
            diff=compute_diff(base.base_resume_text or "", optimized.optimized_resume_text or ""),
            changesSummary=job.changes_summary,
            keywordsAdded=list(optimized.keywords_added or []),
        )
