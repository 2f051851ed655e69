"""Document-store access for jobs and resume versions over a SQLAlchemy session."""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError
from .models import Job, ResumeVersion
from .schemas import FileInfo, JobOut, Pagination, ResumeOut

logger = logging.getLogger(__name__)

# wire name -> column for fields the caller may edit directly
JOB_EDITABLE_FIELDS = {
    "clientName": "client_name",
    "companyName": "company_name",
    "position": "position",
    "jobDescription": "job_description",
    "applicationLink": "application_link",
    "baseResumeId": "base_resume_id",
}


class JobStore:
    def __init__(self, db: Session):
        self.db = db

    def _run(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Storage failure while trying to {what}: {e}")
            raise PersistenceError(f"Failed to {what}", details=str(e)) from e

    # ----- transactions -----
    def add(self, obj) -> None:
        self.db.add(obj)

    def commit(self) -> None:
        self._run("commit changes", self.db.commit)

    def rollback(self) -> None:
        self.db.rollback()

    def flush(self) -> None:
        self._run("flush changes", self.db.flush)

    def refresh(self, obj) -> None:
        self._run("reload record", self.db.refresh, obj)

    # ----- jobs -----
    def get_job(self, job_id: Optional[str]) -> Optional[Job]:
        if not job_id or not isinstance(job_id, str):
            return None
        return self._run("fetch job", self.db.get, Job, job_id)

    def _job_query(self, status: Optional[str]):
        q = self.db.query(Job)
        if status and status != "All":
            q = q.filter(Job.status == status)
        return q

    def count_jobs(self, status: Optional[str] = None) -> int:
        return self._run("count jobs", lambda: self._job_query(status).count())

    def list_jobs(self, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[List[Job], Pagination]:
        jobs = self._run(
            "fetch jobs",
            lambda: self._job_query(status).order_by(Job.created_at.desc(), Job.id)
            .offset((page - 1) * limit).limit(limit).all(),
        )
        total = self.count_jobs(status)
        pages = math.ceil(total / limit) if limit else 0
        return jobs, Pagination(page=page, limit=limit, total=total, pages=pages)

    def create_job(self, **fields) -> Job:
        job = Job(**fields)
        self.db.add(job)
        self.commit()
        self.refresh(job)
        return job

    def update_job(self, job: Job, updates: Dict[str, Any]) -> Job:
        for wire_name, value in updates.items():
            column = JOB_EDITABLE_FIELDS.get(wire_name)
            if column:
                setattr(job, column, value)
        self.commit()
        self.refresh(job)
        return job

    def delete_job(self, job: Job) -> None:
        # referenced resumes are kept
        self.db.delete(job)
        self.commit()

    # ----- resumes -----
    def get_resume(self, resume_id: Optional[str]) -> Optional[ResumeVersion]:
        if not resume_id or not isinstance(resume_id, str):
            return None
        return self._run("fetch resume", self.db.get, ResumeVersion, resume_id)

    def is_job_base(self, resume_id: str) -> bool:
        """True when some job uses this resume as its base resume."""
        return self._run(
            "check resume usage",
            lambda: self.db.query(Job).filter(Job.base_resume_id == resume_id).count() > 0,
        )

    def list_resumes(self) -> List[ResumeVersion]:
        return self._run(
            "fetch resumes",
            lambda: self.db.query(ResumeVersion).order_by(ResumeVersion.created_at.desc(), ResumeVersion.id).all(),
        )

    def create_resume(self, base_resume_text: str, files: Optional[List[dict]] = None,
                      owner_job_id: Optional[str] = None) -> ResumeVersion:
        resume = ResumeVersion(base_resume_text=base_resume_text, files=files or [], owner_job_id=owner_job_id)
        self.db.add(resume)
        self.commit()
        self.refresh(resume)
        return resume

    def update_resume(self, resume: ResumeVersion, base_resume_text: Optional[str] = None,
                      optimized_resume_text: Optional[str] = None) -> ResumeVersion:
        if base_resume_text is not None:
            resume.base_resume_text = base_resume_text
        if optimized_resume_text is not None:
            resume.optimized_resume_text = optimized_resume_text
        self.commit()
        self.refresh(resume)
        return resume

    def delete_resume(self, resume: ResumeVersion) -> None:
        self.db.delete(resume)
        self.commit()


def resume_out(r: Optional[ResumeVersion]) -> Optional[ResumeOut]:
    if r is None:
        return None
    return ResumeOut(
        id=r.id,
        ownerJob=r.owner_job_id,
        baseResumeText=r.base_resume_text or "",
        optimizedResumeText=r.optimized_resume_text,
        files=[FileInfo(**f) for f in (r.files or [])],
        keywordsAdded=list(r.keywords_added or []),
        createdAt=r.created_at,
        updatedAt=r.updated_at,
    )


def job_out(store: JobStore, j: Job) -> JobOut:
    """Job with its base and latest optimized resumes resolved."""
    return JobOut(
        id=j.id,
        clientName=j.client_name,
        companyName=j.company_name,
        position=j.position,
        jobDescription=j.job_description,
        applicationLink=j.application_link,
        status=j.status,
        baseResume=resume_out(store.get_resume(j.base_resume_id)),
        latestOptimizedResume=resume_out(store.get_resume(j.latest_optimized_resume_id)),
        optimizedOn=j.optimized_on,
        changesSummary=j.changes_summary,
        createdAt=j.created_at,
        updatedAt=j.updated_at,
    )
