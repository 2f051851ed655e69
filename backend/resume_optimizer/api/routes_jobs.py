from fastapi import APIRouter, Depends, Query
from typing import Optional
from ..deps import get_store, get_event_bus
from ..errors import NotFoundError, ValidationError
from ..events import JobEventBus, JOB_CREATED, JOB_UPDATED, JOB_DELETED
from ..models import STATUS_PENDING, JOB_STATUSES
from ..schemas import JobIn, JobUpdate, JobOut, JobList
from ..store import JobStore, job_out

router = APIRouter(prefix="/jobs", tags=["jobs"])

REQUIRED_FIELDS = ("clientName", "companyName", "position", "jobDescription")

def _get_job_or_404(store: JobStore, job_id: str):
    j = store.get_job(job_id)
    if not j:
        raise NotFoundError("Job not found", code="JOB_NOT_FOUND")
    return j

@router.get("", response_model=JobList)
def list_jobs(status: Optional[str] = None,
              page: int = Query(1, ge=1),
              limit: int = Query(20, ge=1, le=100),
              store: JobStore = Depends(get_store)):
    if status and status != "All" and status not in JOB_STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    jobs, pagination = store.list_jobs(status=status, page=page, limit=limit)
    return JobList(jobs=[job_out(store, j) for j in jobs], pagination=pagination)

@router.get("/{job_id}", response_model=JobOut)
def get_job(job_id: str, store: JobStore = Depends(get_store)):
    return job_out(store, _get_job_or_404(store, job_id))

@router.post("", response_model=JobOut, status_code=201)
async def create_job(body: JobIn, store: JobStore = Depends(get_store),
                     bus: JobEventBus = Depends(get_event_bus)):
    missing = [f for f in REQUIRED_FIELDS if not getattr(body, f).strip()]
    if missing:
        raise ValidationError("Missing required fields",
                              details=f"{', '.join(missing)} must not be empty")
    if body.baseResumeId and not store.get_resume(body.baseResumeId):
        raise NotFoundError("Base resume not found", code="RESUME_NOT_FOUND")

    j = store.create_job(
        client_name=body.clientName.strip(),
        company_name=body.companyName.strip(),
        position=body.position.strip(),
        job_description=body.jobDescription,
        application_link=(body.applicationLink or "").strip() or None,
        base_resume_id=body.baseResumeId or None,
        status=STATUS_PENDING,
    )
    out = job_out(store, j)
    await bus.publish(JOB_CREATED, out.model_dump(mode="json"))
    return out

@router.put("/{job_id}", response_model=JobOut)
@router.patch("/{job_id}", response_model=JobOut)
async def update_job(job_id: str, body: JobUpdate, store: JobStore = Depends(get_store),
                     bus: JobEventBus = Depends(get_event_bus)):
    j = _get_job_or_404(store, job_id)
    updates = body.model_dump(exclude_unset=True)
    for f in REQUIRED_FIELDS:
        if f in updates and not (updates[f] or "").strip():
            raise ValidationError(f"{f} must not be empty")
    if updates.get("baseResumeId") and not store.get_resume(updates["baseResumeId"]):
        raise NotFoundError("Base resume not found", code="RESUME_NOT_FOUND")
    j = store.update_job(j, updates)
    out = job_out(store, j)
    await bus.publish(JOB_UPDATED, out.model_dump(mode="json"))
    return out

@router.delete("/{job_id}")
async def delete_job(job_id: str, store: JobStore = Depends(get_store),
                     bus: JobEventBus = Depends(get_event_bus)):
    j = _get_job_or_404(store, job_id)
    store.delete_job(j)
    await bus.publish(JOB_DELETED, {"jobId": job_id})
    return {"message": "Job deleted successfully", "jobId": job_id}
