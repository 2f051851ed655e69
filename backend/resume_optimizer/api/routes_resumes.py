import os
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, UploadFile, File
from typing import List
from ..config import get_settings
from ..deps import get_store
from ..errors import NotFoundError, ValidationError
from ..schemas import ResumeIn, ResumeUpdate, ResumeOut
from ..store import JobStore, resume_out

router = APIRouter(prefix="/resumes", tags=["resumes"])

# binary formats (PDF/DOC/DOCX) are extracted upstream and posted as text
TEXT_TYPES = {"text/plain", "text/markdown"}

def _get_resume_or_404(store: JobStore, resume_id: str):
    r = store.get_resume(resume_id)
    if not r:
        raise NotFoundError("Resume not found", code="RESUME_NOT_FOUND")
    return r

@router.get("", response_model=List[ResumeOut])
def list_resumes(store: JobStore = Depends(get_store)):
    return [resume_out(r) for r in store.list_resumes()]

@router.get("/{resume_id}", response_model=ResumeOut)
def get_resume(resume_id: str, store: JobStore = Depends(get_store)):
    return resume_out(_get_resume_or_404(store, resume_id))

@router.post("", response_model=ResumeOut, status_code=201)
def create_resume(body: ResumeIn, store: JobStore = Depends(get_store)):
    files = [f.model_dump(mode="json") for f in (body.files or [])]
    r = store.create_resume(body.baseResumeText, files=files)
    return resume_out(r)

@router.post("/upload", response_model=ResumeOut, status_code=201)
async def upload_resume(file: UploadFile = File(...), store: JobStore = Depends(get_store)):
    """Store a plain-text resume file and use its contents as the base text."""
    if not file.filename:
        raise ValidationError("No file selected")
    if file.content_type not in TEXT_TYPES:
        raise ValidationError("Invalid file type. Please upload a plain text resume")

    contents = await file.read()
    try:
        text = contents.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationError("Resume file is not valid UTF-8 text")

    files_dir = get_settings().files_dir
    os.makedirs(files_dir, exist_ok=True)
    ext = os.path.splitext(file.filename)[1]
    filename = f"resume_{uuid.uuid4().hex}{ext}"
    file_path = os.path.join(files_dir, filename)
    with open(file_path, "wb") as f:
        f.write(contents)

    descriptor = {
        "filename": filename,
        "path": file_path,
        "mimeType": file.content_type,
        "uploadedAt": datetime.now(timezone.utc).isoformat(),
    }
    r = store.create_resume(text, files=[descriptor])
    return resume_out(r)

@router.put("/{resume_id}", response_model=ResumeOut)
@router.patch("/{resume_id}", response_model=ResumeOut)
def update_resume(resume_id: str, body: ResumeUpdate, store: JobStore = Depends(get_store)):
    r = _get_resume_or_404(store, resume_id)
    changes_base = body.baseResumeText is not None and body.baseResumeText != (r.base_resume_text or "")
    if changes_base and store.is_job_base(r.id):
        raise ValidationError("Resume is the base resume of a job; its baseResumeText cannot be changed",
                              code="IMMUTABLE_RESUME_ERROR")
    r = store.update_resume(r, base_resume_text=body.baseResumeText,
                            optimized_resume_text=body.optimizedResumeText)
    return resume_out(r)

@router.delete("/{resume_id}")
def delete_resume(resume_id: str, store: JobStore = Depends(get_store)):
    r = _get_resume_or_404(store, resume_id)
    store.delete_resume(r)
    return {"message": "Resume deleted successfully", "resumeId": resume_id}
