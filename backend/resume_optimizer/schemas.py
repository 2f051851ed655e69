from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime

class FileInfo(BaseModel):
    filename: str
    path: str
    mimeType: Optional[str] = None
    uploadedAt: Optional[datetime] = None

class ResumeIn(BaseModel):
    baseResumeText: str
    files: Optional[List[FileInfo]] = None

class ResumeUpdate(BaseModel):
    baseResumeText: Optional[str] = None
    optimizedResumeText: Optional[str] = None

class ResumeOut(BaseModel):
    id: str
    ownerJob: Optional[str] = None
    baseResumeText: str = ""
    optimizedResumeText: Optional[str] = None
    files: List[FileInfo] = []
    keywordsAdded: List[str] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class JobIn(BaseModel):
    clientName: str
    companyName: str
    position: str
    jobDescription: str
    applicationLink: Optional[str] = None
    baseResumeId: Optional[str] = None

class JobUpdate(BaseModel):
    # status, optimizedOn and changesSummary are owned by the optimizer
    clientName: Optional[str] = None
    companyName: Optional[str] = None
    position: Optional[str] = None
    jobDescription: Optional[str] = None
    applicationLink: Optional[str] = None
    baseResumeId: Optional[str] = None

class JobOut(BaseModel):
    id: str
    clientName: str
    companyName: str
    position: str
    jobDescription: str
    applicationLink: Optional[str] = None
    status: str
    baseResume: Optional[ResumeOut] = None
    latestOptimizedResume: Optional[ResumeOut] = None
    optimizedOn: Optional[datetime] = None
    changesSummary: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class JobList(BaseModel):
    jobs: List[JobOut]
    pagination: Pagination

# ----- Optimization -----

class ChangeSummary(BaseModel):
    headline: str
    summary: str
    keywordsAdded: List[str] = []

class DiffPart(BaseModel):
    value: str
    added: bool = False
    removed: bool = False
    count: int = 0  # number of tokens (lines or words) in the segment

class DiffStats(BaseModel):
    additions: int = 0
    deletions: int = 0
    unchanged: int = 0
    total: int = 0

class DiffResult(BaseModel):
    lineDiff: List[DiffPart]
    wordDiff: List[DiffPart]
    stats: DiffStats

class UpdatedJob(BaseModel):
    status: str
    optimizedOn: Optional[datetime] = None
    changesSummary: Optional[str] = None

class OptimizeRequest(BaseModel):
    jobId: Optional[str] = None
    resumeId: Optional[str] = None

class OptimizationResult(BaseModel):
    jobId: str
    optimizedResumeText: str
    changesSummary: ChangeSummary
    updatedJob: UpdatedJob
    diff: DiffResult

class BatchOptimizeRequest(BaseModel):
    jobIds: List[Any] = Field(default_factory=list)

class BatchItem(BaseModel):
    jobId: Any
    status: str = "success"

class BatchError(BaseModel):
    jobId: Any
    error: str

class BatchSummary(BaseModel):
    total: int
    successful: int
    failed: int

class BatchResult(BaseModel):
    message: str = "Batch optimization completed"
    results: List[BatchItem]
    errors: List[BatchError]
    summary: BatchSummary

class JobDiffOut(BaseModel):
    jobId: str
    diff: DiffResult
    changesSummary: Optional[str] = None
    keywordsAdded: List[str] = []
