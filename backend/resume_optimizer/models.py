from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON
from .db import Base
import uuid

STATUS_PENDING = "Pending Optimization"
STATUS_OPTIMIZED = "Optimized"
JOB_STATUSES = (STATUS_PENDING, STATUS_OPTIMIZED)

def uid() -> str:
    return str(uuid.uuid4())

class Job(Base):
    __tablename__ = "jobs"
    id = Column(String, primary_key=True, default=uid)
    client_name = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    position = Column(String, nullable=False)
    job_description = Column(Text, nullable=False)
    application_link = Column(String, nullable=True)
    status = Column(String, index=True, default=STATUS_PENDING)  # Pending Optimization|Optimized
    base_resume_id = Column(String, nullable=True)
    latest_optimized_resume_id = Column(String, nullable=True)
    optimized_on = Column(DateTime(timezone=True), nullable=True)
    changes_summary = Column(String, nullable=True)  # headline of the latest change summary
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class ResumeVersion(Base):
    __tablename__ = "resume_versions"
    id = Column(String, primary_key=True, default=uid)
    owner_job_id = Column(String, index=True, nullable=True)  # set when created by an optimization
    base_resume_text = Column(Text, default="")
    optimized_resume_text = Column(Text, nullable=True)
    files = Column(SQLiteJSON, nullable=True)  # [{filename, path, mimeType, uploadedAt}]
    keywords_added = Column(SQLiteJSON, nullable=True)  # list[str] from the latest optimization
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
