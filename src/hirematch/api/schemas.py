"""
HTTP 请求与响应模型。对外字段一律 camelCase（resumeId、matchScore、tailoredResume …）。
"""
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import Field, field_validator, model_validator

from hirematch.core.schemas import CamelModel
from hirematch.jobs.schemas import JobPosting, ScoredJob
from hirematch.resumes.schemas import ResumeDocument, ResumeType


class SyncJobsResponse(CamelModel):
    success: bool
    message: str
    created: int = 0
    updated: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)


class MatchJobsRequest(CamelModel):
    resume_id: str = Field(..., min_length=1, description="要匹配的简历 id")
    refresh: bool = Field(False, description="忽略缓存，重新打分")


class MatchJobsResponse(CamelModel):
    resume_id: str
    resume_title: str
    jobs: list[ScoredJob]
    total_jobs: int


class JobSummary(CamelModel):
    id: str
    title: str
    company: str
    location: str
    job_type: Optional[str] = None


class SingleJobMatchResponse(CamelModel):
    job_id: str
    match_score: int
    job: JobSummary


class JobListResponse(CamelModel):
    success: bool = True
    jobs: list[JobPosting]
    total: int
    limit: Optional[int] = None
    offset: Optional[int] = None
    showing: int


class SaveResumeRequest(CamelModel):
    title: Optional[str] = Field(None, max_length=200)
    content: Union[dict[str, Any], str] = Field(..., description="ResumeDocument 对象或其 JSON 字符串")
    raw_text: Optional[str] = None
    type: ResumeType = "UPLOADED"

    @field_validator("content")
    @classmethod
    def _non_empty(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("Content is required")
        return v


class SavedResumeSummary(CamelModel):
    id: str
    title: str
    type: ResumeType
    created_at: Optional[datetime] = None


class SaveResumeResponse(CamelModel):
    message: str
    resume_id: str
    resume: SavedResumeSummary


class ResumeResponse(CamelModel):
    id: str
    title: str
    type: ResumeType
    content: dict[str, Any]
    raw_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ParseResumeRequest(CamelModel):
    text: str = Field(..., min_length=1, description="简历全文")


class ResumeDocumentResponse(CamelModel):
    message: str
    resume: ResumeDocument


class GenerateResumeRequest(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: str = Field(..., min_length=1, max_length=100)
    skills: Union[list[str], str, None] = Field(None, description="技能列表或逗号分隔字符串")
    experience: Optional[str] = None

    @field_validator("skills")
    @classmethod
    def _split_skills(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class TailorResumeRequest(CamelModel):
    job_id: Optional[str] = Field(None, min_length=1)
    job_description: Optional[str] = Field(None, min_length=1)
    resume_id: Optional[str] = Field(None, min_length=1)

    @model_validator(mode="after")
    def _job_given(self):
        if not self.job_id and not self.job_description:
            raise ValueError("Either jobId or jobDescription is required")
        return self


class TailorResumeResponse(CamelModel):
    message: str = "Resume tailored successfully"
    tailored_resume: ResumeDocument


class CoverLetterRequest(CamelModel):
    job_id: str = Field(..., min_length=1)
    resume_id: Optional[str] = Field(None, min_length=1)


class CoverLetterResponse(CamelModel):
    message: str = "Cover letter generated successfully"
    cover_letter: str
