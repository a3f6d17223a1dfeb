from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

JobType = Literal["government", "private"]


class JobCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    company: str = Field(..., min_length=1, max_length=255)
    job_type: JobType
    last_date: date
    description: str | None = None
    post_name: str | None = Field(default=None, max_length=255)
    qualification: str | None = None
    salary: str | None = Field(default=None, max_length=255)
    apply_link: str | None = Field(default=None, max_length=500)
    is_active: bool = True


class JobUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    company: str | None = Field(default=None, min_length=1, max_length=255)
    job_type: JobType | None = None
    last_date: date | None = None
    description: str | None = None
    post_name: str | None = Field(default=None, max_length=255)
    qualification: str | None = None
    salary: str | None = Field(default=None, max_length=255)
    apply_link: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None


class JobOut(BaseModel):
    id: int
    slug: str
    title: str
    company: str | None = None
    job_type: JobType
    last_date: date | None = None
    description: str | None = None
    post_name: str | None = None
    qualification: str | None = None
    salary: str | None = None
    apply_link: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class JobStatsOut(BaseModel):
    government: int = 0
    private: int = 0
    total: int = 0
