from datetime import date, datetime

from pydantic import BaseModel


class NewsOut(BaseModel):
    id: int
    slug: str
    title: str
    content: str | None = None
    excerpt: str | None = None
    category: str = "general"
    image_url: str | None = None
    news_type: str = "general"
    status: str = "draft"
    exam_date: date | None = None
    important_dates: str | None = None
    tags: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class NewsActivePatchRequest(BaseModel):
    is_active: bool
