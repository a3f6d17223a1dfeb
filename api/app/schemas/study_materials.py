from datetime import datetime

from pydantic import BaseModel


class StudyMaterialOut(BaseModel):
    id: int
    post_name: str
    title: str
    description: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    file_type: str | None = None
    download_count: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
