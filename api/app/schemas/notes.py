from datetime import datetime
from typing import Literal

from pydantic import BaseModel

ClassLevel = Literal["8", "9", "10", "11", "12"]


class NoteOut(BaseModel):
    id: int
    slug: str
    title: str
    subject: str
    class_level: ClassLevel
    description: str | None = None
    author: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    file_type: str | None = None
    download_count: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
