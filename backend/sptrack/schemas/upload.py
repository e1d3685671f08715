from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UploadUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class UploadResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    type: str
    link: str
    student_id: int
    subject_id: int
    instructor_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UploadStats(BaseModel):
    quiz: int = 0
    activity: int = 0
    exam: int = 0
    total: int = 0
