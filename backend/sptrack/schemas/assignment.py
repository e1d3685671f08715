from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime


def _strip_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class InstructorSubjectCreate(BaseModel):
    """Link the calling instructor to a subject, by existing id or by title"""
    subject_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    semester: str = Field(..., max_length=50)
    year: int = Field(..., ge=1900, le=3000)

    @field_validator('semester')
    @classmethod
    def strip_semester(cls, v: str) -> str:
        return _strip_name(v)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode='after')
    def subject_reference(self):
        if self.subject_id is None and not self.title:
            raise ValueError("Either subject_id or title is required")
        return self


class TermUpdate(BaseModel):
    semester: str = Field(..., max_length=50)
    year: int = Field(..., ge=1900, le=3000)

    @field_validator('semester')
    @classmethod
    def strip_semester(cls, v: str) -> str:
        return _strip_name(v)


class InstructorSubjectResponse(BaseModel):
    instructor_id: int
    subject_id: int
    title: str
    semester: str
    year: int
    assigned_at: datetime
    section_count: int = 0


class InstructorSubjectDeleteReport(BaseModel):
    subject_id: int
    sections_deleted: int
    enrollments_deleted: int
    subject_pruned: bool


class SectionCreate(BaseModel):
    name: str = Field(..., max_length=100)

    @field_validator('name')
    @classmethod
    def strip_section_name(cls, v: str) -> str:
        return _strip_name(v)


class SectionUpdate(SectionCreate):
    pass


class SectionResponse(BaseModel):
    id: int
    name: str
    instructor_id: int
    subject_id: int
    student_count: int = 0


class EnrollRequest(BaseModel):
    student_id: int


class EnrollmentResponse(BaseModel):
    section_id: int
    student_id: int
    enrolled_at: datetime

    class Config:
        from_attributes = True


class ChartPoint(BaseModel):
    name: str
    value: int


class DashboardStats(BaseModel):
    students_per_section: List[ChartPoint]
    uploads_per_section: List[ChartPoint]
