from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from sptrack.schemas.auth import PersonName, _strip_optional, _strip_required


class StudentResponse(BaseModel):
    id: int
    student_number: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    extension_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InstructorResponse(BaseModel):
    id: int
    username: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    extension_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile; omitted fields stay as they are"""
    first_name: Optional[str] = Field(None, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    extension_name: Optional[str] = Field(None, max_length=20)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6)

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_names(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else None

    @field_validator('middle_name', 'extension_name')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class StudentProfileUpdate(ProfileUpdate):
    student_number: Optional[str] = Field(None, max_length=50)

    @field_validator('student_number')
    @classmethod
    def strip_student_number(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else None


class InstructorProfileUpdate(ProfileUpdate):
    username: Optional[str] = Field(None, max_length=100)

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else None


# ==================== Admin ====================

class BulkStudentRow(PersonName):
    student_number: str = Field(..., max_length=50)

    @field_validator('student_number')
    @classmethod
    def strip_student_number(cls, v: str) -> str:
        return _strip_required(v)


class BulkStudentCreate(BaseModel):
    students: List[BulkStudentRow] = Field(..., min_length=1)


class BulkStudentResult(BaseModel):
    created: List[StudentResponse]
    skipped: List[str]  # student numbers that already existed


class InstructorCreate(PersonName):
    username: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6)

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        return _strip_required(v)


class InstructorUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=100)
    first_name: Optional[str] = Field(None, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    extension_name: Optional[str] = Field(None, max_length=20)

    @field_validator('username', 'first_name', 'last_name')
    @classmethod
    def strip_required(cls, v: Optional[str]) -> Optional[str]:
        return _strip_required(v) if v is not None else None

    @field_validator('middle_name', 'extension_name')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class PasswordReset(BaseModel):
    user_type: Literal["student", "instructor"]
    user_id: int
    new_password: str = Field(..., min_length=6)


class InstructorDeleteReport(BaseModel):
    instructor_id: int
    sections_deleted: int
    enrollments_deleted: int
    links_deleted: int
    subjects_pruned: int
    uploads_detached: int


class MessageResponse(BaseModel):
    message: str
