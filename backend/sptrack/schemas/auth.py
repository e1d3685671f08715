from pydantic import BaseModel, Field, field_validator
from typing import Optional


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class PersonName(BaseModel):
    first_name: str = Field(..., max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: str = Field(..., max_length=100)
    extension_name: Optional[str] = Field(None, max_length=20)

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_required(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator('middle_name', 'extension_name')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)


class StudentRegister(PersonName):
    student_number: str = Field(..., max_length=50)
    password: str = Field(..., min_length=6)

    @field_validator('student_number')
    @classmethod
    def strip_student_number(cls, v: str) -> str:
        return _strip_required(v)


class InstructorRegister(PersonName):
    username: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6)

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        return _strip_required(v)


class StudentLogin(BaseModel):
    student_number: str
    password: str


class UsernameLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: int


class SessionResponse(BaseModel):
    user_id: int
    role: str
    name: str
