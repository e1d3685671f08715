from pydantic import BaseModel, Field, field_validator


class SubjectCreate(BaseModel):
    title: str = Field(..., max_length=255)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Subject title must not be blank")
        return v


class SubjectUpdate(SubjectCreate):
    pass


class SubjectResponse(BaseModel):
    subject_id: int
    title: str

    class Config:
        from_attributes = True
