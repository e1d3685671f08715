from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, CheckConstraint
from datetime import datetime
import enum

from sptrack.core.database import Base


class UploadType(str, enum.Enum):
    QUIZ = "quiz"
    ACTIVITY = "activity"
    EXAM = "exam"


class Upload(Base):
    """Coursework document uploaded by a student"""
    __tablename__ = "uploads"
    __table_args__ = (
        CheckConstraint("type IN ('quiz', 'activity', 'exam')", name="ck_upload_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, index=True)  # UploadType value, lowercase

    link = Column(Text, nullable=False)  # Retrievable URI of the stored blob
    storage_key = Column(String(500), nullable=False)

    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.subject_id"), nullable=False, index=True)
    # Cleared when the attributed instructor is deleted
    instructor_id = Column(Integer, ForeignKey("instructors.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Upload {self.id} {self.type}>"
