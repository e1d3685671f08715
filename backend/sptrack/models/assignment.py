"""
Assignment Graph Models
- InstructorSubject: an instructor teaching a subject in a given term
- Section: a class group under one InstructorSubject
- StudentSection: enrollment of a student in a section

Deletes through this graph are issued explicitly by the services, children
before parents, so no ORM cascades are declared here.
"""

from sqlalchemy import (
    Column, String, DateTime, Integer, ForeignKey,
    ForeignKeyConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from sptrack.core.database import Base


class InstructorSubject(Base):
    """Instructor <-> Subject link with its term"""
    __tablename__ = "instructor_subjects"

    instructor_id = Column(Integer, ForeignKey("instructors.id"), primary_key=True)
    subject_id = Column(Integer, ForeignKey("subjects.subject_id"), primary_key=True)
    semester = Column(String(50), nullable=False)  # e.g. "1st Semester"
    year = Column(Integer, nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subject = relationship("Subject", lazy="joined")

    def __repr__(self):
        return f"<InstructorSubject {self.instructor_id}:{self.subject_id}>"


class Section(Base):
    """Section under exactly one InstructorSubject"""
    __tablename__ = "sections"
    __table_args__ = (
        ForeignKeyConstraint(
            ["instructor_id", "subject_id"],
            ["instructor_subjects.instructor_id", "instructor_subjects.subject_id"],
        ),
        UniqueConstraint("instructor_id", "subject_id", "name", name="uq_section_name_per_offering"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)  # e.g. "BSCS-3A"
    instructor_id = Column(Integer, nullable=False, index=True)
    subject_id = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<Section {self.name}>"


class StudentSection(Base):
    """Enrollment of a student in a section"""
    __tablename__ = "student_sections"

    section_id = Column(Integer, ForeignKey("sections.id"), primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id"), primary_key=True)
    enrolled_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<StudentSection {self.section_id}:{self.student_id}>"
