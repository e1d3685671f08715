"""
Account Models
- Student: self-registered or bulk-created by an admin
- Instructor: self-registered or created by an admin
- Admin: seeded from settings at startup
"""

from sqlalchemy import Column, String, DateTime, Integer
from datetime import datetime

from sptrack.core.database import Base


class Student(Base):
    """Student account, identified externally by student_number"""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_number = Column(String(50), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    extension_name = Column(String(20), nullable=True)  # Jr., Sr., III
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name, self.extension_name]
        return " ".join(p for p in parts if p)

    def __repr__(self):
        return f"<Student {self.student_number}>"


class Instructor(Base):
    """Instructor account"""
    __tablename__ = "instructors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    extension_name = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name, self.extension_name]
        return " ".join(p for p in parts if p)

    def __repr__(self):
        return f"<Instructor {self.username}>"


class Admin(Base):
    """Administrator account"""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    def __repr__(self):
        return f"<Admin {self.username}>"
