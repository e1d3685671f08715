from sqlalchemy import Column, String, Integer

from sptrack.core.database import Base


class Subject(Base):
    """Catalog subject, shared by every instructor that teaches it"""
    __tablename__ = "subjects"

    subject_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), unique=True, nullable=False)

    def __repr__(self):
        return f"<Subject {self.title}>"
