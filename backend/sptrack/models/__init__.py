from sptrack.models.people import Student, Instructor, Admin
from sptrack.models.catalog import Subject
from sptrack.models.assignment import InstructorSubject, Section, StudentSection
from sptrack.models.upload import Upload, UploadType

__all__ = [
    "Student",
    "Instructor",
    "Admin",
    "Subject",
    "InstructorSubject",
    "Section",
    "StudentSection",
    "Upload",
    "UploadType",
]
