"""
Assignment Service - instructor offerings, sections and enrollment

Handles:
- InstructorSubject links (an instructor teaching a subject in a term)
- Sections under a link, unique by name within it
- Student enrollment in sections

Every mutation is gated by the authorization engine against the chain
Section -> InstructorSubject -> instructor_id. Deletes run children first
(enrollments, sections, link) and end with the subject prune check, all in
one transaction.
"""

from sqlalchemy import select, func
from typing import Any, Dict, List, Optional, Tuple

from sptrack.core.exceptions import ConflictError, NotFoundError
from sptrack.core.logging_config import get_logger
from sptrack.models import InstructorSubject, Section, StudentSection, Student, Subject, Upload
from sptrack.modules.auth.identity import Actor
from sptrack.modules.authz import decide_instructor_subject, decide_section, enforce
from sptrack.schemas.assignment import InstructorSubjectCreate, TermUpdate
from sptrack.services.base import BaseService
from sptrack.services.catalog_service import CatalogService

logger = get_logger(__name__)


def _link_dict(link: InstructorSubject, section_count: int = 0) -> Dict[str, Any]:
    return {
        "instructor_id": link.instructor_id,
        "subject_id": link.subject_id,
        "title": link.subject.title if link.subject else "",
        "semester": link.semester,
        "year": link.year,
        "assigned_at": link.assigned_at,
        "section_count": section_count,
    }


def _section_dict(section: Section, student_count: int = 0) -> Dict[str, Any]:
    return {
        "id": section.id,
        "name": section.name,
        "instructor_id": section.instructor_id,
        "subject_id": section.subject_id,
        "student_count": student_count,
    }


class AssignmentService(BaseService):
    """Service for the instructor/subject/section/enrollment graph"""

    def __init__(self, db):
        super().__init__(db)
        self.catalog = CatalogService(db)

    # ==================== INSTRUCTOR SUBJECTS ====================

    async def _get_link(self, instructor_id: int, subject_id: int) -> Optional[InstructorSubject]:
        return await self.db.get(InstructorSubject, (instructor_id, subject_id))

    async def get_instructor_subject(self, actor: Actor, subject_id: int) -> InstructorSubject:
        """Get the actor's own link to a subject; another instructor's link is not disclosed"""
        link = await self._get_link(actor.id, subject_id)
        enforce(decide_instructor_subject(actor, link))
        return link

    async def list_instructor_subjects(self, actor: Actor) -> List[Dict[str, Any]]:
        """Own links with subject title, term and number of sections, newest first"""
        section_counts = (
            select(Section.subject_id, func.count(Section.id).label("section_count"))
            .where(Section.instructor_id == actor.id)
            .group_by(Section.subject_id)
            .subquery()
        )
        result = await self.db.execute(
            select(InstructorSubject, func.coalesce(section_counts.c.section_count, 0))
            .outerjoin(section_counts, section_counts.c.subject_id == InstructorSubject.subject_id)
            .where(InstructorSubject.instructor_id == actor.id)
            .order_by(InstructorSubject.assigned_at.desc(), InstructorSubject.subject_id)
        )
        return [_link_dict(link, count) for link, count in result.all()]

    async def create_instructor_subject(
        self,
        actor: Actor,
        data: InstructorSubjectCreate
    ) -> Dict[str, Any]:
        """
        Link the actor to a subject for a term.

        The subject is given either by id (must exist) or by title, in which
        case it is found case-insensitively or created.

        Raises:
            NotFoundError: subject_id does not exist
            ConflictError: the actor already teaches this subject
        """
        link = InstructorSubject(instructor_id=actor.id, semester=data.semester, year=data.year)
        enforce(decide_instructor_subject(actor, link))

        if data.subject_id is not None:
            subject = await self.catalog.get_subject(data.subject_id)
        else:
            subject = await self.catalog.find_or_create_subject_by_title(data.title)

        if await self._get_link(actor.id, subject.subject_id):
            raise ConflictError("This subject is already assigned to you", field="subject")

        link.subject_id = subject.subject_id
        link.subject = subject
        self.db.add(link)
        await self._commit("This subject is already assigned to you", field="subject")
        await self.db.refresh(link)

        logger.info(f"Instructor {actor.id} assigned to subject {subject.subject_id} ({data.semester} {data.year})")
        return _link_dict(link)

    async def update_term(self, actor: Actor, subject_id: int, data: TermUpdate) -> Dict[str, Any]:
        link = await self.get_instructor_subject(actor, subject_id)
        link.semester = data.semester
        link.year = data.year
        await self.db.commit()
        await self.db.refresh(link)

        count = await self.db.scalar(
            select(func.count(Section.id)).where(
                Section.instructor_id == actor.id, Section.subject_id == subject_id
            )
        )
        return _link_dict(link, count or 0)

    async def delete_sections_where(self, *criteria) -> Tuple[int, int]:
        """
        Delete sections matching criteria together with their enrollments.

        Runs inside the caller's transaction.

        Returns:
            (sections deleted, enrollments deleted)
        """
        section_ids = select(Section.id).where(*criteria)
        enrollments = await self._delete_rows(StudentSection, StudentSection.section_id.in_(section_ids))
        sections = await self._delete_rows(Section, *criteria)
        return sections, enrollments

    async def delete_instructor_subject(self, actor: Actor, subject_id: int) -> Dict[str, Any]:
        """
        Unlink the actor from a subject.

        Removes the link's sections and their enrollments, then the link,
        then the subject itself if nothing else references it.

        Returns:
            Cascade report
        """
        link = await self.get_instructor_subject(actor, subject_id)

        try:
            sections, enrollments = await self.delete_sections_where(
                Section.instructor_id == actor.id, Section.subject_id == subject_id
            )
            await self.db.delete(link)
            await self.db.flush()
            pruned = await self.catalog.delete_subject_if_orphaned(subject_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.log_cascade(
            f"instructor_subject:{actor.id}:{subject_id}",
            {
                "student_sections": enrollments,
                "sections": sections,
                "instructor_subjects": 1,
                "subjects": int(pruned),
            }
        )
        return {
            "subject_id": subject_id,
            "sections_deleted": sections,
            "enrollments_deleted": enrollments,
            "subject_pruned": pruned,
        }

    # ==================== SECTIONS ====================

    async def _ensure_unique_name(
        self,
        instructor_id: int,
        subject_id: int,
        name: str,
        exclude_id: Optional[int] = None
    ) -> None:
        query = select(Section.id).where(
            Section.instructor_id == instructor_id,
            Section.subject_id == subject_id,
            Section.name == name,
        )
        if exclude_id is not None:
            query = query.where(Section.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError("A section with this name already exists for this subject", field="name")

    async def _count_students(self, section_id: int) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(StudentSection)
            .where(StudentSection.section_id == section_id)
        ) or 0

    async def _load_section(self, actor: Actor, section_id: int) -> Section:
        section = await self.db.get(Section, section_id)
        enforce(decide_section(actor, section))
        return section

    async def list_sections(self, actor: Actor, subject_id: int) -> List[Dict[str, Any]]:
        """Own sections under a subject with enrolled counts, ordered by name"""
        await self.get_instructor_subject(actor, subject_id)

        result = await self.db.execute(
            select(Section, func.count(StudentSection.student_id))
            .outerjoin(StudentSection, StudentSection.section_id == Section.id)
            .where(Section.instructor_id == actor.id, Section.subject_id == subject_id)
            .group_by(Section.id)
            .order_by(Section.name)
        )
        return [_section_dict(section, count) for section, count in result.all()]

    async def create_section(self, actor: Actor, subject_id: int, name: str) -> Dict[str, Any]:
        link = await self.get_instructor_subject(actor, subject_id)
        name = name.strip()
        await self._ensure_unique_name(link.instructor_id, link.subject_id, name)

        section = Section(name=name, instructor_id=link.instructor_id, subject_id=link.subject_id)
        self.db.add(section)
        await self._commit("A section with this name already exists for this subject", field="name")
        await self.db.refresh(section)

        logger.info(f"Created section {section.id} '{section.name}' under {link.instructor_id}:{link.subject_id}")
        return _section_dict(section)

    async def get_section(self, actor: Actor, section_id: int) -> Dict[str, Any]:
        section = await self._load_section(actor, section_id)
        return _section_dict(section, await self._count_students(section.id))

    async def rename_section(self, actor: Actor, section_id: int, name: str) -> Dict[str, Any]:
        section = await self._load_section(actor, section_id)
        name = name.strip()
        await self._ensure_unique_name(section.instructor_id, section.subject_id, name, exclude_id=section.id)

        section.name = name
        await self._commit("A section with this name already exists for this subject", field="name")
        await self.db.refresh(section)
        return _section_dict(section, await self._count_students(section.id))

    async def delete_section(self, actor: Actor, section_id: int) -> Dict[str, Any]:
        section = await self._load_section(actor, section_id)

        try:
            enrollments = await self._delete_rows(StudentSection, StudentSection.section_id == section.id)
            await self.db.delete(section)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.log_cascade(
            f"section:{section_id}",
            {"student_sections": enrollments, "sections": 1}
        )
        return {"section_id": section_id, "enrollments_deleted": enrollments}

    # ==================== ENROLLMENT ====================

    async def enroll(self, actor: Actor, section_id: int, student_id: int) -> StudentSection:
        """
        Enroll a student in one of the actor's sections.

        Raises:
            NotFoundError: section or student does not exist
            ForbiddenError: section belongs to another instructor
            ConflictError: student already enrolled
        """
        section = await self._load_section(actor, section_id)

        if not await self.db.get(Student, student_id):
            raise NotFoundError("Student")

        if await self.db.get(StudentSection, (section.id, student_id)):
            raise ConflictError("Student is already enrolled in this section")

        enrollment = StudentSection(section_id=section.id, student_id=student_id)
        self.db.add(enrollment)
        await self._commit("Student is already enrolled in this section")
        await self.db.refresh(enrollment)

        logger.info(f"Enrolled student {student_id} in section {section.id}")
        return enrollment

    async def unenroll(self, actor: Actor, section_id: int, student_id: int) -> None:
        section = await self._load_section(actor, section_id)

        enrollment = await self.db.get(StudentSection, (section.id, student_id))
        if not enrollment:
            raise NotFoundError("Enrollment")

        await self.db.delete(enrollment)
        await self.db.commit()
        logger.info(f"Removed student {student_id} from section {section.id}")

    async def list_students_in_section(self, actor: Actor, section_id: int) -> List[Student]:
        section = await self._load_section(actor, section_id)

        result = await self.db.execute(
            select(Student)
            .join(StudentSection, StudentSection.student_id == Student.id)
            .where(StudentSection.section_id == section.id)
            .order_by(Student.last_name, Student.first_name)
        )
        return list(result.scalars().all())

    # ==================== STUDENT / DASHBOARD VIEWS ====================

    async def list_enrolled_subjects(self, actor: Actor) -> List[Dict[str, Any]]:
        """Sections the student is enrolled in, with the subject and term of each"""
        result = await self.db.execute(
            select(Section, InstructorSubject.semester, InstructorSubject.year, Subject.title)
            .join(StudentSection, StudentSection.section_id == Section.id)
            .join(
                InstructorSubject,
                (InstructorSubject.instructor_id == Section.instructor_id)
                & (InstructorSubject.subject_id == Section.subject_id)
            )
            .join(Subject, Subject.subject_id == Section.subject_id)
            .where(StudentSection.student_id == actor.id)
            .order_by(Subject.title, Section.name)
        )
        return [
            {
                "section_id": section.id,
                "section_name": section.name,
                "subject_id": section.subject_id,
                "instructor_id": section.instructor_id,
                "title": title,
                "semester": semester,
                "year": year,
            }
            for section, semester, year, title in result.all()
        ]

    async def dashboard_stats(self, actor: Actor) -> Dict[str, List[Dict[str, Any]]]:
        """Students and uploads (by enrolled students) per own section"""
        students = await self.db.execute(
            select(Section.id, Section.name, func.count(StudentSection.student_id))
            .outerjoin(StudentSection, StudentSection.section_id == Section.id)
            .where(Section.instructor_id == actor.id)
            .group_by(Section.id, Section.name)
            .order_by(Section.name, Section.id)
        )
        uploads = await self.db.execute(
            select(Section.id, func.count(Upload.id))
            .join(StudentSection, StudentSection.section_id == Section.id)
            .join(Upload, Upload.student_id == StudentSection.student_id)
            .where(Section.instructor_id == actor.id)
            .group_by(Section.id)
        )
        upload_counts = dict(uploads.all())

        students_per_section = []
        uploads_per_section = []
        for section_id, name, student_count in students.all():
            students_per_section.append({"name": name, "value": student_count})
            uploads_per_section.append({"name": name, "value": upload_counts.get(section_id, 0)})

        return {
            "students_per_section": students_per_section,
            "uploads_per_section": uploads_per_section,
        }

