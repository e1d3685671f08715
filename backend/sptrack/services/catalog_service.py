"""
Catalog Service - the shared subject list

Subjects are not owned by any instructor. Admins curate the list; instructors
create subjects implicitly by linking to a title that does not exist yet, and
a subject disappears again when its last link goes away and nothing was
uploaded against it.
"""

from sqlalchemy import select, func
from typing import List, Optional

from sptrack.core.exceptions import NotFoundError, ConflictError
from sptrack.core.logging_config import get_logger
from sptrack.models import Subject, InstructorSubject, Section, StudentSection, Upload
from sptrack.modules.auth.identity import Actor
from sptrack.modules.authz import decide_subject_catalog, enforce
from sptrack.services.base import BaseService

logger = get_logger(__name__)


class CatalogService(BaseService):
    """Service for the subject catalog"""

    # ==================== READ ====================

    async def list_subjects(self) -> List[Subject]:
        result = await self.db.execute(select(Subject).order_by(Subject.subject_id))
        return list(result.scalars().all())

    async def get_subject(self, subject_id: int) -> Subject:
        subject = await self.db.get(Subject, subject_id)
        if not subject:
            raise NotFoundError("Subject")
        return subject

    async def find_by_title(self, title: str) -> Optional[Subject]:
        """Case-insensitive title lookup"""
        result = await self.db.execute(
            select(Subject).where(func.lower(Subject.title) == title.strip().lower())
        )
        return result.scalars().first()

    # ==================== ADMIN CRUD ====================

    async def create_subject(self, actor: Actor, title: str) -> Subject:
        """
        Create a subject (Admin only)

        Raises:
            ForbiddenError: actor is not an admin
            ConflictError: a subject with this title (any case) exists
        """
        enforce(decide_subject_catalog(actor))

        title = title.strip()
        if await self.find_by_title(title):
            raise ConflictError("A subject with this title already exists", field="title")

        subject = Subject(title=title)
        self.db.add(subject)
        await self._commit("A subject with this title already exists", field="title")
        await self.db.refresh(subject)

        logger.info(f"Created subject {subject.subject_id} '{subject.title}'")
        return subject

    async def rename_subject(self, actor: Actor, subject_id: int, title: str) -> Subject:
        enforce(decide_subject_catalog(actor))

        subject = await self.get_subject(subject_id)
        title = title.strip()
        existing = await self.find_by_title(title)
        if existing and existing.subject_id != subject.subject_id:
            raise ConflictError("A subject with this title already exists", field="title")

        subject.title = title
        await self._commit("A subject with this title already exists", field="title")
        await self.db.refresh(subject)
        return subject

    async def delete_subject(self, actor: Actor, subject_id: int) -> dict:
        """
        Delete a subject and everything hanging off it (Admin only).

        Refused while any upload references the subject. Otherwise removes,
        in order: enrollments in its sections, the sections, the instructor
        links, then the subject, in one transaction.

        Returns:
            Counts of removed rows per table
        """
        enforce(decide_subject_catalog(actor))
        subject = await self.get_subject(subject_id)

        if await self._count_uploads(subject_id) > 0:
            raise ConflictError("Cannot delete a subject that has uploads referencing it")

        try:
            section_ids = select(Section.id).where(Section.subject_id == subject_id)
            enrollments = await self._delete_rows(
                StudentSection, StudentSection.section_id.in_(section_ids)
            )
            sections = await self._delete_rows(Section, Section.subject_id == subject_id)
            links = await self._delete_rows(InstructorSubject, InstructorSubject.subject_id == subject_id)
            await self.db.delete(subject)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        removed = {
            "student_sections": enrollments,
            "sections": sections,
            "instructor_subjects": links,
            "subjects": 1,
        }
        logger.log_cascade(f"subject:{subject_id}", removed)
        return removed

    # ==================== ORPHAN PRUNING ====================

    async def delete_subject_if_orphaned(self, subject_id: int) -> bool:
        """
        Delete the subject when no instructor link and no upload references it.

        Runs inside the caller's transaction; the caller commits.

        Returns:
            True if the subject was deleted
        """
        links = await self.db.scalar(
            select(func.count()).select_from(InstructorSubject)
            .where(InstructorSubject.subject_id == subject_id)
        )
        if links or await self._count_uploads(subject_id):
            return False

        pruned = await self._delete_rows(Subject, Subject.subject_id == subject_id) > 0
        if pruned:
            logger.info(f"Pruned orphaned subject {subject_id}")
        return pruned

    async def find_or_create_subject_by_title(self, title: str) -> Subject:
        """
        Get the subject with this title (any case), creating it if needed.

        Flushes but does not commit; used inside link creation.
        """
        subject = await self.find_by_title(title)
        if subject:
            return subject

        subject = Subject(title=title.strip())
        self.db.add(subject)
        await self.db.flush()
        logger.info(f"Created subject {subject.subject_id} '{subject.title}' on first link")
        return subject

    async def _count_uploads(self, subject_id: int) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Upload).where(Upload.subject_id == subject_id)
        ) or 0
