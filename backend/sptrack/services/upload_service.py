"""
Upload Service - student coursework documents

Handles:
- Upload creation with type/file validation and instructor attribution
- Owner-only edits and deletes
- Listings for the owning student and for instructors
- Per-type statistics
"""

from pathlib import Path
from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict, List, Optional

from sptrack.core.config import settings
from sptrack.core.exceptions import (
    InvalidFileTypeError,
    InvalidInputError,
    InvalidTypeError,
    NoInstructorsAvailableError,
    NotFoundError,
)
from sptrack.core.logging_config import get_logger
from sptrack.models import Instructor, InstructorSubject, Subject, Upload, UploadType
from sptrack.modules.auth.identity import Actor, normalize_id
from sptrack.modules.authz import (
    decide_upload_mutation,
    decide_upload_stats,
    decide_upload_view,
    enforce,
)
from sptrack.schemas.upload import UploadUpdate
from sptrack.services.base import BaseService
from sptrack.services.storage_service import BlobStore, generate_storage_key, get_blob_store

logger = get_logger(__name__)

UPLOAD_TYPES = [t.value for t in UploadType]


def normalize_upload_type(value: Optional[str]) -> str:
    """Lowercase and validate an upload type"""
    normalized = (value or "").strip().lower()
    if normalized not in UPLOAD_TYPES:
        raise InvalidTypeError(value or "", UPLOAD_TYPES)
    return normalized


def validate_file(filename: Optional[str], content_type: Optional[str]) -> None:
    """
    Accept a file when either its extension or its declared MIME type is
    on the allow-list; some clients send a generic MIME type.
    """
    if not filename:
        raise InvalidInputError("No file provided", field="file")

    extension = Path(filename).suffix.lower().lstrip(".")
    if extension in settings.ALLOWED_EXTENSIONS:
        return
    if content_type and content_type in settings.ALLOWED_MIME_TYPES:
        return
    raise InvalidFileTypeError(filename, settings.ALLOWED_EXTENSIONS)


def default_title(title: Optional[str], description: Optional[str]) -> str:
    if title and title.strip():
        return title.strip()
    if description and description.strip():
        return description.strip()[:settings.UPLOAD_TITLE_MAX_LENGTH]
    return "Untitled"


class UploadService(BaseService):
    """Service for student uploads"""

    def __init__(self, db, blob_store: Optional[BlobStore] = None):
        super().__init__(db)
        self._blob_store = blob_store

    @property
    def blob_store(self) -> BlobStore:
        if self._blob_store is None:
            self._blob_store = get_blob_store()
        return self._blob_store

    # ==================== ATTRIBUTION ====================

    async def resolve_instructor(self, subject_id: int, requested: Any = None) -> int:
        """
        Pick the instructor an upload is attributed to.

        1. the requested instructor, when it is a numeric id of an existing instructor
        2. the instructor most recently assigned to the subject
        3. the lowest-id instructor in the system

        Raises:
            NoInstructorsAvailableError: there are no instructors at all
        """
        requested_id = normalize_id(requested)
        if requested_id is not None and await self.db.get(Instructor, requested_id):
            return requested_id

        linked = await self.db.scalar(
            select(InstructorSubject.instructor_id)
            .where(InstructorSubject.subject_id == subject_id)
            .order_by(desc(InstructorSubject.assigned_at), desc(InstructorSubject.instructor_id))
            .limit(1)
        )
        if linked is not None:
            return linked

        fallback = await self.db.scalar(select(Instructor.id).order_by(Instructor.id).limit(1))
        if fallback is not None:
            logger.warning(
                f"No instructor linked to subject {subject_id}; attributing upload to instructor {fallback}",
                extra={"event_type": "upload_attribution_fallback", "subject_id": subject_id}
            )
            return fallback

        raise NoInstructorsAvailableError()

    # ==================== CREATE ====================

    async def create(
        self,
        actor: Actor,
        subject_id: int,
        upload_type: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        instructor_id: Any = None,
    ) -> Upload:
        """
        Store a document for the acting student.

        Validation and attribution happen before anything is written. If
        the subject disappears between the check and the insert, the stored
        blob is removed again and the call fails with NotFound.

        Raises:
            ForbiddenError: actor is not a student
            InvalidTypeError / InvalidFileTypeError: bad type or file
            NotFoundError: subject does not exist
            NoInstructorsAvailableError: nobody to attribute the upload to
        """
        enforce(decide_upload_mutation(actor, Upload(student_id=actor.id)))

        normalized_type = normalize_upload_type(upload_type)
        validate_file(filename, content_type)

        if not await self.db.get(Subject, subject_id):
            raise NotFoundError("Subject")

        resolved_instructor = await self.resolve_instructor(subject_id, instructor_id)

        key = generate_storage_key(filename)
        link = await self.blob_store.save(key, content, content_type)

        upload = Upload(
            title=default_title(title, description),
            description=description,
            type=normalized_type,
            link=link,
            storage_key=key,
            student_id=actor.id,
            subject_id=subject_id,
            instructor_id=resolved_instructor,
        )
        self.db.add(upload)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self.blob_store.delete(key)
            logger.warning(f"Upload insert failed for subject {subject_id}; removed stored file {key}")
            raise NotFoundError("Subject")
        await self.db.refresh(upload)

        logger.info(
            f"Student {actor.id} uploaded {normalized_type} {upload.id} for subject {subject_id}",
            extra={"event_type": "upload_created", "upload_id": upload.id, "instructor_id": resolved_instructor}
        )
        return upload

    # ==================== MUTATE ====================

    async def update(self, actor: Actor, upload_id: int, patch: UploadUpdate) -> Upload:
        upload = await self.db.get(Upload, upload_id)
        enforce(decide_upload_mutation(actor, upload))

        fields = patch.model_dump(exclude_unset=True)
        if fields.get("title") is not None:
            upload.title = fields["title"].strip() or upload.title
        if "description" in fields:
            upload.description = fields["description"]

        await self.db.commit()
        await self.db.refresh(upload)
        return upload

    async def delete(self, actor: Actor, upload_id: int) -> None:
        """Delete the record, then the stored file; a failed file removal is only logged"""
        upload = await self.db.get(Upload, upload_id)
        enforce(decide_upload_mutation(actor, upload))

        key = upload.storage_key
        await self.db.delete(upload)
        await self.db.commit()

        if not await self.blob_store.delete(key):
            logger.warning(
                f"Upload {upload_id} deleted but its file could not be removed",
                extra={"event_type": "blob_orphaned", "storage_key": key}
            )

    # ==================== READ ====================

    async def list_for_student(self, student_id: int, subject_id: Optional[int] = None) -> List[Upload]:
        """The student's own uploads, ordered by description"""
        query = select(Upload).where(Upload.student_id == student_id)
        if subject_id is not None:
            query = query.where(Upload.subject_id == subject_id)
        result = await self.db.execute(query.order_by(Upload.description, Upload.id))
        return list(result.scalars().all())

    async def list_for_viewer(
        self,
        actor: Actor,
        student_id: int,
        subject_id: Optional[int] = None
    ) -> List[Upload]:
        """A student's uploads as seen by an instructor or the student, ordered by title descending"""
        enforce(decide_upload_view(actor, student_id))

        query = select(Upload).where(Upload.student_id == student_id)
        if subject_id is not None:
            query = query.where(Upload.subject_id == subject_id)
        result = await self.db.execute(query.order_by(desc(Upload.title), Upload.id))
        return list(result.scalars().all())

    async def aggregate_stats_by_type(self, actor: Actor) -> Dict[str, int]:
        """Upload counts across the system for each type, plus the total"""
        enforce(decide_upload_stats(actor))

        result = await self.db.execute(
            select(Upload.type, func.count(Upload.id)).group_by(Upload.type)
        )
        counts = dict(result.all())
        stats = {t: counts.get(t, 0) for t in UPLOAD_TYPES}
        stats["total"] = sum(stats.values())
        return stats
