"""
Account Service - students, instructors and admins

Handles:
- Self-registration and credential checks for each role
- Profile reads and updates, including password changes
- Admin account management: bulk student creation, instructor CRUD,
  password resets and deletes
"""

from sqlalchemy import select, func, or_
from typing import Any, Dict, List, Optional, Tuple, Union

from sptrack.core.config import settings
from sptrack.core.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from sptrack.core.logging_config import get_logger
from sptrack.core.security import get_password_hash, verify_password
from sptrack.models import Admin, Instructor, InstructorSubject, Section, Student, StudentSection, Upload
from sptrack.modules.auth.identity import Actor, Role
from sptrack.modules.authz import decide_accounts, decide_roster, enforce
from sptrack.schemas.accounts import (
    BulkStudentRow,
    InstructorCreate,
    InstructorProfileUpdate,
    InstructorUpdate,
    StudentProfileUpdate,
)
from sptrack.schemas.auth import InstructorRegister, StudentRegister
from sptrack.services.assignment_service import AssignmentService
from sptrack.services.base import BaseService
from sptrack.services.catalog_service import CatalogService

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def default_student_password(student_number: str, last_name: str) -> str:
    """Initial password for admin-created students"""
    return f"{student_number}{last_name}"


class AccountService(BaseService):
    """Service for account lifecycle and credentials"""

    # ==================== LOOKUPS ====================

    async def _student_by_number(self, student_number: str) -> Optional[Student]:
        result = await self.db.execute(
            select(Student).where(Student.student_number == student_number)
        )
        return result.scalar_one_or_none()

    async def _instructor_by_username(self, username: str) -> Optional[Instructor]:
        result = await self.db.execute(
            select(Instructor).where(Instructor.username == username)
        )
        return result.scalar_one_or_none()

    async def get_student(self, student_id: int) -> Student:
        student = await self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student")
        return student

    async def get_instructor(self, instructor_id: int) -> Instructor:
        instructor = await self.db.get(Instructor, instructor_id)
        if not instructor:
            raise NotFoundError("Instructor")
        return instructor

    async def display_name(self, actor: Actor) -> str:
        """Name shown for the current session"""
        if actor.role == Role.STUDENT:
            student = await self.get_student(actor.id)
            return f"{student.first_name} {student.last_name}"
        if actor.role == Role.INSTRUCTOR:
            instructor = await self.get_instructor(actor.id)
            return f"{instructor.first_name} {instructor.last_name}"
        admin = await self.db.get(Admin, actor.id)
        return admin.username if admin else "admin"

    # ==================== REGISTRATION ====================

    async def register_student(self, data: StudentRegister) -> Student:
        """
        Self-register a student.

        Raises:
            ConflictError: student number already registered
        """
        if await self._student_by_number(data.student_number):
            raise ConflictError("Student number is already registered", field="student_number")

        student = Student(
            student_number=data.student_number,
            first_name=data.first_name,
            middle_name=data.middle_name,
            last_name=data.last_name,
            extension_name=data.extension_name,
            password_hash=get_password_hash(data.password),
        )
        self.db.add(student)
        await self._commit("Student number is already registered", field="student_number")
        await self.db.refresh(student)

        logger.info(f"Registered student {student.id} ({student.student_number})")
        return student

    async def register_instructor(self, data: Union[InstructorRegister, InstructorCreate]) -> Instructor:
        """
        Self-register an instructor.

        Raises:
            ConflictError: username already taken
        """
        if await self._instructor_by_username(data.username):
            raise ConflictError("Username is already taken", field="username")

        instructor = Instructor(
            username=data.username,
            first_name=data.first_name,
            middle_name=data.middle_name,
            last_name=data.last_name,
            extension_name=data.extension_name,
            password_hash=get_password_hash(data.password),
        )
        self.db.add(instructor)
        await self._commit("Username is already taken", field="username")
        await self.db.refresh(instructor)

        logger.info(f"Registered instructor {instructor.id} ({instructor.username})")
        return instructor

    # ==================== AUTHENTICATION ====================

    async def authenticate_student(self, student_number: str, password: str) -> Actor:
        student = await self._student_by_number(student_number.strip())
        if not student or not verify_password(password, student.password_hash):
            logger.log_auth_event("student_login", False, principal=student_number, reason="bad credentials")
            raise UnauthenticatedError(INVALID_CREDENTIALS)

        logger.log_auth_event("student_login", True, principal=student_number)
        return Actor(id=student.id, role=Role.STUDENT)

    async def authenticate_instructor(self, username: str, password: str) -> Actor:
        instructor = await self._instructor_by_username(username.strip())
        if not instructor or not verify_password(password, instructor.password_hash):
            logger.log_auth_event("instructor_login", False, principal=username, reason="bad credentials")
            raise UnauthenticatedError(INVALID_CREDENTIALS)

        logger.log_auth_event("instructor_login", True, principal=username)
        return Actor(id=instructor.id, role=Role.INSTRUCTOR)

    async def authenticate_admin(self, username: str, password: str) -> Actor:
        result = await self.db.execute(select(Admin).where(Admin.username == username.strip()))
        admin = result.scalar_one_or_none()
        if not admin or not verify_password(password, admin.password_hash):
            logger.log_auth_event("admin_login", False, principal=username, reason="bad credentials")
            raise UnauthenticatedError(INVALID_CREDENTIALS)

        logger.log_auth_event("admin_login", True, principal=username)
        return Actor(id=admin.id, role=Role.ADMIN)

    # ==================== PROFILES ====================

    def _apply_password_change(self, account, current_password: Optional[str], new_password: Optional[str]) -> bool:
        if not new_password:
            return False
        if not current_password:
            raise InvalidInputError("Current password is required to change password", field="current_password")
        if not verify_password(current_password, account.password_hash):
            raise InvalidInputError("Current password is incorrect", field="current_password")
        account.password_hash = get_password_hash(new_password)
        return True

    @staticmethod
    def _apply_names(account, data) -> None:
        fields = data.model_dump(exclude_unset=True)
        for name in ("first_name", "last_name"):
            if fields.get(name):
                setattr(account, name, fields[name])
        # Optional parts may be cleared with an explicit null
        for name in ("middle_name", "extension_name"):
            if name in fields:
                setattr(account, name, fields[name])

    async def get_student_profile(self, actor: Actor) -> Student:
        return await self.get_student(actor.id)

    async def update_student_profile(self, actor: Actor, data: StudentProfileUpdate) -> Student:
        student = await self.get_student(actor.id)

        if data.student_number and data.student_number != student.student_number:
            existing = await self._student_by_number(data.student_number)
            if existing and existing.id != student.id:
                raise ConflictError("Student number is already taken", field="student_number")
            student.student_number = data.student_number

        self._apply_names(student, data)
        changed_password = self._apply_password_change(student, data.current_password, data.new_password)

        await self._commit("Student number is already taken", field="student_number")
        await self.db.refresh(student)

        if changed_password:
            logger.log_auth_event("password_change", True, principal=student.student_number)
        return student

    async def get_instructor_profile(self, actor: Actor) -> Instructor:
        return await self.get_instructor(actor.id)

    async def update_instructor_profile(self, actor: Actor, data: InstructorProfileUpdate) -> Instructor:
        instructor = await self.get_instructor(actor.id)

        if data.username and data.username != instructor.username:
            existing = await self._instructor_by_username(data.username)
            if existing and existing.id != instructor.id:
                raise ConflictError("Username is already taken", field="username")
            instructor.username = data.username

        self._apply_names(instructor, data)
        changed_password = self._apply_password_change(instructor, data.current_password, data.new_password)

        await self._commit("Username is already taken", field="username")
        await self.db.refresh(instructor)

        if changed_password:
            logger.log_auth_event("password_change", True, principal=instructor.username)
        return instructor

    # ==================== LISTINGS ====================

    async def list_students(self, actor: Actor, skip: int = 0, limit: Optional[int] = None) -> List[Student]:
        enforce(decide_roster(actor))
        query = select(Student).order_by(Student.last_name, Student.first_name, Student.id).offset(skip)
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search_students(self, actor: Actor, q: str) -> List[Student]:
        """Match q against names and student number, bounded by STUDENT_SEARCH_LIMIT"""
        enforce(decide_roster(actor))
        q = (q or "").strip()
        if not q:
            return []

        pattern = f"%{q}%"
        result = await self.db.execute(
            select(Student)
            .where(or_(
                Student.first_name.ilike(pattern),
                Student.last_name.ilike(pattern),
                Student.student_number.ilike(pattern),
            ))
            .order_by(Student.last_name, Student.first_name)
            .limit(settings.STUDENT_SEARCH_LIMIT)
        )
        return list(result.scalars().all())

    async def list_instructors(self, actor: Actor) -> List[Instructor]:
        result = await self.db.execute(
            select(Instructor).order_by(Instructor.last_name, Instructor.first_name, Instructor.id)
        )
        return list(result.scalars().all())

    # ==================== ADMIN ====================

    async def bulk_create_students(
        self,
        actor: Actor,
        rows: List[BulkStudentRow]
    ) -> Tuple[List[Student], List[str]]:
        """
        Create students in one batch (Admin only).

        Each student's password is student_number + last_name. Rows whose
        student number already exists, or repeats an earlier row, are skipped.

        Returns:
            (created students, skipped student numbers)
        """
        enforce(decide_accounts(actor))

        numbers = [row.student_number for row in rows]
        result = await self.db.execute(
            select(Student.student_number).where(Student.student_number.in_(numbers))
        )
        taken = set(result.scalars().all())

        created: List[Student] = []
        skipped: List[str] = []
        for row in rows:
            if row.student_number in taken:
                skipped.append(row.student_number)
                continue
            taken.add(row.student_number)
            student = Student(
                student_number=row.student_number,
                first_name=row.first_name,
                middle_name=row.middle_name,
                last_name=row.last_name,
                extension_name=row.extension_name,
                password_hash=get_password_hash(default_student_password(row.student_number, row.last_name)),
            )
            self.db.add(student)
            created.append(student)

        await self._commit("Student number is already registered", field="student_number")
        for student in created:
            await self.db.refresh(student)

        logger.info(f"Bulk created {len(created)} students, skipped {len(skipped)}")
        return created, skipped

    async def update_student(self, actor: Actor, student_id: int, data: StudentProfileUpdate) -> Student:
        """Admin edit of a student's names and number; passwords go through reset_password"""
        enforce(decide_accounts(actor))
        student = await self.get_student(student_id)

        if data.student_number and data.student_number != student.student_number:
            existing = await self._student_by_number(data.student_number)
            if existing and existing.id != student.id:
                raise ConflictError("Student number is already taken", field="student_number")
            student.student_number = data.student_number

        self._apply_names(student, data)
        await self._commit("Student number is already taken", field="student_number")
        await self.db.refresh(student)
        return student

    async def create_instructor(self, actor: Actor, data: InstructorCreate) -> Instructor:
        enforce(decide_accounts(actor))
        return await self.register_instructor(data)

    async def update_instructor(self, actor: Actor, instructor_id: int, data: InstructorUpdate) -> Instructor:
        enforce(decide_accounts(actor))
        instructor = await self.get_instructor(instructor_id)

        if data.username and data.username != instructor.username:
            existing = await self._instructor_by_username(data.username)
            if existing and existing.id != instructor.id:
                raise ConflictError("Username is already taken", field="username")
            instructor.username = data.username

        self._apply_names(instructor, data)
        await self._commit("Username is already taken", field="username")
        await self.db.refresh(instructor)
        return instructor

    async def reset_password(self, actor: Actor, user_type: str, user_id: int, new_password: str) -> None:
        """Set a new password for a student or instructor (Admin only)"""
        enforce(decide_accounts(actor))

        if user_type == Role.STUDENT.value:
            account = await self.get_student(user_id)
        elif user_type == Role.INSTRUCTOR.value:
            account = await self.get_instructor(user_id)
        else:
            raise InvalidInputError("user_type must be student or instructor", field="user_type")

        account.password_hash = get_password_hash(new_password)
        await self.db.commit()
        logger.log_auth_event("password_reset", True, principal=f"{user_type}:{user_id}", admin_id=actor.id)

    async def delete_instructor(self, actor: Actor, instructor_id: int) -> Dict[str, Any]:
        """
        Delete an instructor and their teaching graph (Admin only).

        Order: enrollments and sections under the instructor's links, the
        links, a prune check per unlinked subject, detaching uploads
        attributed to the instructor, then the instructor. One transaction.

        Returns:
            Counts of what was removed
        """
        enforce(decide_accounts(actor))
        instructor = await self.get_instructor(instructor_id)

        assignments = AssignmentService(self.db)
        catalog = CatalogService(self.db)

        try:
            result = await self.db.execute(
                select(InstructorSubject.subject_id).where(InstructorSubject.instructor_id == instructor_id)
            )
            subject_ids = list(result.scalars().all())

            sections, enrollments = await assignments.delete_sections_where(
                Section.instructor_id == instructor_id
            )
            links = await self._delete_rows(InstructorSubject, InstructorSubject.instructor_id == instructor_id)

            pruned = 0
            for subject_id in subject_ids:
                if await catalog.delete_subject_if_orphaned(subject_id):
                    pruned += 1

            detached = await self._update_rows(
                Upload, {"instructor_id": None}, Upload.instructor_id == instructor_id
            )

            await self.db.delete(instructor)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        report = {
            "instructor_id": instructor_id,
            "sections_deleted": sections,
            "enrollments_deleted": enrollments,
            "links_deleted": links,
            "subjects_pruned": pruned,
            "uploads_detached": detached,
        }
        logger.log_cascade(
            f"instructor:{instructor_id}",
            {
                "student_sections": enrollments,
                "sections": sections,
                "instructor_subjects": links,
                "subjects": pruned,
                "instructors": 1,
            },
            uploads_detached=detached,
        )
        return report

    async def delete_student(self, actor: Actor, student_id: int) -> Dict[str, Any]:
        """
        Delete a student (Admin only).

        Refused while the student owns uploads. Enrollments go first.
        """
        enforce(decide_accounts(actor))
        student = await self.get_student(student_id)

        uploads = await self.db.scalar(
            select(func.count()).select_from(Upload).where(Upload.student_id == student_id)
        )
        if uploads:
            raise ConflictError("Cannot delete a student who still has uploads")

        try:
            enrollments = await self._delete_rows(StudentSection, StudentSection.student_id == student_id)
            await self.db.delete(student)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.log_cascade(
            f"student:{student_id}",
            {"student_sections": enrollments, "students": 1}
        )
        return {"student_id": student_id, "enrollments_deleted": enrollments}

    # ==================== SEEDING ====================

    async def ensure_admin(self, username: str, password: str) -> Optional[Admin]:
        """Create the configured admin account if it does not exist yet"""
        if not username or not password:
            return None

        result = await self.db.execute(select(Admin).where(Admin.username == username))
        admin = result.scalar_one_or_none()
        if admin:
            return admin

        admin = Admin(username=username, password_hash=get_password_hash(password))
        self.db.add(admin)
        await self._commit("Admin already exists", field="username")
        await self.db.refresh(admin)
        logger.info(f"Seeded admin account '{username}'")
        return admin
