"""
Unit Tests for AssignmentService
Tests for: instructor subject links, sections, enrollment, cascades
"""
import pytest
from sqlalchemy import select, func

from sptrack.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from sptrack.models import InstructorSubject, Section, StudentSection, Subject, Upload
from sptrack.schemas.assignment import InstructorSubjectCreate, TermUpdate
from sptrack.services.assignment_service import AssignmentService
from sptrack.services.catalog_service import CatalogService


async def count(db, model, *criteria) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*criteria))


@pytest.fixture
async def offering(instructor, make_subject, make_link):
    """The default instructor teaching one subject"""
    subject = await make_subject("Software Engineering")
    return await make_link(instructor, subject)


class TestInstructorSubjects:

    async def test_link_existing_subject_by_id(self, db_session, instructor, as_actor, make_subject):
        subject = await make_subject("Physics")
        service = AssignmentService(db_session)

        link = await service.create_instructor_subject(
            as_actor(instructor),
            InstructorSubjectCreate(subject_id=subject.subject_id, semester="2nd Semester", year=2025)
        )

        assert link["subject_id"] == subject.subject_id
        assert link["title"] == "Physics"
        assert link["section_count"] == 0

    async def test_link_by_new_title_creates_subject(self, db_session, instructor, as_actor):
        service = AssignmentService(db_session)

        link = await service.create_instructor_subject(
            as_actor(instructor),
            InstructorSubjectCreate(title="Discrete Math", semester="1st Semester", year=2025)
        )

        subject = await db_session.get(Subject, link["subject_id"])
        assert subject.title == "Discrete Math"

    async def test_link_by_title_reuses_subject_any_case(
        self, db_session, instructor, as_actor, make_subject
    ):
        subject = await make_subject("Chemistry")
        service = AssignmentService(db_session)

        link = await service.create_instructor_subject(
            as_actor(instructor),
            InstructorSubjectCreate(title="CHEMISTRY", semester="1st Semester", year=2025)
        )

        assert link["subject_id"] == subject.subject_id
        assert await count(db_session, Subject) == 1

    async def test_duplicate_link_conflicts(self, db_session, instructor, as_actor, offering):
        service = AssignmentService(db_session)

        with pytest.raises(ConflictError):
            await service.create_instructor_subject(
                as_actor(instructor),
                InstructorSubjectCreate(subject_id=offering.subject_id, semester="x", year=2026)
            )

    async def test_missing_subject_id_not_found(self, db_session, instructor, as_actor):
        with pytest.raises(NotFoundError):
            await AssignmentService(db_session).create_instructor_subject(
                as_actor(instructor),
                InstructorSubjectCreate(subject_id=999, semester="1st Semester", year=2025)
            )

    async def test_other_instructors_link_is_hidden(
        self, db_session, offering, make_instructor, as_actor
    ):
        other = await make_instructor()

        with pytest.raises(NotFoundError):
            await AssignmentService(db_session).get_instructor_subject(as_actor(other), offering.subject_id)

    async def test_update_term(self, db_session, instructor, as_actor, offering):
        updated = await AssignmentService(db_session).update_term(
            as_actor(instructor), offering.subject_id, TermUpdate(semester="Summer", year=2026)
        )

        assert updated["semester"] == "Summer"
        assert updated["year"] == 2026

    async def test_list_is_own_links_with_section_counts(
        self, db_session, instructor, as_actor, offering, make_instructor, make_subject,
        make_link, make_section
    ):
        await make_section(offering, "A")
        await make_section(offering, "B")
        await make_link(await make_instructor(), await make_subject())

        links = await AssignmentService(db_session).list_instructor_subjects(as_actor(instructor))

        assert len(links) == 1
        assert links[0]["section_count"] == 2

    async def test_delete_link_cascades_and_prunes_subject(
        self, db_session, instructor, as_actor, offering, make_student, make_section
    ):
        students = [await make_student(), await make_student()]
        await make_section(offering, "A", students=students)
        await make_section(offering, "B", students=students[:1])

        report = await AssignmentService(db_session).delete_instructor_subject(
            as_actor(instructor), offering.subject_id
        )

        assert report == {
            "subject_id": offering.subject_id,
            "sections_deleted": 2,
            "enrollments_deleted": 3,
            "subject_pruned": True,
        }
        assert await count(db_session, Section) == 0
        assert await count(db_session, StudentSection) == 0
        assert await count(db_session, InstructorSubject) == 0
        assert await count(db_session, Subject) == 0

    async def test_delete_link_keeps_subject_taught_by_others(
        self, db_session, instructor, as_actor, offering, make_instructor, make_link, make_section
    ):
        other = await make_instructor()
        subject = await db_session.get(Subject, offering.subject_id)
        other_link = await make_link(other, subject)
        await make_section(other_link, "Other A")

        report = await AssignmentService(db_session).delete_instructor_subject(
            as_actor(instructor), offering.subject_id
        )

        assert report["subject_pruned"] is False
        assert await count(db_session, Subject) == 1
        assert await count(db_session, Section, Section.instructor_id == other.id) == 1

    async def test_delete_link_keeps_subject_with_uploads(
        self, db_session, instructor, student, as_actor, offering
    ):
        db_session.add(Upload(
            title="Exam", type="exam", link="/uploads/e.pdf", storage_key="e.pdf",
            student_id=student.id, subject_id=offering.subject_id, instructor_id=instructor.id,
        ))
        await db_session.commit()

        report = await AssignmentService(db_session).delete_instructor_subject(
            as_actor(instructor), offering.subject_id
        )

        assert report["subject_pruned"] is False
        assert await count(db_session, Subject) == 1

    async def test_failed_prune_rolls_back_whole_unlink(
        self, db_session, instructor, as_actor, offering, make_student, make_section, monkeypatch
    ):
        await make_section(offering, "A", students=[await make_student(), await make_student()])

        async def broken_prune(self, subject_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(CatalogService, "delete_subject_if_orphaned", broken_prune)

        with pytest.raises(RuntimeError):
            await AssignmentService(db_session).delete_instructor_subject(
                as_actor(instructor), offering.subject_id
            )

        assert await count(db_session, InstructorSubject) == 1
        assert await count(db_session, Section) == 1
        assert await count(db_session, StudentSection) == 2
        assert await count(db_session, Subject) == 1


class TestSections:

    async def test_create_and_list_ordered_by_name(self, db_session, instructor, as_actor, offering):
        service = AssignmentService(db_session)
        actor = as_actor(instructor)

        await service.create_section(actor, offering.subject_id, "BSCS-3B")
        await service.create_section(actor, offering.subject_id, " BSCS-3A ")

        sections = await service.list_sections(actor, offering.subject_id)
        assert [s["name"] for s in sections] == ["BSCS-3A", "BSCS-3B"]

    async def test_duplicate_name_in_offering_conflicts(self, db_session, instructor, as_actor, offering):
        service = AssignmentService(db_session)
        await service.create_section(as_actor(instructor), offering.subject_id, "A")

        with pytest.raises(ConflictError):
            await service.create_section(as_actor(instructor), offering.subject_id, "A")

    async def test_same_name_allowed_in_other_offering(
        self, db_session, instructor, as_actor, offering, make_subject, make_link
    ):
        second = await make_link(instructor, await make_subject())
        service = AssignmentService(db_session)

        await service.create_section(as_actor(instructor), offering.subject_id, "A")
        section = await service.create_section(as_actor(instructor), second.subject_id, "A")

        assert section["subject_id"] == second.subject_id

    async def test_rename_onto_sibling_conflicts(
        self, db_session, instructor, as_actor, offering, make_section
    ):
        await make_section(offering, "A")
        b = await make_section(offering, "B")

        with pytest.raises(ConflictError):
            await AssignmentService(db_session).rename_section(as_actor(instructor), b.id, "A")

    async def test_rename_to_same_name_is_allowed(
        self, db_session, instructor, as_actor, offering, make_section
    ):
        a = await make_section(offering, "A")

        renamed = await AssignmentService(db_session).rename_section(as_actor(instructor), a.id, "A")

        assert renamed["name"] == "A"

    async def test_create_under_foreign_offering_is_hidden(
        self, db_session, offering, make_instructor, as_actor
    ):
        other = await make_instructor()

        with pytest.raises(NotFoundError):
            await AssignmentService(db_session).create_section(as_actor(other), offering.subject_id, "X")

    async def test_foreign_section_is_forbidden(
        self, db_session, offering, make_instructor, make_section, as_actor
    ):
        section = await make_section(offering, "A")
        other = await make_instructor()
        service = AssignmentService(db_session)

        with pytest.raises(ForbiddenError):
            await service.get_section(as_actor(other), section.id)
        with pytest.raises(ForbiddenError):
            await service.rename_section(as_actor(other), section.id, "B")
        with pytest.raises(ForbiddenError):
            await service.delete_section(as_actor(other), section.id)

    async def test_missing_section_not_found(self, db_session, instructor, as_actor):
        with pytest.raises(NotFoundError):
            await AssignmentService(db_session).get_section(as_actor(instructor), 999)

    async def test_delete_section_removes_enrollments(
        self, db_session, instructor, as_actor, offering, make_student, make_section
    ):
        section = await make_section(offering, "A", students=[await make_student(), await make_student()])

        result = await AssignmentService(db_session).delete_section(as_actor(instructor), section.id)

        assert result["enrollments_deleted"] == 2
        assert await count(db_session, Section) == 0
        assert await count(db_session, StudentSection) == 0
        # The parent link stays
        assert await count(db_session, InstructorSubject) == 1


class TestEnrollment:

    async def test_enroll_and_list(self, db_session, instructor, as_actor, offering, make_section, make_student):
        section = await make_section(offering, "A")
        zed = await make_student(last_name="Zamora")
        abe = await make_student(last_name="Abad")
        service = AssignmentService(db_session)

        await service.enroll(as_actor(instructor), section.id, zed.id)
        await service.enroll(as_actor(instructor), section.id, abe.id)

        students = await service.list_students_in_section(as_actor(instructor), section.id)
        assert [s.id for s in students] == [abe.id, zed.id]

    async def test_double_enroll_conflicts(
        self, db_session, instructor, as_actor, offering, make_section, student
    ):
        section = await make_section(offering, "A")
        service = AssignmentService(db_session)
        await service.enroll(as_actor(instructor), section.id, student.id)

        with pytest.raises(ConflictError):
            await service.enroll(as_actor(instructor), section.id, student.id)
        assert await count(db_session, StudentSection) == 1

    async def test_enroll_missing_student(self, db_session, instructor, as_actor, offering, make_section):
        section = await make_section(offering, "A")

        with pytest.raises(NotFoundError) as exc_info:
            await AssignmentService(db_session).enroll(as_actor(instructor), section.id, 999)
        assert exc_info.value.code == "STUDENT_NOT_FOUND"

    async def test_enroll_in_foreign_section_forbidden(
        self, db_session, offering, make_section, make_instructor, student, as_actor
    ):
        section = await make_section(offering, "A")
        other = await make_instructor()

        with pytest.raises(ForbiddenError):
            await AssignmentService(db_session).enroll(as_actor(other), section.id, student.id)
        assert await count(db_session, StudentSection) == 0

    async def test_section_checked_before_student(
        self, db_session, offering, make_section, make_instructor, as_actor
    ):
        """A foreign section is refused even when the student does not exist"""
        section = await make_section(offering, "A")
        other = await make_instructor()

        with pytest.raises(ForbiddenError):
            await AssignmentService(db_session).enroll(as_actor(other), section.id, 999)

    async def test_unenroll(self, db_session, instructor, as_actor, offering, make_section, student):
        section = await make_section(offering, "A", students=[student])
        service = AssignmentService(db_session)

        await service.unenroll(as_actor(instructor), section.id, student.id)

        assert await count(db_session, StudentSection) == 0
        with pytest.raises(NotFoundError):
            await service.unenroll(as_actor(instructor), section.id, student.id)

    async def test_student_sees_enrolled_subjects(
        self, db_session, offering, make_section, student, as_actor
    ):
        await make_section(offering, "A", students=[student])

        subjects = await AssignmentService(db_session).list_enrolled_subjects(as_actor(student))

        assert len(subjects) == 1
        assert subjects[0]["title"] == "Software Engineering"
        assert subjects[0]["section_name"] == "A"
        assert subjects[0]["semester"] == offering.semester


class TestDashboardStats:

    async def test_counts_per_own_section(
        self, db_session, instructor, as_actor, offering, make_section, make_student
    ):
        first, second = await make_student(), await make_student()
        await make_section(offering, "A", students=[first, second])
        await make_section(offering, "B")
        db_session.add(Upload(
            title="Quiz", type="quiz", link="/uploads/q.pdf", storage_key="q.pdf",
            student_id=first.id, subject_id=offering.subject_id, instructor_id=instructor.id,
        ))
        await db_session.commit()

        stats = await AssignmentService(db_session).dashboard_stats(as_actor(instructor))

        assert stats["students_per_section"] == [{"name": "A", "value": 2}, {"name": "B", "value": 0}]
        assert stats["uploads_per_section"] == [{"name": "A", "value": 1}, {"name": "B", "value": 0}]
