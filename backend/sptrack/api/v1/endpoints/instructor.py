"""
Instructor API

Everything under /instructor acts on the calling instructor's own teaching
graph: subject links, their sections, and enrollment in those sections.
"""
from fastapi import APIRouter, Depends, status
from typing import List

from sptrack.api.deps import get_account_service, get_assignment_service
from sptrack.modules.auth.dependencies import require_instructor
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.accounts import InstructorProfileUpdate, InstructorResponse, StudentResponse
from sptrack.schemas.assignment import (
    DashboardStats,
    EnrollmentResponse,
    EnrollRequest,
    InstructorSubjectCreate,
    InstructorSubjectDeleteReport,
    InstructorSubjectResponse,
    SectionCreate,
    SectionResponse,
    SectionUpdate,
    TermUpdate,
)
from sptrack.services.account_service import AccountService
from sptrack.services.assignment_service import AssignmentService

router = APIRouter(prefix="/instructor", tags=["Instructor"])


# ==================== Subjects ====================

@router.get("/subjects", response_model=List[InstructorSubjectResponse])
async def list_my_subjects(
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.list_instructor_subjects(actor)


@router.post("/subjects", response_model=InstructorSubjectResponse, status_code=status.HTTP_201_CREATED)
async def add_subject(
    link_data: InstructorSubjectCreate,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    """Start teaching a subject, creating it in the catalog if the title is new"""
    return await assignments.create_instructor_subject(actor, link_data)


@router.put("/subjects/{subject_id}", response_model=InstructorSubjectResponse)
async def update_subject_term(
    subject_id: int,
    term: TermUpdate,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.update_term(actor, subject_id, term)


@router.delete("/subjects/{subject_id}", response_model=InstructorSubjectDeleteReport)
async def remove_subject(
    subject_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    """Stop teaching a subject; its sections and their enrollments go with it"""
    return await assignments.delete_instructor_subject(actor, subject_id)


# ==================== Sections ====================

@router.get("/subjects/{subject_id}/sections", response_model=List[SectionResponse])
async def list_sections(
    subject_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.list_sections(actor, subject_id)


@router.post(
    "/subjects/{subject_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_section(
    subject_id: int,
    section_data: SectionCreate,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.create_section(actor, subject_id, section_data.name)


@router.get("/sections/{section_id}", response_model=SectionResponse)
async def get_section(
    section_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.get_section(actor, section_id)


@router.patch("/sections/{section_id}", response_model=SectionResponse)
async def rename_section(
    section_id: int,
    section_data: SectionUpdate,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.rename_section(actor, section_id, section_data.name)


@router.delete("/sections/{section_id}")
async def delete_section(
    section_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    result = await assignments.delete_section(actor, section_id)
    return {"message": "Section deleted successfully", **result}


# ==================== Enrollment ====================

@router.get("/sections/{section_id}/students", response_model=List[StudentResponse])
async def list_section_students(
    section_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.list_students_in_section(actor, section_id)


@router.post(
    "/sections/{section_id}/students",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED
)
async def enroll_student(
    section_id: int,
    enrollment: EnrollRequest,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.enroll(actor, section_id, enrollment.student_id)


@router.delete("/sections/{section_id}/students/{student_id}")
async def unenroll_student(
    section_id: int,
    student_id: int,
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    await assignments.unenroll(actor, section_id, student_id)
    return {"message": "Student removed from section"}


# ==================== Roster / Profile / Dashboard ====================

@router.get("/students", response_model=List[StudentResponse])
async def list_all_students(
    actor: Actor = Depends(require_instructor),
    accounts: AccountService = Depends(get_account_service)
):
    """Every student, for picking whom to enroll"""
    return await accounts.list_students(actor)


@router.get("/profile", response_model=InstructorResponse)
async def get_profile(
    actor: Actor = Depends(require_instructor),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.get_instructor_profile(actor)


@router.put("/profile", response_model=InstructorResponse)
async def update_profile(
    profile_data: InstructorProfileUpdate,
    actor: Actor = Depends(require_instructor),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.update_instructor_profile(actor, profile_data)


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(
    actor: Actor = Depends(require_instructor),
    assignments: AssignmentService = Depends(get_assignment_service)
):
    return await assignments.dashboard_stats(actor)
