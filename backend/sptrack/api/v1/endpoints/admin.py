"""
Admin API

Account management. Every route is admin-only; the service re-checks the
actor through the authorization engine.
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List

from sptrack.api.deps import get_account_service
from sptrack.core.config import settings
from sptrack.modules.auth.dependencies import require_admin
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.accounts import (
    BulkStudentCreate,
    BulkStudentResult,
    InstructorCreate,
    InstructorDeleteReport,
    InstructorResponse,
    InstructorUpdate,
    MessageResponse,
    PasswordReset,
    StudentProfileUpdate,
    StudentResponse,
)
from sptrack.services.account_service import AccountService

router = APIRouter(prefix="/admin", tags=["Admin"])


# ==================== Students ====================

@router.get("/students", response_model=List[StudentResponse])
async def list_students(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=500),
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.list_students(actor, skip=skip, limit=limit)


@router.post("/students", response_model=BulkStudentResult, status_code=status.HTTP_201_CREATED)
async def bulk_create_students(
    payload: BulkStudentCreate,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    """Create students with password = student number + last name"""
    created, skipped = await accounts.bulk_create_students(actor, payload.students)
    return BulkStudentResult(
        created=[StudentResponse.model_validate(s) for s in created],
        skipped=skipped,
    )


@router.get("/students/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.get_student(student_id)


@router.put("/students/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    student_data: StudentProfileUpdate,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.update_student(actor, student_id, student_data)


@router.delete("/students/{student_id}")
async def delete_student(
    student_id: int,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    result = await accounts.delete_student(actor, student_id)
    return {"message": "Student deleted successfully", **result}


# ==================== Instructors ====================

@router.get("/instructors", response_model=List[InstructorResponse])
async def list_instructors(
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.list_instructors(actor)


@router.post("/instructors", response_model=InstructorResponse, status_code=status.HTTP_201_CREATED)
async def create_instructor(
    instructor_data: InstructorCreate,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.create_instructor(actor, instructor_data)


@router.put("/instructors/{instructor_id}", response_model=InstructorResponse)
async def update_instructor(
    instructor_id: int,
    instructor_data: InstructorUpdate,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.update_instructor(actor, instructor_id, instructor_data)


@router.delete("/instructors/{instructor_id}", response_model=InstructorDeleteReport)
async def delete_instructor(
    instructor_id: int,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    """Delete an instructor with their subject links, sections and enrollments"""
    return await accounts.delete_instructor(actor, instructor_id)


# ==================== Passwords ====================

@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    reset: PasswordReset,
    actor: Actor = Depends(require_admin),
    accounts: AccountService = Depends(get_account_service)
):
    await accounts.reset_password(actor, reset.user_type, reset.user_id, reset.new_password)
    return MessageResponse(message="Password updated successfully")
