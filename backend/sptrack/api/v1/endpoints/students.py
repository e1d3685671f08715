from fastapi import APIRouter, Depends, Query
from typing import Any, Dict, List, Optional

from sptrack.api.deps import get_account_service, get_assignment_service, get_upload_service
from sptrack.modules.auth.dependencies import get_current_actor, require_instructor, require_student
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.accounts import StudentProfileUpdate, StudentResponse
from sptrack.schemas.upload import UploadResponse
from sptrack.services.account_service import AccountService
from sptrack.services.assignment_service import AssignmentService
from sptrack.services.upload_service import UploadService

router = APIRouter(tags=["Students"])


@router.get("/students/search", response_model=List[StudentResponse])
async def search_students(
    q: str = Query("", max_length=100),
    actor: Actor = Depends(require_instructor),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.search_students(actor, q)


@router.get("/students/{student_id}/uploads", response_model=List[UploadResponse])
async def list_student_uploads(
    student_id: int,
    subject_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_current_actor),
    uploads: UploadService = Depends(get_upload_service)
):
    """A student's uploads; visible to instructors and to the student"""
    return await uploads.list_for_viewer(actor, student_id, subject_id)


@router.get("/student/subjects")
async def list_enrolled_subjects(
    actor: Actor = Depends(require_student),
    assignments: AssignmentService = Depends(get_assignment_service)
) -> List[Dict[str, Any]]:
    return await assignments.list_enrolled_subjects(actor)


@router.get("/profile", response_model=StudentResponse)
async def get_profile(
    actor: Actor = Depends(require_student),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.get_student_profile(actor)


@router.put("/profile", response_model=StudentResponse)
async def update_profile(
    profile_data: StudentProfileUpdate,
    actor: Actor = Depends(require_student),
    accounts: AccountService = Depends(get_account_service)
):
    return await accounts.update_student_profile(actor, profile_data)
