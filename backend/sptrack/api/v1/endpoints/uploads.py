from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import List, Optional

from sptrack.api.deps import get_upload_service
from sptrack.core.config import settings
from sptrack.core.exceptions import InvalidInputError
from sptrack.modules.auth.dependencies import get_current_actor, require_student
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.upload import UploadResponse, UploadStats, UploadUpdate
from sptrack.services.upload_service import UploadService

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.get("", response_model=List[UploadResponse])
async def list_my_uploads(
    subject_id: Optional[int] = Query(None),
    actor: Actor = Depends(require_student),
    uploads: UploadService = Depends(get_upload_service)
):
    return await uploads.list_for_student(actor.id, subject_id)


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def create_upload(
    file: UploadFile = File(...),
    subject_id: int = Form(...),
    type: str = Form(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    instructor_id: Optional[str] = Form(None),
    actor: Actor = Depends(get_current_actor),
    uploads: UploadService = Depends(get_upload_service)
):
    """Upload a quiz, activity or exam document (students only)"""
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise InvalidInputError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // 1024 // 1024}MB",
            field="file"
        )

    return await uploads.create(
        actor,
        subject_id=subject_id,
        upload_type=type,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        title=title,
        description=description,
        instructor_id=instructor_id,
    )


@router.get("/stats", response_model=UploadStats)
async def upload_stats(
    actor: Actor = Depends(get_current_actor),
    uploads: UploadService = Depends(get_upload_service)
):
    return await uploads.aggregate_stats_by_type(actor)


@router.patch("/{upload_id}", response_model=UploadResponse)
async def update_upload(
    upload_id: int,
    patch: UploadUpdate,
    actor: Actor = Depends(get_current_actor),
    uploads: UploadService = Depends(get_upload_service)
):
    return await uploads.update(actor, upload_id, patch)


@router.delete("/{upload_id}")
async def delete_upload(
    upload_id: int,
    actor: Actor = Depends(get_current_actor),
    uploads: UploadService = Depends(get_upload_service)
):
    await uploads.delete(actor, upload_id)
    return {"message": "Upload deleted successfully"}
