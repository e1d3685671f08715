from fastapi import APIRouter, Depends, status
from typing import List

from sptrack.api.deps import get_catalog_service
from sptrack.modules.auth.dependencies import get_current_actor
from sptrack.modules.auth.identity import Actor
from sptrack.schemas.catalog import SubjectCreate, SubjectResponse, SubjectUpdate
from sptrack.services.catalog_service import CatalogService

router = APIRouter(prefix="/subjects", tags=["Subjects"])


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(catalog: CatalogService = Depends(get_catalog_service)):
    """Public subject catalog"""
    return await catalog.list_subjects()


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: int,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.get_subject(subject_id)


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    subject_data: SubjectCreate,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.create_subject(actor, subject_data.title)


@router.put("/{subject_id}", response_model=SubjectResponse)
async def rename_subject(
    subject_id: int,
    subject_data: SubjectUpdate,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.rename_subject(actor, subject_id, subject_data.title)


@router.delete("/{subject_id}")
async def delete_subject(
    subject_id: int,
    actor: Actor = Depends(get_current_actor),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Delete a subject with no uploads, along with its sections and instructor links"""
    removed = await catalog.delete_subject(actor, subject_id)
    return {"message": "Subject deleted successfully", "removed": removed}
