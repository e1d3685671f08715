from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sptrack.core.database import get_db
from sptrack.services.account_service import AccountService
from sptrack.services.assignment_service import AssignmentService
from sptrack.services.catalog_service import CatalogService
from sptrack.services.storage_service import BlobStore, get_blob_store
from sptrack.services.upload_service import UploadService


def get_account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db)


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_assignment_service(db: AsyncSession = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db)


def get_upload_service(
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
) -> UploadService:
    return UploadService(db, blob_store)
