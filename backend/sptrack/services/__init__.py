from sptrack.services.account_service import AccountService
from sptrack.services.catalog_service import CatalogService
from sptrack.services.assignment_service import AssignmentService
from sptrack.services.upload_service import UploadService
from sptrack.services.storage_service import BlobStore, LocalBlobStore, S3BlobStore, get_blob_store

__all__ = [
    "AccountService",
    "CatalogService",
    "AssignmentService",
    "UploadService",
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "get_blob_store",
]
