from fastapi import Request

from drive.core.config import Settings
from drive.storage.base import BlobStore
from drive.storage.local import LocalBlobStore
from drive.storage.s3 import S3BlobStore


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.storage_backend == "s3":
        return S3BlobStore.from_settings(settings)
    return LocalBlobStore(settings.upload_dir)


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store
