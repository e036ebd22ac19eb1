# drive/storage/s3.py
import logging
import os
from typing import Any, BinaryIO, Final, Optional
from urllib.parse import urlparse

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from drive.core.exceptions import StorageError
from drive.storage.base import BlobLocation, BlobStore, StoredBlob, generate_name

logger = logging.getLogger(__name__)

KEY_PREFIX: Final = "uploads"
# Objects are opaque to the store; the real MIME type lives in the catalog row.
OBJECT_CONTENT_TYPE: Final = "application/octet-stream"
_MISSING_CODES: Final = frozenset({"NoSuchKey", "404", "NotFound"})


def default_public_url(
    bucket: str, region: str, endpoint_url: Optional[str] = None
) -> str:
    if endpoint_url:
        return f"{endpoint_url.rstrip('/')}/{bucket}"
    return f"https://{bucket}.s3.{region}.amazonaws.com"


class S3BlobStore(BlobStore):
    """Uploads to ``<bucket>/uploads/<name>``.

    The locator is ``<public_url>/uploads/<name>``. The key is stored next to
    it, and ``key_from_locator`` reverses the same convention for rows that
    predate the key column.
    """

    name = "s3"

    def __init__(self, client: Any, bucket: str, public_url: str):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "S3BlobStore":
        if not settings.aws_s3_bucket_name:
            raise ValueError("AWS_S3_BUCKET_NAME is required for the s3 storage backend")

        client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.aws_s3_endpoint_url,
        )
        public_url = settings.aws_s3_public_url or default_public_url(
            settings.aws_s3_bucket_name,
            settings.aws_region,
            settings.aws_s3_endpoint_url,
        )
        return cls(client, settings.aws_s3_bucket_name, public_url)

    async def store(self, stream: BinaryIO, original_name: str) -> StoredBlob:
        key = f"{KEY_PREFIX}/{generate_name(original_name)}"

        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)

        try:
            await run_in_threadpool(
                self.client.upload_fileobj,
                stream,
                self.bucket,
                key,
                ExtraArgs={"ContentType": OBJECT_CONTENT_TYPE},
            )
        except (BotoCoreError, ClientError, S3UploadFailedError) as error:
            logger.exception("Failed to upload blob to bucket %s: %s", self.bucket, key)
            raise StorageError("Could not store the uploaded file.") from error

        logger.info("Uploaded blob s3://%s/%s (%d bytes)", self.bucket, key, size)
        return StoredBlob(locator=f"{self.public_url}/{key}", key=key, size=size)

    async def delete(self, key: str) -> None:
        try:
            await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as error:
            code = error.response.get("Error", {}).get("Code", "")
            if code in _MISSING_CODES:
                logger.warning("Blob already gone: s3://%s/%s", self.bucket, key)
                return
            raise StorageError(f"Could not delete {key}.") from error
        except BotoCoreError as error:
            raise StorageError(f"Could not delete {key}.") from error
        logger.info("Deleted blob s3://%s/%s", self.bucket, key)

    def resolve(self, locator: str, key: Optional[str] = None) -> BlobLocation:
        return BlobLocation(url=locator)

    def key_from_locator(self, locator: str) -> str:
        prefix = f"{self.public_url}/"
        if locator.startswith(prefix):
            return locator[len(prefix):]
        # locator from another public host: keep the naming convention
        name = urlparse(locator).path.rsplit("/", 1)[-1]
        return f"{KEY_PREFIX}/{name}"
