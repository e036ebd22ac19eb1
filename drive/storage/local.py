# drive/storage/local.py
import logging
from pathlib import Path
from typing import BinaryIO, Final, Optional

import aiofiles
import aiofiles.os
from starlette.concurrency import run_in_threadpool

from drive.core.exceptions import StorageError
from drive.storage.base import BlobLocation, BlobStore, StoredBlob, generate_name

logger = logging.getLogger(__name__)

_CHUNK_SIZE: Final = 64 * 1024


class LocalBlobStore(BlobStore):
    """Flat directory store.

    Locator is ``<upload_dir>/<name>`` exactly as configured (relative in the
    default setup), the key is the bare ``<name>``.
    """

    name = "local"

    def __init__(self, upload_dir: str = "uploads"):
        self.prefix = upload_dir.rstrip("/") or "."
        self.root = Path(self.prefix)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # keys never carry directories; strip anything that tries to
        return self.root / Path(key).name

    async def store(self, stream: BinaryIO, original_name: str) -> StoredBlob:
        key = generate_name(original_name)
        dest = self._path_for(key)
        partial = dest.with_name(dest.name + ".part")

        size = 0
        try:
            async with aiofiles.open(partial, "wb") as out:
                # the source may be a spooled temp file on disk
                while True:
                    chunk = await run_in_threadpool(stream.read, _CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    await out.write(chunk)
            await aiofiles.os.replace(partial, dest)
        except OSError as error:
            logger.exception("Failed to write blob to disk: %s", dest)
            try:
                await aiofiles.os.remove(partial)
            except FileNotFoundError:
                pass
            raise StorageError("Could not store the uploaded file.") from error

        logger.info("Stored blob %s (%d bytes)", dest, size)
        return StoredBlob(locator=f"{self.prefix}/{key}", key=key, size=size)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning("Blob already gone: %s", path)
            return
        except OSError as error:
            raise StorageError(f"Could not delete {key}.") from error
        logger.info("Deleted blob %s", path)

    def resolve(self, locator: str, key: Optional[str] = None) -> BlobLocation:
        return BlobLocation(path=self._path_for(key or self.key_from_locator(locator)))

    def key_from_locator(self, locator: str) -> str:
        return Path(locator).name
