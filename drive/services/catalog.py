# drive/services/catalog.py
# The metadata database and the blob store share no transaction:
# upload stores the blob before the row is written, removal attempts the
# blob delete before the row delete (an orphaned blob is acceptable, a
# dangling row is not).

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Tuple

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from drive.core.exceptions import Forbidden, NotFound, ValidationError
from drive.models.database import get_db
from drive.models.file import FileMeta
from drive.models.folder import Folder
from drive.storage.base import BlobLocation, BlobStore
from drive.storage.factory import get_blob_store

logger = logging.getLogger(__name__)


@dataclass
class UploadCommand:
    stream: BinaryIO
    filename: str
    owner_id: int
    mimetype: str = "application/octet-stream"
    folder_id: Optional[int] = None
    size: Optional[int] = None


@dataclass
class FolderContents:
    folder: Folder
    files: List[FileMeta] = field(default_factory=list)
    children: List[Folder] = field(default_factory=list)


class Catalog:
    def __init__(self, db: Session, blob_store: BlobStore):
        self.db = db
        self.blob_store = blob_store

    # --- folders ---

    def _owned_folder(self, folder_id: int, requester_id: int) -> Folder:
        folder = self.db.get(Folder, folder_id)
        if folder is None:
            raise NotFound("Folder not found")
        if folder.user_id != requester_id:
            raise Forbidden("Unauthorized")
        return folder

    def create_folder(
        self, name: str, owner_id: int, parent_id: Optional[int] = None
    ) -> Folder:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Folder name is required.")

        if parent_id is not None:
            # nesting under someone else's folder is refused
            self._owned_folder(parent_id, owner_id)

        folder = Folder(name=name, user_id=owner_id, parent_id=parent_id)
        self.db.add(folder)
        self.db.commit()
        self.db.refresh(folder)
        logger.info("User %s created folder %s (parent=%s)", owner_id, folder.id, parent_id)
        return folder

    def list_root_folders(self, owner_id: int) -> List[Folder]:
        return (
            self.db.query(Folder)
            .filter(Folder.user_id == owner_id, Folder.parent_id.is_(None))
            .order_by(Folder.name)
            .all()
        )

    def list_root_files(self, owner_id: int) -> List[FileMeta]:
        return (
            self.db.query(FileMeta)
            .filter(FileMeta.user_id == owner_id, FileMeta.folder_id.is_(None))
            .order_by(FileMeta.filename)
            .all()
        )

    def get_folder(self, folder_id: int, requester_id: int) -> FolderContents:
        folder = self._owned_folder(folder_id, requester_id)
        return FolderContents(
            folder=folder,
            files=list(folder.files),
            children=list(folder.children),
        )

    def folder_path(self, folder: Folder) -> List[Folder]:
        """Breadcrumbs from the root folder down to ``folder``."""
        trail = []
        seen = set()
        current = folder
        while current is not None and current.id not in seen:
            seen.add(current.id)
            trail.append(current)
            current = current.parent
        return list(reversed(trail))

    def rename_folder(self, folder_id: int, new_name: str, requester_id: int) -> Folder:
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("Folder name is required.")

        # ownership is checked before anything is written
        folder = self._owned_folder(folder_id, requester_id)
        folder.name = new_name
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def _subtree_files(self, folder: Folder) -> List[FileMeta]:
        folder_ids = [folder.id]
        frontier = [folder.id]
        while frontier:
            rows = self.db.query(Folder.id).filter(Folder.parent_id.in_(frontier)).all()
            frontier = [row.id for row in rows if row.id not in folder_ids]
            folder_ids.extend(frontier)

        return self.db.query(FileMeta).filter(FileMeta.folder_id.in_(folder_ids)).all()

    async def delete_folder(self, folder_id: int, requester_id: int) -> None:
        folder = self._owned_folder(folder_id, requester_id)

        files = self._subtree_files(folder)
        for file in files:
            await self._discard_blob(file)

        # descendant folders and files go through ON DELETE CASCADE
        self.db.delete(folder)
        self.db.commit()
        logger.info(
            "User %s deleted folder %s with %d file(s) in its subtree",
            requester_id,
            folder_id,
            len(files),
        )

    # --- files ---

    def _owned_file(self, file_id: int, requester_id: int) -> FileMeta:
        file = (
            self.db.query(FileMeta)
            .options(joinedload(FileMeta.folder))
            .filter(FileMeta.id == file_id)
            .first()
        )
        if file is None:
            raise NotFound("File not found")
        if file.user_id != requester_id:
            raise Forbidden("Unauthorized")
        return file

    async def upload_file(self, command: UploadCommand) -> FileMeta:
        if command.folder_id is not None:
            self._owned_folder(command.folder_id, command.owner_id)

        # StorageError propagates; no row has been written yet
        blob = await self.blob_store.store(command.stream, command.filename)

        file = FileMeta(
            filename=command.filename,
            filepath=blob.locator,
            storage_key=blob.key,
            storage_backend=self.blob_store.name,
            mimetype=command.mimetype or "application/octet-stream",
            size=command.size if command.size is not None else blob.size,
            user_id=command.owner_id,
            folder_id=command.folder_id,
        )
        try:
            self.db.add(file)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Metadata write failed, rolling back blob %s", blob.key)
            await self._discard_key(blob.key)
            raise

        self.db.refresh(file)
        logger.info("User %s uploaded file %s -> %s", command.owner_id, file.id, blob.locator)
        return file

    def get_file(self, file_id: int, requester_id: int) -> FileMeta:
        return self._owned_file(file_id, requester_id)

    def download_file(self, file_id: int, requester_id: int) -> Tuple[FileMeta, BlobLocation]:
        file = self._owned_file(file_id, requester_id)
        if file.storage_backend != self.blob_store.name:
            logger.warning(
                "File %s lives on the %s backend, not %s; cannot serve it",
                file.id,
                file.storage_backend,
                self.blob_store.name,
            )
            raise NotFound("File missing in storage")
        location = self.blob_store.resolve(file.filepath, file.storage_key)
        if location.path is not None and not location.path.is_file():
            logger.warning("Blob missing on disk for file %s: %s", file.id, location.path)
            raise NotFound("File missing in storage")
        return file, location

    async def delete_file(self, file_id: int, requester_id: int) -> None:
        file = self._owned_file(file_id, requester_id)

        await self._discard_blob(file)

        self.db.delete(file)
        self.db.commit()
        logger.info("User %s deleted file %s", requester_id, file_id)

    # --- blob cleanup (best-effort) ---

    async def _discard_blob(self, file: FileMeta) -> None:
        if file.storage_backend != self.blob_store.name:
            logger.warning(
                "File %s lives on the %s backend, not %s; leaving its blob in place",
                file.id,
                file.storage_backend,
                self.blob_store.name,
            )
            return
        key = file.storage_key or self.blob_store.key_from_locator(file.filepath)
        await self._discard_key(key)

    async def _discard_key(self, key: str) -> None:
        try:
            await self.blob_store.delete(key)
        except Exception:
            # the metadata change still goes ahead; the blob is orphaned
            logger.exception("Failed to delete blob %s (orphaned)", key)


def get_catalog(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Catalog:
    return Catalog(db, blob_store)
