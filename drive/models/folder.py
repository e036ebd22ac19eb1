# drive/models/folder.py
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from drive.models.database import Base


class Folder(Base):
    __tablename__ = "folders"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # NULL parent → root folder
    parent_id = Column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )

    owner = relationship("User", back_populates="folders")
    parent = relationship("Folder", remote_side=[id], back_populates="children")

    # Rows below this folder are removed by the ON DELETE CASCADE rules,
    # not by the ORM walking the tree.
    children = relationship(
        "Folder",
        back_populates="parent",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Folder.name",
    )
    files = relationship(
        "FileMeta",
        back_populates="folder",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FileMeta.filename",
    )
