# drive/models/file.py
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from drive.models.database import Base


class FileMeta(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String, nullable=False)        # Name user uploaded
    filepath = Column(String, nullable=False)        # Locator: relative path or public URL
    storage_key = Column(String, nullable=True)      # Object id inside the blob store
    storage_backend = Column(String(16), nullable=False, default="local")
    mimetype = Column(String(255), nullable=False, default="application/octet-stream")
    size = Column(BigInteger, nullable=False)        # Size in bytes
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # NULL folder → file sits at the user's root
    folder_id = Column(
        Integer, ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # Many files → one owner (User)
    owner = relationship("User", back_populates="files")
    folder = relationship("Folder", back_populates="files")
