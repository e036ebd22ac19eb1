from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from drive.models.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # werkzeug hash
    created_at = Column(DateTime, default=datetime.utcnow)

    # One user → many folders / files
    folders = relationship("Folder", back_populates="owner", passive_deletes=True)
    files = relationship("FileMeta", back_populates="owner", passive_deletes=True)
