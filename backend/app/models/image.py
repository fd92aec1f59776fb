"""
Image model - one uploaded photo and its stored artifacts.
"""
from sqlalchemy import Column, String, DateTime, Text, Integer, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.db.base import Base


class Image(Base):
    __tablename__ = "images"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)  # Owner id from the auth provider

    filename = Column(String(255), nullable=False)  # Original client filename

    # Storage
    original_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=False)
    original_path = Column(String(500), nullable=True)  # Object store key
    thumbnail_path = Column(String(500), nullable=True)
    original_backend = Column(String(20), nullable=True)  # 'supabase' or 's3'
    thumbnail_backend = Column(String(20), nullable=True)

    # File info
    content_type = Column(String(100), nullable=True)
    file_size_bytes = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    metadata_record = relationship(
        "ImageMetadata",
        back_populates="image",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Image {self.id} {self.filename} user={self.user_id}>"
