"""
ImageMetadata model - AI annotation state for an Image (1:1).
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.db.base import Base
from app.core.status import ProcessingStatus

JSONList = JSON().with_variant(JSONB(), "postgresql")


class ImageMetadata(Base):
    __tablename__ = "image_metadata"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    image_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("images.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    # 'pending', 'processing', 'completed', 'failed'
    ai_processing_status = Column(String(20), nullable=False, default=ProcessingStatus.PENDING.value, index=True)

    # Annotation output
    description = Column(Text, nullable=False, default="")
    tags = Column(JSONList, nullable=False, default=list)
    colors = Column(JSONList, nullable=False, default=list)  # Hex strings, e.g. '#FF0000'

    error_message = Column(Text, nullable=True)  # Last annotation failure

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

    image = relationship("Image", back_populates="metadata_record")

    @property
    def status(self) -> ProcessingStatus:
        return ProcessingStatus(self.ai_processing_status)

    def __repr__(self):
        return f"<ImageMetadata image={self.image_id} status={self.ai_processing_status}>"
