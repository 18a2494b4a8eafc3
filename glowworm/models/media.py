from sqlalchemy import Column, Float, ForeignKey, Integer, JSON, String

from glowworm.database import Base


class MediaFile(Base):
    __tablename__ = "media_files"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    media_kind = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(String, nullable=False)
    uploaded_at = Column(String, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    description = Column(String, nullable=False, default="")


class MediaAnalysis(Base):
    """One analysis attempt for a file. Rows are append-only."""

    __tablename__ = "media_analyses"

    id = Column(String, primary_key=True)
    file_id = Column(String, ForeignKey("media_files.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(String, nullable=False)
    outcome = Column(String, nullable=False)
    degraded_reason = Column(String, nullable=True)
    description = Column(String, nullable=False)
    objects = Column(JSON, nullable=False, default=list)
    colors = Column(JSON, nullable=False, default=list)
    mood = Column(String, nullable=False)
    confidence = Column(Float, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    processing_method = Column(String, nullable=False)
    processing_time_ms = Column(Integer, nullable=False, default=0)
    complexity = Column(String, nullable=False)
    sandbox_id = Column(String, nullable=True)
    resource_usage = Column(JSON, nullable=True)
