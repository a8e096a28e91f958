"""
套餐媒体模型
"""

from sqlalchemy import Column, String, Integer, ForeignKey, JSON, Boolean
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

MEDIA_TYPES = ("image", "video")
MEDIA_PROVIDERS = ("local", "youtube", "vimeo")
MEDIA_STATUSES = ("processing", "ready", "failed")


class Media(BaseModel):
    """套餐图片/视频"""
    __tablename__ = "media"

    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)

    type = Column(String(10), nullable=False, default="image")
    provider = Column(String(20), nullable=False, default="local")
    filename = Column(String(255), nullable=True)
    original_url = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    video_id = Column(String(100), nullable=True)

    sizes = Column(JSON, nullable=False, default=list)  # [{name, width, height, url, size, format}]
    image_optimization = Column(JSON, nullable=False, default=dict)  # {qualityScore, suggestions, metadata}
    meta = Column(JSON, nullable=False, default=dict)  # {altText: {en, ar}, caption: {en, ar}, tags}

    sort_order = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_visible = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="processing")

    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    package = relationship("Package", back_populates="media")
