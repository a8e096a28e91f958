"""
媒体数据模式
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class LocalizedText(CamelModel):
    en: Optional[str] = None
    ar: Optional[str] = None


class MediaMetadataUpdate(CamelModel):
    alt_text: Optional[LocalizedText] = None
    caption: Optional[LocalizedText] = None
    tags: Optional[List[str]] = None


class ExternalVideoCreate(CamelModel):
    url: str = Field(..., min_length=1)
    alt_text: Optional[LocalizedText] = None
    caption: Optional[LocalizedText] = None


class MediaReorder(CamelModel):
    media_ids: List[int]


class MediaOut(CamelModel):
    id: int
    package_id: int
    type: str
    provider: str
    filename: Optional[str] = None
    original_url: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    video_id: Optional[str] = None
    sizes: List[Dict[str, Any]] = []
    image_optimization: Dict[str, Any] = {}
    metadata: Dict[str, Any] = Field({}, validation_alias="meta")
    sort_order: int
    is_featured: bool
    is_visible: bool
    status: str
    uploaded_by_id: Optional[int] = None
    created_at: datetime
