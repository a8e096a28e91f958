"""
活动分类数据模式
"""

from datetime import datetime
from typing import Any, Optional

from app.schemas.common import CamelModel


class ActivityCategoryCreate(CamelModel):
    name: str
    name_ar: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    parent_id: Optional[int] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    meta_title: Optional[str] = None
    meta_title_ar: Optional[str] = None
    meta_description: Optional[str] = None
    meta_description_ar: Optional[str] = None


class ActivityCategoryUpdate(CamelModel):
    name: Optional[str] = None
    name_ar: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    parent_id: Optional[int] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    meta_title: Optional[str] = None
    meta_title_ar: Optional[str] = None
    meta_description: Optional[str] = None
    meta_description_ar: Optional[str] = None


class ActivityCategoryStatus(CamelModel):
    is_active: Any = None


class ActivityCategoryReorder(CamelModel):
    categories: Any = None


class ActivityCategoryOut(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    slug: str
    description: Optional[str] = None
    description_ar: Optional[str] = None
    parent_id: Optional[int] = None
    level: int
    path: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    sort_order: int
    is_active: bool
    meta_title: Optional[str] = None
    meta_title_ar: Optional[str] = None
    meta_description: Optional[str] = None
    meta_description_ar: Optional[str] = None
    activity_count: int
    created_at: datetime
    updated_at: datetime
