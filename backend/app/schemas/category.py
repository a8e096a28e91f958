"""
套餐分类数据模式
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from app.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    status: Literal["active", "inactive"] = "active"
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    package_category: Optional[str] = None


class CategoryUpdate(CamelModel):
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    package_category: Optional[str] = None


class CategoryStatusUpdate(CamelModel):
    status: str


class CategoryOrderItem(CamelModel):
    id: int
    order: int


class CategoryBulkCreate(CamelModel):
    categories: List[Dict[str, Any]]


class CategoryOut(CamelModel):
    id: int
    name_en: str
    name_ar: str
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    slug: str
    icon: str
    color: str
    status: str
    parent_id: Optional[int] = None
    sort_order: int
    package_category: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
