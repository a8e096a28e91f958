"""
活动分类模型（支持多级）
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey
from app.models.base import BaseModel


class ActivityCategory(BaseModel):
    """活动分类"""
    __tablename__ = "activity_categories"

    name = Column(String(100), unique=True, index=True, nullable=False)
    name_ar = Column(String(100), nullable=True, index=True)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)

    # 层级：0 为顶级；path 形如 tours/cultural/museums
    parent_id = Column(Integer, ForeignKey("activity_categories.id"), nullable=True, index=True)
    level = Column(Integer, nullable=False, default=0)
    path = Column(String(500), nullable=True, index=True)

    icon = Column(String(100), nullable=True)
    color = Column(String(20), nullable=True)
    image = Column(String(500), nullable=True)

    sort_order = Column(Integer, nullable=False, default=0, index=True)

    meta_title = Column(String(200), nullable=True)
    meta_title_ar = Column(String(200), nullable=True)
    meta_description = Column(String(500), nullable=True)
    meta_description_ar = Column(String(500), nullable=True)

    activity_count = Column(Integer, nullable=False, default=0)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
