"""
套餐分类模型
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey
from app.models.base import BaseModel

CATEGORY_STATUSES = ("active", "inactive")


class Category(BaseModel):
    """套餐分类（英/阿双语名称）"""
    __tablename__ = "categories"

    name_en = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=False)
    description_en = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    slug = Column(String(120), unique=True, index=True, nullable=False)

    icon = Column(String(50), nullable=False, default="Package")
    color = Column(String(20), nullable=False, default="#3B82F6")
    status = Column(String(20), nullable=False, default="active")

    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    # 对应 Package.categories 中的取值，用于统计
    package_category = Column(String(50), nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    @property
    def match_key(self) -> str:
        return self.package_category or self.slug
