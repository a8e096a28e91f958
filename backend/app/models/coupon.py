"""
优惠券模型
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON
from app.models.base import BaseModel

COUPON_DISCOUNT_TYPES = ("percentage", "fixed")


class Coupon(BaseModel):
    """优惠券模型"""
    __tablename__ = "coupons"

    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)

    discount_type = Column(String(20), nullable=False, default="percentage")
    discount_value = Column(Float, nullable=False)
    minimum_amount = Column(Float, nullable=False, default=0.0)
    maximum_discount = Column(Float, nullable=True)

    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    user_usage_limit = Column(Integer, nullable=False, default=1)

    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)

    applicable_packages = Column(JSON, nullable=False, default=list)  # 套餐ID列表
    applicable_categories = Column(JSON, nullable=False, default=list)  # 套餐分类取值
    excluded_packages = Column(JSON, nullable=False, default=list)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    def is_valid_for_use(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if now < self.valid_from or now > self.valid_until:
            return False
        if self.usage_limit is not None and (self.usage_count or 0) >= self.usage_limit:
            return False
        return True

    def calculate_discount(self, amount: float, now: Optional[datetime] = None) -> float:
        if not self.is_valid_for_use(now) or amount < (self.minimum_amount or 0):
            return 0.0

        if self.discount_type == "percentage":
            discount = amount * self.discount_value / 100
        else:
            discount = self.discount_value

        if self.maximum_discount is not None and discount > self.maximum_discount:
            discount = self.maximum_discount

        return round(min(discount, amount), 2)

    def is_applicable_to_package(self, package_id: int, package_categories=None) -> bool:
        if package_id in (self.excluded_packages or []):
            return False

        categories = set(package_categories or [])
        applicable_categories = set(self.applicable_categories or [])

        if self.applicable_packages:
            if package_id in self.applicable_packages:
                return True
            # 不在指定套餐内时回退到分类判断
            return bool(applicable_categories & categories)

        if applicable_categories:
            return bool(applicable_categories & categories)

        return True
