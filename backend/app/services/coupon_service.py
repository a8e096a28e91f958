"""
优惠券服务
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError
from app.models.coupon import Coupon
from app.models.package import Package
from app.models.user import User
from app.schemas.coupon import CouponCreate, CouponUpdate, CouponValidate

COUPON_SORT_FIELDS = {
    "created_at": Coupon.created_at,
    "createdAt": Coupon.created_at,
    "code": Coupon.code,
    "valid_until": Coupon.valid_until,
    "validUntil": Coupon.valid_until,
}


class CouponService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_coupon(self, coupon_id: int) -> Coupon:
        coupon = await self.db.get(Coupon, coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found")
        return coupon

    async def _code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Coupon.id).where(Coupon.code == code)
        if exclude_id is not None:
            query = query.where(Coupon.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create_coupon(self, data: CouponCreate, user: User) -> Coupon:
        if data.valid_until <= data.valid_from:
            raise ServiceError("Valid until date must be after valid from date")
        if await self._code_taken(data.code):
            raise ServiceError("Coupon code already exists")

        payload = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        coupon = Coupon(**payload, created_by_id=user.id)
        self.db.add(coupon)
        await self.db.commit()
        await self.db.refresh(coupon)
        logger.info(f"🎟️ 优惠券已创建: {coupon.code}")
        return coupon

    async def list_coupons(self, filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Coupon], int]:
        conditions = []
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            conditions.append(or_(
                Coupon.code.ilike(pattern),
                Coupon.name.ilike(pattern),
                Coupon.name_ar.ilike(pattern),
            ))
        if filters.get("is_active") is not None:
            conditions.append(Coupon.is_active == filters["is_active"])
        if filters.get("discount_type"):
            conditions.append(Coupon.discount_type == filters["discount_type"])

        now = datetime.utcnow()
        status = filters.get("status")
        if status == "active":
            conditions.extend([Coupon.valid_from <= now, Coupon.valid_until >= now])
        elif status == "expired":
            conditions.append(Coupon.valid_until < now)
        elif status == "upcoming":
            conditions.append(Coupon.valid_from > now)

        where = and_(*conditions) if conditions else true()
        total = (await self.db.execute(select(func.count(Coupon.id)).where(where))).scalar() or 0

        column = COUPON_SORT_FIELDS.get(filters.get("sort_by") or "created_at", Coupon.created_at)
        order_by = column.asc() if filters.get("sort_order") == "asc" else column.desc()
        result = await self.db.execute(
            select(Coupon).where(where).order_by(order_by).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def update_coupon(self, coupon_id: int, data: CouponUpdate) -> Coupon:
        coupon = await self.get_coupon(coupon_id)
        payload = data.model_dump(exclude_unset=True)

        if payload.get("code") and payload["code"] != coupon.code and await self._code_taken(payload["code"], coupon.id):
            raise ServiceError("Coupon code already exists")

        valid_from = payload.get("valid_from") or coupon.valid_from
        valid_until = payload.get("valid_until") or coupon.valid_until
        if valid_until <= valid_from:
            raise ServiceError("Valid until date must be after valid from date")

        discount_type = payload.get("discount_type") or coupon.discount_type
        discount_value = payload.get("discount_value", coupon.discount_value)
        if discount_type == "percentage" and discount_value is not None and discount_value > 100:
            raise ServiceError("Percentage discount cannot exceed 100")

        for field, value in payload.items():
            setattr(coupon, field, value)
        await self.db.commit()
        await self.db.refresh(coupon)
        return coupon

    async def delete_coupon(self, coupon_id: int) -> None:
        coupon = await self.get_coupon(coupon_id)
        await self.db.delete(coupon)
        await self.db.commit()
        logger.info(f"🗑️ 优惠券已删除: {coupon_id}")

    async def get_stats(self, coupon_id: int) -> Dict[str, Any]:
        coupon = await self.get_coupon(coupon_id)
        now = datetime.utcnow()
        days_remaining = math.ceil((coupon.valid_until - now).total_seconds() / 86400)
        return {
            "totalUsage": coupon.usage_count,
            "remainingUsage": (
                coupon.usage_limit - coupon.usage_count if coupon.usage_limit is not None else "Unlimited"
            ),
            "isActive": coupon.is_active,
            "isValid": coupon.is_valid_for_use(now),
            "daysRemaining": max(0, days_remaining),
        }

    async def validate_coupon(self, data: CouponValidate) -> Dict[str, Any]:
        """按顺序校验优惠券，返回折扣金额与折后金额"""
        if not data.code or not data.package_id or not data.amount:
            raise ServiceError("Coupon code, package ID, and amount are required")

        coupon = (await self.db.execute(
            select(Coupon).where(Coupon.code == data.code.strip().upper())
        )).scalar_one_or_none()
        if not coupon:
            raise NotFoundError("Invalid coupon code")

        now = datetime.utcnow()
        if not coupon.is_active:
            raise ServiceError("Coupon is not active")
        if now < coupon.valid_from:
            raise ServiceError("Coupon is not yet active")
        if now > coupon.valid_until:
            raise ServiceError("Coupon has expired")
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise ServiceError("Coupon usage limit has been reached")

        package = await self.db.get(Package, data.package_id)
        if not package:
            raise NotFoundError("Package not found")
        if not coupon.is_applicable_to_package(package.id, package.categories):
            raise ServiceError("Coupon is not applicable to this package")

        if data.amount < (coupon.minimum_amount or 0):
            raise ServiceError(f"Minimum order amount of {coupon.minimum_amount:g} SAR required")

        discount = coupon.calculate_discount(data.amount, now)
        return {
            "coupon": {
                "id": coupon.id,
                "code": coupon.code,
                "name": coupon.name,
                "discountType": coupon.discount_type,
                "discountValue": coupon.discount_value,
            },
            "discountAmount": discount,
            "finalAmount": round(data.amount - discount, 2),
        }
