"""
优惠券API端点
除校验接口外均为管理员操作
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import get_current_user, require_roles
from app.models.user import User
from app.schemas.common import serialize, serialize_list
from app.schemas.coupon import CouponCreate, CouponOut, CouponUpdate, CouponValidate
from app.services.coupon_service import CouponService

router = APIRouter()

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required")


@router.post("/validate")
async def validate_coupon(
    data: CouponValidate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    result = await CouponService(db).validate_coupon(data)
    return success_response(result, "Coupon is valid")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_coupon(
    data: CouponCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    coupon = await CouponService(db).create_coupon(data, current_user)
    return success_response({"coupon": serialize(CouponOut, coupon)}, "Coupon created successfully")


@router.get("/")
async def list_coupons(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    discount_type: Optional[str] = Query(None, alias="discountType"),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(active|expired|upcoming)$"),
    search: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    filters = {
        "is_active": is_active,
        "discount_type": discount_type,
        "status": status_filter,
        "search": search,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    coupons, total = await CouponService(db).list_coupons(filters, page, limit)
    return success_response({
        "coupons": serialize_list(CouponOut, coupons),
        "pagination": build_pagination(page, limit, total, "totalCoupons"),
    }, "Coupons retrieved successfully")


@router.get("/{coupon_id}")
async def get_coupon(
    coupon_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    coupon = await CouponService(db).get_coupon(coupon_id)
    return success_response({"coupon": serialize(CouponOut, coupon)}, "Coupon retrieved successfully")


@router.put("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    coupon = await CouponService(db).update_coupon(coupon_id, data)
    return success_response({"coupon": serialize(CouponOut, coupon)}, "Coupon updated successfully")


@router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await CouponService(db).delete_coupon(coupon_id)
    return success_response(message="Coupon deleted successfully")


@router.get("/{coupon_id}/stats")
async def get_coupon_stats(
    coupon_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    stats = await CouponService(db).get_stats(coupon_id)
    return success_response(stats, "Coupon statistics retrieved successfully")
