"""
管理后台API端点
整个路由仅限管理员访问
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.admin import UserRoleUpdate, UserStatusUpdate
from app.schemas.auth import UserOut
from app.schemas.common import serialize, serialize_list
from app.services.admin_service import AdminService

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required")

router = APIRouter(dependencies=[Depends(ADMIN_ONLY)])


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_async_db),
):
    stats, from_cache = await AdminService(db).dashboard_stats(start_date, end_date)
    if from_cache:
        return success_response(stats, "Dashboard statistics retrieved from cache")
    return success_response(stats, "Dashboard statistics retrieved successfully")


@router.get("/analytics/users")
async def get_user_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    period: str = Query("monthly", pattern="^(daily|monthly|yearly)$"),
    db: AsyncSession = Depends(get_async_db),
):
    analytics = await AdminService(db).user_analytics(start_date, end_date, period)
    return success_response(analytics, "User analytics retrieved successfully")


@router.get("/analytics/bookings")
async def get_booking_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    period: str = Query("monthly", pattern="^(daily|monthly|yearly)$"),
    db: AsyncSession = Depends(get_async_db),
):
    analytics = await AdminService(db).booking_analytics(start_date, end_date, period)
    return success_response(analytics, "Booking analytics retrieved successfully")


@router.get("/analytics/revenue")
async def get_revenue_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    period: str = Query("monthly", pattern="^(daily|monthly|yearly)$"),
    db: AsyncSession = Depends(get_async_db),
):
    analytics = await AdminService(db).revenue_analytics(start_date, end_date, period)
    return success_response(analytics, "Revenue analytics retrieved successfully")


@router.get("/analytics/packages")
async def get_package_analytics(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_async_db),
):
    analytics = await AdminService(db).package_analytics(start_date, end_date)
    return success_response(analytics, "Package analytics retrieved successfully")


@router.get("/users")
async def get_users(
    page: str = "1",
    limit: str = "10",
    search: Optional[str] = None,
    role: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_async_db),
):
    # page/limit 以字符串接收，由服务层给出统一的校验文案
    filters = {
        "search": search,
        "role": role,
        "status": status_filter,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    users, total, page_num, limit_num = await AdminService(db).list_users(filters, page, limit)
    return success_response({
        "users": serialize_list(UserOut, users),
        "pagination": build_pagination(page_num, limit_num, total, "totalUsers"),
    }, "Users retrieved successfully")


@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    user = await AdminService(db).update_user_status(user_id, data.is_active, current_user)
    state = "activated" if user.is_active else "deactivated"
    return success_response({"user": serialize(UserOut, user)}, f"User {state} successfully")


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    user = await AdminService(db).update_user_role(user_id, data.role, current_user)
    return success_response({"user": serialize(UserOut, user)}, f"User role updated to {user.role} successfully")


@router.get("/system/health")
async def get_system_health(db: AsyncSession = Depends(get_async_db)):
    health = await AdminService(db).system_health()
    return success_response(health, "System health retrieved successfully")


@router.get("/activity/recent")
async def get_recent_activity(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    activity = await AdminService(db).recent_activity(limit)
    return success_response(activity, "Recent activity retrieved successfully")


@router.get("/export/{export_type}")
async def export_data(
    export_type: str,
    format: str = "json",
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_async_db),
):
    content, filename = await AdminService(db).export_data(export_type, format, start_date, end_date)
    logger.info(f"📤 管理员导出: {filename}")
    if format == "csv":
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return success_response({
        "data": content,
        "count": len(content),
        "filename": filename,
    }, f"{export_type.capitalize()} data exported successfully")
