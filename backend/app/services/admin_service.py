"""
管理后台服务
仪表盘统计、分析报表、用户管理、系统健康、数据导出
"""

import csv
import io
import json
import os
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import String, and_, cast, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.database import ping_database
from app.core.exceptions import NotFoundError, ServiceError
from app.core.stats_cache import StatsCache, stats_cache
from app.models.booking import Booking
from app.models.package import DIFFICULTY_LEVELS, PACKAGE_CATEGORIES, TOUR_STATUSES, Package
from app.models.user import USER_ROLES, User
from app.schemas.auth import UserOut
from app.schemas.booking import BookingOut
from app.schemas.common import serialize, serialize_list
from app.schemas.package import PackageOut

EXPORT_TYPES = ("users", "bookings", "packages")
EXPORT_FORMATS = ("json", "csv")
PERIOD_FORMATS = {"daily": "%Y-%m-%d", "monthly": "%Y-%m", "yearly": "%Y"}

_process_started = time.time()


def parse_date_range(start_date: Optional[str], end_date: Optional[str]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """YYYY-MM-DD -> (起始, 截止当天23:59:59.999999)"""
    start = end = None
    if start_date:
        try:
            start = datetime.strptime(start_date, "%Y-%m-%d")
        except ValueError:
            raise ServiceError("Invalid start date format. Use YYYY-MM-DD format.")
    if end_date:
        try:
            end = datetime.strptime(end_date, "%Y-%m-%d") + timedelta(days=1, microseconds=-1)
        except ValueError:
            raise ServiceError("Invalid end date format. Use YYYY-MM-DD format.")
    if start and end and start > end:
        raise ServiceError("Start date cannot be after end date.")
    return start, end


def _created_between(column, start: Optional[datetime], end: Optional[datetime]):
    conditions = []
    if start:
        conditions.append(column >= start)
    if end:
        conditions.append(column <= end)
    return and_(*conditions) if conditions else true()


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def _group_by_period(rows, period: str, value_key: Optional[str] = None) -> List[Dict[str, Any]]:
    """按周期聚合 (created_at, value) 行"""
    fmt = PERIOD_FORMATS.get(period, PERIOD_FORMATS["daily"])
    buckets: Dict[str, Dict[str, Any]] = {}
    for created_at, value in rows:
        key = created_at.strftime(fmt)
        bucket = buckets.setdefault(key, {"period": key, "count": 0})
        bucket["count"] += 1
        if value_key:
            bucket[value_key] = round(bucket.get(value_key, 0.0) + float(value or 0), 2)
    return [buckets[key] for key in sorted(buckets)]


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False, default=str)
    elif isinstance(value, datetime):
        value = value.isoformat()
    return str(value)


def to_csv(rows: List[Dict[str, Any]]) -> str:
    """表头为所有行键的并集；含逗号、引号、换行的值加引号，引号转义为两个"""
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_value(row.get(key)) for key in headers])
    return buffer.getvalue()


class AdminService:

    def __init__(self, db: AsyncSession, cache: Optional[StatsCache] = None):
        self.db = db
        self.cache = cache or stats_cache

    async def _count(self, model, *conditions) -> int:
        query = select(func.count(model.id))
        if conditions:
            query = query.where(*conditions)
        return (await self.db.execute(query)).scalar() or 0

    async def dashboard_stats(self, start_date: Optional[str], end_date: Optional[str]) -> Tuple[Dict[str, Any], bool]:
        """返回 (统计数据, 是否命中缓存)"""
        cache_key = f"dashboard_{start_date}_{end_date}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached, True

        start, end = parse_date_range(start_date, end_date)
        user_range = _created_between(User.created_at, start, end)
        booking_range = _created_between(Booking.created_at, start, end)

        total_bookings = await self._count(Booking, booking_range)
        confirmed = await self._count(Booking, booking_range, Booking.booking_status == "confirmed")
        revenue = (await self.db.execute(
            select(func.coalesce(func.sum(Booking.total_price), 0.0))
            .where(booking_range, Booking.payment_status == "paid")
        )).scalar() or 0

        recent_users = (await self.db.execute(
            select(User).where(user_range).order_by(User.created_at.desc(), User.id.desc()).limit(5)
        )).scalars().all()
        recent_bookings = (await self.db.execute(
            select(Booking).options(selectinload(Booking.package))
            .where(booking_range).order_by(Booking.created_at.desc(), Booking.id.desc()).limit(5)
        )).scalars().all()

        stats = {
            "overview": {
                "totalUsers": await self._count(User, user_range),
                "totalExperts": await self._count(User, user_range, User.role == "expert"),
                "totalPackages": await self._count(Package),
                "totalBookings": total_bookings,
                "confirmedBookings": confirmed,
                "pendingBookings": await self._count(Booking, booking_range, Booking.booking_status == "pending"),
                "totalRevenue": float(revenue),
                "conversionRate": _percentage(confirmed, total_bookings),
            },
            "recentActivity": {
                "recentUsers": serialize_list(UserOut, recent_users),
                "recentBookings": serialize_list(BookingOut, recent_bookings),
            },
            "dateRange": {"startDate": start_date, "endDate": end_date},
        }
        self.cache.set(cache_key, stats)
        return stats, False

    async def user_analytics(self, start_date: Optional[str], end_date: Optional[str], period: str) -> Dict[str, Any]:
        start, end = parse_date_range(start_date, end_date)
        user_range = _created_between(User.created_at, start, end)
        month_ago = datetime.utcnow() - timedelta(days=30)

        total = await self._count(User, user_range)
        verified = await self._count(User, user_range, User.is_email_verified.is_(True))
        active = await self._count(User, user_range, or_(User.last_login >= month_ago, User.created_at >= month_ago))

        growth_rows = (await self.db.execute(select(User.created_at, User.id).where(user_range))).all()
        roles = (await self.db.execute(
            select(User.role, func.count(User.id)).where(user_range).group_by(User.role)
        )).all()

        return {
            "overview": {
                "totalUsers": total,
                "activeUsers": active,
                "verifiedUsers": verified,
                "verificationRate": _percentage(verified, total),
            },
            "growth": _group_by_period(growth_rows, period),
            "roleDistribution": [{"role": role, "count": count} for role, count in roles],
            "period": period,
            "dateRange": {"startDate": start_date, "endDate": end_date},
        }

    async def _top_packages(self, conditions, order: str = "bookings", limit: int = 10) -> List[Dict[str, Any]]:
        booking_count = func.count(Booking.id).label("booking_count")
        revenue = func.coalesce(func.sum(Booking.total_price), 0.0).label("revenue")
        rows = await self.db.execute(
            select(Package.id, Package.title, Package.destination, booking_count, revenue)
            .join(Package, Package.id == Booking.package_id)
            .where(conditions)
            .group_by(Package.id, Package.title, Package.destination)
            .order_by((revenue if order == "revenue" else booking_count).desc())
            .limit(limit)
        )
        return [
            {"packageId": r[0], "title": r[1], "destination": r[2], "bookingCount": r[3], "revenue": float(r[4] or 0)}
            for r in rows.all()
        ]

    async def booking_analytics(self, start_date: Optional[str], end_date: Optional[str], period: str) -> Dict[str, Any]:
        start, end = parse_date_range(start_date, end_date)
        booking_range = _created_between(Booking.created_at, start, end)

        statuses = dict((await self.db.execute(
            select(Booking.booking_status, func.count(Booking.id)).where(booking_range).group_by(Booking.booking_status)
        )).all())
        average = (await self.db.execute(
            select(func.avg(Booking.total_price)).where(booking_range, Booking.booking_status == "confirmed")
        )).scalar()
        trend_rows = (await self.db.execute(
            select(Booking.created_at, Booking.total_price).where(booking_range)
        )).all()

        return {
            "overview": {
                "totalBookings": sum(statuses.values()),
                **{f"{status}Bookings": statuses.get(status, 0) for status in ("pending", "confirmed", "cancelled", "completed")},
                "averageBookingValue": round(float(average), 2) if average is not None else 0,
            },
            "trends": _group_by_period(trend_rows, period, "revenue"),
            "topPackages": await self._top_packages(booking_range),
            "period": period,
            "dateRange": {"startDate": start_date, "endDate": end_date},
        }

    async def revenue_analytics(self, start_date: Optional[str], end_date: Optional[str], period: str) -> Dict[str, Any]:
        start, end = parse_date_range(start_date, end_date)
        booking_range = _created_between(Booking.created_at, start, end)
        paid = and_(booking_range, Booking.payment_status == "paid")

        rows = (await self.db.execute(select(Booking.created_at, Booking.total_price).where(paid))).all()
        total = round(sum(float(price or 0) for _, price in rows), 2)
        by_payment = (await self.db.execute(
            select(Booking.payment_status, func.count(Booking.id), func.coalesce(func.sum(Booking.total_price), 0.0))
            .where(booking_range).group_by(Booking.payment_status)
        )).all()

        trends = [
            {"period": b["period"], "revenue": b.get("revenue", 0.0), "bookings": b["count"]}
            for b in _group_by_period(rows, period, "revenue")
        ]
        return {
            "totalRevenue": total,
            "averageOrderValue": round(total / len(rows), 2) if rows else 0,
            "trends": trends,
            "paymentStatusBreakdown": [
                {"status": status, "count": count, "amount": float(amount)} for status, count, amount in by_payment
            ],
            "byPackage": await self._top_packages(paid, order="revenue"),
            "period": period,
            "dateRange": {"startDate": start_date, "endDate": end_date},
        }

    async def package_analytics(self, start_date: Optional[str], end_date: Optional[str]) -> Dict[str, Any]:
        start, end = parse_date_range(start_date, end_date)
        booking_range = _created_between(Booking.created_at, start, end)

        by_status = dict((await self.db.execute(
            select(Package.tour_status, func.count(Package.id)).group_by(Package.tour_status)
        )).all())
        by_difficulty = dict((await self.db.execute(
            select(Package.difficulty, func.count(Package.id)).group_by(Package.difficulty)
        )).all())

        by_category = []
        for category in PACKAGE_CATEGORIES:
            count = await self._count(Package, cast(Package.categories, String).like(f'%"{category}"%'))
            if count:
                by_category.append({"category": category, "count": count})

        return {
            "overview": {
                "totalPackages": sum(by_status.values()),
                **{status: by_status.get(status, 0) for status in TOUR_STATUSES},
            },
            "byCategory": by_category,
            "byDifficulty": [
                {"difficulty": level, "count": by_difficulty[level]} for level in DIFFICULTY_LEVELS if level in by_difficulty
            ],
            # 无评分数据，按预订量取前10
            "topRated": await self._top_packages(booking_range),
            "dateRange": {"startDate": start_date, "endDate": end_date},
        }

    async def list_users(self, filters: Dict[str, Any], page: Any, limit: Any) -> Tuple[List[User], int, int, int]:
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 0
        if page < 1:
            raise ServiceError("Page must be a positive number.")
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            limit = 0
        if limit < 1 or limit > 100:
            raise ServiceError("Limit must be a number between 1 and 100.")

        conditions = []
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if filters.get("role"):
            conditions.append(User.role == filters["role"])
        if filters.get("status") == "active":
            conditions.append(User.is_active.is_(True))
        elif filters.get("status") == "inactive":
            conditions.append(User.is_active.is_(False))

        where = and_(*conditions) if conditions else true()
        total = await self._count(User, where)
        sort_column = {"name": User.name, "email": User.email, "role": User.role}.get(
            filters.get("sort_by"), User.created_at
        )
        order_by = sort_column.asc() if filters.get("sort_order") == "asc" else sort_column.desc()
        result = await self.db.execute(
            select(User).where(where).order_by(order_by, User.id.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total, page, limit

    async def _get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def update_user_status(self, user_id: int, is_active: Any, admin: User) -> User:
        if not isinstance(is_active, bool):
            raise ServiceError("isActive must be a boolean value")
        user = await self._get_user(user_id)
        if user.id == admin.id:
            raise ServiceError("Cannot modify your own account status")

        user.is_active = is_active
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"👤 管理员 {admin.id} {'启用' if is_active else '停用'}用户 {user.id}")
        return user

    async def update_user_role(self, user_id: int, role: Any, admin: User) -> User:
        if role not in USER_ROLES:
            raise ServiceError(f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")
        user = await self._get_user(user_id)
        if user.id == admin.id:
            raise ServiceError("Cannot modify your own role")

        user.role = role
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"👤 管理员 {admin.id} 将用户 {user.id} 角色设为 {role}")
        return user

    async def system_health(self) -> Dict[str, Any]:
        latency = await ping_database()
        uptime = time.time() - _process_started
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "database": {
                "status": "connected",
                "responseTime": f"{latency:.0f}ms",
            },
            "server": {
                "uptime": f"{int(uptime // 3600)}h {int(uptime % 3600 // 60)}m",
                "pid": os.getpid(),
            },
            "collections": {
                "users": await self._count(User),
                "packages": await self._count(Package),
                "bookings": await self._count(Booking),
            },
            "cache": {"statsEntries": len(self.cache), "ttl": self.cache.ttl},
        }

    async def recent_activity(self, limit: int = 10) -> Dict[str, Any]:
        users = (await self.db.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc()).limit(limit)
        )).scalars().all()
        bookings = (await self.db.execute(
            select(Booking).options(selectinload(Booking.package))
            .order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit)
        )).scalars().all()
        packages = (await self.db.execute(
            select(Package).order_by(Package.created_at.desc(), Package.id.desc()).limit(limit)
        )).scalars().all()

        activities = (
            [{"type": "user", "createdAt": u.created_at, "data": serialize(UserOut, u)} for u in users]
            + [{"type": "booking", "createdAt": b.created_at, "data": serialize(BookingOut, b)} for b in bookings]
            + [{"type": "package", "createdAt": p.created_at, "data": serialize(PackageOut, p)} for p in packages]
        )
        activities.sort(key=lambda a: a["createdAt"], reverse=True)
        return {"activities": activities[:limit], "timestamp": datetime.utcnow().isoformat()}

    async def export_data(self, export_type: str, fmt: str, start_date: Optional[str] = None,
                          end_date: Optional[str] = None) -> Tuple[Any, str]:
        """返回 (json行列表 或 csv文本, 文件名)"""
        if export_type not in EXPORT_TYPES:
            raise ServiceError("Invalid export type. Must be users, bookings, or packages")
        if fmt not in EXPORT_FORMATS:
            raise ServiceError("Invalid format. Must be json or csv")

        start, end = parse_date_range(start_date, end_date)
        if export_type == "users":
            objs = (await self.db.execute(
                select(User).where(_created_between(User.created_at, start, end)).order_by(User.id)
            )).scalars().all()
            rows = serialize_list(UserOut, objs)
        elif export_type == "bookings":
            objs = (await self.db.execute(
                select(Booking).options(selectinload(Booking.package))
                .where(_created_between(Booking.created_at, start, end)).order_by(Booking.id)
            )).scalars().all()
            rows = serialize_list(BookingOut, objs)
        else:
            objs = (await self.db.execute(
                select(Package).where(_created_between(Package.created_at, start, end)).order_by(Package.id)
            )).scalars().all()
            rows = serialize_list(PackageOut, objs)

        if not rows:
            raise ServiceError("No data available for export")

        filename = f"{export_type}_export_{datetime.utcnow().strftime('%Y-%m-%d')}.{fmt}"
        logger.info(f"📤 导出 {export_type}: {len(rows)} 条 ({fmt})")
        if fmt == "csv":
            return to_csv(rows), filename
        return rows, filename
