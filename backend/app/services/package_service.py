"""
旅行套餐服务
"""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import String, and_, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, PermissionDeniedError, ServiceError
from app.core.logging_config import log_database_operation
from app.models.booking import Booking
from app.models.package import PACKAGE_CATEGORIES, Package
from app.models.user import User
from app.schemas.common import serialize
from app.schemas.package import PackageCreate, PackageOut, PackageTranslationUpdate, PackageUpdate
from app.services.currency_service import currency_service
from app.services.localization_service import localization_service
from app.utils.slug import slugify

SORT_FIELDS = {
    "created_at": Package.created_at,
    "createdAt": Package.created_at,
    "price": Package.price,
    "duration": Package.duration,
    "title": Package.title,
}

TRANSLATABLE_TEXT_FIELDS = ("title", "description", "destination")
TRANSLATABLE_LIST_FIELDS = ("inclusions", "exclusions", "highlights")
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")


def _text_length(value: Any) -> int:
    return len(value.strip()) if isinstance(value, str) else 0


def validate_package_data(data: Dict[str, Any], partial: bool = False) -> Optional[str]:
    """
    校验套餐数据，返回第一条错误文案；partial=True 时只校验提交了的字段
    """
    def _check(field: str) -> bool:
        return not partial or field in data

    if _check("title") and _text_length(data.get("title")) < 3:
        return "Title must be at least 3 characters long"
    if _check("description") and _text_length(data.get("description")) < 10:
        return "Description must be at least 10 characters long"
    if _check("destination") and _text_length(data.get("destination")) < 2:
        return "Destination must be at least 2 characters long"

    if _check("duration"):
        duration = data.get("duration")
        if not isinstance(duration, int) or duration < 1 or duration > 365:
            return "Duration must be between 1 and 365 days"

    if not partial or "price" in data or "price_adult" in data:
        price = data.get("price_adult") or data.get("price")
        if price is None or price < 0:
            return "Price must be a positive number"

    categories = data.get("categories")
    if categories:
        invalid = [c for c in categories if c not in PACKAGE_CATEGORIES]
        if invalid:
            return f"Invalid categories: {', '.join(invalid)}"

    return None


def check_package_invariants(package: Package) -> Optional[str]:
    if package.min_age is not None and package.max_age is not None and package.min_age > package.max_age:
        return "Minimum age cannot be greater than maximum age"
    if package.min_people and package.max_travelers and package.min_people > package.max_travelers:
        return "Minimum people cannot be greater than maximum people"
    if package.sale_start_date and package.sale_end_date and package.sale_start_date > package.sale_end_date:
        return "Sale start date cannot be after end date"
    return None


def can_modify_package(user: User, package: Package) -> bool:
    if user.role == "admin":
        return True
    return user.role == "expert" and package.created_by_id == user.id


def is_publicly_visible(package: Package) -> bool:
    return package.tour_status == "published" and bool(package.availability)


async def present_package(package: Package, language: str = "en", currency: Optional[str] = None) -> Dict[str, Any]:
    """序列化 + 本地化 + 货币换算"""
    language = localization_service.validate_language(language)
    data = localization_service.localize_package(serialize(PackageOut, package), language)
    price_info = await currency_service.convert_price_to_user_currency(
        data["price"], data.get("currency") or "SAR", currency
    )
    data.update(price_info)
    data["formattedPrice"] = currency_service.format_price(price_info["price"], price_info["currency"])
    return data


class PackageService:
    """套餐增删改查、检索、翻译"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_package(self, package_id: int) -> Package:
        package = await self.db.get(Package, package_id)
        if not package:
            raise NotFoundError("Package not found")
        return package

    async def get_editable_package(self, package_id: int, user: User) -> Package:
        package = await self.get_package(package_id)
        if not can_modify_package(user, package):
            raise PermissionDeniedError("You can only modify packages you created")
        return package

    async def _paginate(self, query, page: int, limit: int, order_by) -> Tuple[List[Package], int]:
        total = (await self.db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        result = await self.db.execute(
            query.order_by(order_by).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    def _order_by(sort_by: str, sort_order: str):
        column = SORT_FIELDS.get(sort_by, Package.created_at)
        return column.asc() if sort_order == "asc" else column.desc()

    async def list_packages(self, filters: Dict[str, Any], viewer: Optional[User] = None,
                            page: int = 1, limit: int = 10) -> Tuple[List[Package], int]:
        conditions = []

        destination = filters.get("destination")
        if destination:
            pattern = f"%{destination}%"
            conditions.append(or_(
                Package.destination.ilike(pattern),
                Package.destination_ar.ilike(pattern),
                Package.main_destination.ilike(pattern),
            ))

        if filters.get("category"):
            conditions.append(cast(Package.categories, String).like(f'%"{filters["category"]}"%'))

        if filters.get("min_price") is not None:
            conditions.append(Package.price >= filters["min_price"])
        if filters.get("max_price") is not None:
            conditions.append(Package.price <= filters["max_price"])
        if filters.get("min_duration") is not None:
            conditions.append(Package.duration >= filters["min_duration"])
        if filters.get("max_duration") is not None:
            conditions.append(Package.duration <= filters["max_duration"])

        if filters.get("difficulty"):
            conditions.append(Package.difficulty == filters["difficulty"])
        if filters.get("availability") is not None:
            conditions.append(Package.availability == filters["availability"])
        if filters.get("featured") is not None:
            conditions.append(Package.is_featured == filters["featured"])
        if filters.get("tour_status"):
            conditions.append(Package.tour_status == filters["tour_status"])
        if filters.get("booking_status"):
            conditions.append(Package.booking_status == filters["booking_status"])

        search = filters.get("search")
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                Package.title.ilike(pattern),
                Package.description.ilike(pattern),
                Package.destination.ilike(pattern),
                cast(Package.tags, String).ilike(pattern),
                Package.title_ar.ilike(pattern),
                Package.description_ar.ilike(pattern),
                Package.destination_ar.ilike(pattern),
            ))

        # 非管理员只能看到已发布且可售的套餐
        if not viewer or viewer.role != "admin":
            conditions.append(Package.tour_status == "published")
            conditions.append(Package.availability.is_(True))

        query = select(Package).where(and_(*conditions)) if conditions else select(Package)
        order_by = self._order_by(filters.get("sort_by", "created_at"), filters.get("sort_order", "desc"))
        return await self._paginate(query, page, limit, order_by)

    async def search_packages(self, q: Optional[str], tags: Optional[str], page: int = 1, limit: int = 10,
                              sort_by: str = "created_at", sort_order: str = "desc") -> Tuple[List[Package], int]:
        conditions = [Package.availability.is_(True)]
        if q:
            pattern = f"%{q}%"
            conditions.append(or_(
                Package.title.ilike(pattern),
                Package.description.ilike(pattern),
                Package.destination.ilike(pattern),
                cast(Package.tags, String).ilike(pattern),
            ))
        if tags:
            tag_list = [t.strip().lower() for t in tags.split(",") if t.strip()]
            if tag_list:
                conditions.append(or_(*[
                    cast(Package.tags, String).like(f'%"{tag}"%') for tag in tag_list
                ]))

        query = select(Package).where(and_(*conditions))
        return await self._paginate(query, page, limit, self._order_by(sort_by, sort_order))

    async def get_expert_packages(self, expert_id: int, page: int = 1, limit: int = 10,
                                  sort_by: str = "created_at", sort_order: str = "desc"):
        expert = await self.db.get(User, expert_id)
        if not expert or expert.role != "expert":
            raise NotFoundError("Expert not found")
        query = select(Package).where(Package.created_by_id == expert_id)
        packages, total = await self._paginate(query, page, limit, self._order_by(sort_by, sort_order))
        return expert, packages, total

    async def get_visible_package(self, package_id: int, viewer: Optional[User]) -> Package:
        package = await self.get_package(package_id)
        if (not viewer or viewer.role != "admin") and not is_publicly_visible(package):
            raise NotFoundError("Package not found")
        return package

    async def create_package(self, data: PackageCreate, user: User) -> Package:
        if user.role not in ("admin", "expert"):
            raise PermissionDeniedError("Only admin and expert users can create packages")

        payload = data.model_dump(exclude_unset=True)
        error = validate_package_data(payload)
        if error:
            raise ServiceError(error)

        for field in TRANSLATABLE_TEXT_FIELDS:
            payload[field] = payload[field].strip()
        payload["price"] = payload.get("price_adult") or payload["price"]
        payload.setdefault("price_adult", payload["price"])
        payload["total_nights"] = payload["duration"] - 1
        payload["slug"] = slugify(payload["title"])
        payload = {k: v for k, v in payload.items() if v is not None}

        package = Package(**payload, created_by_id=user.id)
        error = check_package_invariants(package)
        if error:
            raise ServiceError(error)

        self.db.add(package)
        await self.db.commit()
        await self.db.refresh(package)
        log_database_operation("INSERT", "packages", package.id)
        logger.info(f"📦 用户 {user.id} 创建套餐 {package.id}: {package.title}")
        return package

    async def update_package(self, package_id: int, data: PackageUpdate, user: User) -> Package:
        package = await self.get_editable_package(package_id, user)

        payload = data.model_dump(exclude_unset=True)
        error = validate_package_data(payload, partial=True)
        if error:
            raise ServiceError(error)

        for field in TRANSLATABLE_TEXT_FIELDS:
            if payload.get(field):
                payload[field] = payload[field].strip()
        if payload.get("title"):
            payload["slug"] = slugify(payload["title"])
        if payload.get("duration"):
            payload["total_nights"] = payload["duration"] - 1

        for field, value in payload.items():
            setattr(package, field, value)

        error = check_package_invariants(package)
        if error:
            await self.db.rollback()
            raise ServiceError(error)

        await self.db.commit()
        await self.db.refresh(package)
        log_database_operation("UPDATE", "packages", package.id)
        return package

    async def delete_package(self, package_id: int, user: User) -> None:
        package = await self.get_editable_package(package_id, user)

        active = (await self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.package_id == package.id,
                Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )).scalar() or 0
        if active:
            raise ServiceError("Cannot delete package with active bookings. Cancel bookings first.")

        # 删除前加载关联，避免异步会话中的懒加载
        await self.db.execute(
            select(Package)
            .options(selectinload(Package.bookings), selectinload(Package.media))
            .where(Package.id == package.id)
            .execution_options(populate_existing=True)
        )
        await self.db.delete(package)
        await self.db.commit()
        log_database_operation("DELETE", "packages", package_id)
        logger.info(f"🗑️ 用户 {user.id} 删除套餐 {package_id}")

    async def toggle_availability(self, package_id: int, user: User) -> Package:
        package = await self.get_editable_package(package_id, user)
        package.availability = not package.availability
        await self.db.commit()
        await self.db.refresh(package)
        return package

    async def update_translation(self, package_id: int, body: PackageTranslationUpdate, user: User) -> Package:
        if body.language not in ("en", "ar"):
            raise ServiceError("Invalid language. Must be en or ar")

        package = await self.get_editable_package(package_id, user)
        values = body.model_dump()
        suffix = "_ar" if body.language == "ar" else ""

        def _value(field):
            # ar 时同时接受 title / title_ar / titleAr
            for key in (field, f"{field}_ar", f"{field}Ar") if suffix else (field,):
                if values.get(key):
                    return values[key]
            return None

        for field in TRANSLATABLE_TEXT_FIELDS:
            value = _value(field)
            if isinstance(value, str) and value.strip():
                setattr(package, f"{field}{suffix}", value.strip())

        for field in TRANSLATABLE_LIST_FIELDS:
            value = _value(field)
            if isinstance(value, str):
                value = [item.strip() for item in value.split(",") if item.strip()]
            if value:
                setattr(package, f"{field}{suffix}", list(value))

        itinerary = _value("itinerary")
        if itinerary:
            days = [dict(day) for day in package.itinerary or []]
            for index, update in enumerate(itinerary):
                if index >= len(days):
                    break
                for key in ("title", "description", "activities"):
                    new_value = update.get(key) if not suffix else (update.get(key) or update.get(f"{key}_ar"))
                    if new_value:
                        days[index][f"{key}{suffix}"] = new_value
            package.itinerary = days

        await self.db.commit()
        await self.db.refresh(package)
        logger.info(f"🌐 套餐 {package.id} 的 {body.language} 翻译已更新")
        return package

    async def get_translations(self, package_id: int) -> Dict[str, Any]:
        package = await self.get_package(package_id)
        en = {}
        ar = {}
        for field in TRANSLATABLE_TEXT_FIELDS + TRANSLATABLE_LIST_FIELDS:
            en[field] = getattr(package, field)
            ar[field] = getattr(package, f"{field}_ar")
        en["itinerary"] = [
            {"day": d.get("day"), "title": d.get("title"), "description": d.get("description"),
             "activities": d.get("activities") or []}
            for d in package.itinerary or []
        ]
        ar["itinerary"] = [
            {"day": d.get("day"), "title": d.get("title_ar"), "description": d.get("description_ar"),
             "activities": d.get("activities_ar") or []}
            for d in package.itinerary or []
        ]
        return {
            "packageId": package.id,
            "en": en,
            "ar": ar,
            "translationStatus": package.arabic_translation_status,
        }

    async def get_translation_stats(self) -> Dict[str, Any]:
        total = (await self.db.execute(select(func.count(Package.id)))).scalar() or 0

        async def _count_filled(column) -> int:
            return (await self.db.execute(
                select(func.count(Package.id)).where(column.isnot(None), column != "")
            )).scalar() or 0

        counts = {
            "title": await _count_filled(Package.title_ar),
            "description": await _count_filled(Package.description_ar),
            "destination": await _count_filled(Package.destination_ar),
        }

        def _percentage(count):
            return int(count * 100 / total + 0.5) if total else 0

        arabic = {field: {"count": count, "percentage": _percentage(count)} for field, count in counts.items()}
        overall = int(sum(v["percentage"] for v in arabic.values()) / 3 + 0.5)
        return {
            "totalPackages": total,
            "arabicTranslations": arabic,
            "overallCompleteness": overall,
        }
