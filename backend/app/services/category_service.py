"""
套餐分类服务
"""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import String, and_, cast, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError
from app.models.booking import Booking
from app.models.category import CATEGORY_STATUSES, Category
from app.models.package import Package
from app.models.user import User
from app.schemas.category import CategoryCreate, CategoryOrderItem, CategoryUpdate
from app.utils.slug import slugify


def _category_filter(key: str):
    return cast(Package.categories, String).like(f'%"{key}"%')


class CategoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_category(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    async def _slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def get_stats(self, category: Category) -> Dict[str, Any]:
        """分类下可售套餐数、已确认/已完成预订数与收入"""
        package_ids = (await self.db.execute(
            select(Package.id).where(_category_filter(category.match_key), Package.availability.is_(True))
        )).scalars().all()
        package_count = len(package_ids)

        total_bookings, revenue = 0, 0.0
        if package_ids:
            row = (await self.db.execute(
                select(func.count(Booking.id), func.coalesce(func.sum(Booking.total_price), 0.0)).where(
                    Booking.package_id.in_(package_ids),
                    Booking.booking_status.in_(("confirmed", "completed")),
                )
            )).one()
            total_bookings, revenue = row[0] or 0, float(row[1] or 0)

        conversion = total_bookings / package_count * 100 if package_count else 0
        return {
            "packageCount": package_count,
            "totalBookings": total_bookings,
            "revenue": revenue,
            "conversionRate": round(conversion, 1),
        }

    async def list_categories(self, filters: Dict[str, Any]) -> List[Tuple[Category, Dict[str, Any]]]:
        conditions = []
        if filters.get("status"):
            conditions.append(Category.status == filters["status"])
        if filters.get("parent_id") is not None:
            conditions.append(Category.parent_id == filters["parent_id"])
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            conditions.append(or_(
                Category.name_en.ilike(pattern),
                Category.name_ar.ilike(pattern),
                Category.description_en.ilike(pattern),
            ))

        where = and_(*conditions) if conditions else true()
        result = await self.db.execute(
            select(Category).where(where).order_by(Category.sort_order, Category.name_en)
        )
        return [(category, await self.get_stats(category)) for category in result.scalars().all()]

    async def create_category(self, data: CategoryCreate, user: User) -> Category:
        if not (data.name_en or "").strip() or not (data.name_ar or "").strip():
            raise ServiceError("Category name in English and Arabic is required")

        slug = slugify(data.name_en)
        if await self._slug_taken(slug):
            raise ServiceError("Category with this name already exists")

        payload = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        payload["name_en"] = data.name_en.strip()
        payload["name_ar"] = data.name_ar.strip()
        if "sort_order" not in payload:
            max_order = (await self.db.execute(select(func.max(Category.sort_order)))).scalar()
            payload["sort_order"] = (max_order or 0) + 1

        category = Category(**payload, slug=slug, created_by_id=user.id)
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        logger.info(f"🗂️ 分类已创建: {category.slug}")
        return category

    async def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        category = await self.get_category(category_id)
        payload = data.model_dump(exclude_unset=True)

        for name_field in ("name_en", "name_ar"):
            if name_field in payload and not (payload[name_field] or "").strip():
                raise ServiceError("Category name in English and Arabic is required")

        if payload.get("name_en") and payload["name_en"] != category.name_en:
            slug = slugify(payload["name_en"])
            if await self._slug_taken(slug, category.id):
                raise ServiceError("Category with this name already exists")
            category.slug = slug

        for field, value in payload.items():
            setattr(category, field, value)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        category = await self.get_category(category_id)
        in_use = (await self.db.execute(
            select(func.count(Package.id)).where(_category_filter(category.match_key))
        )).scalar() or 0
        if in_use:
            raise ServiceError(f"Cannot delete category. It is being used by {in_use} package(s).")

        await self.db.delete(category)
        await self.db.commit()
        logger.info(f"🗑️ 分类已删除: {category_id}")

    async def update_status(self, category_id: int, status: str) -> Category:
        if status not in CATEGORY_STATUSES:
            raise ServiceError('Invalid status. Must be "active" or "inactive"')
        category = await self.get_category(category_id)
        category.status = status
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def update_order(self, items: List[CategoryOrderItem]) -> None:
        ids = [item.id for item in items]
        result = await self.db.execute(select(Category).where(Category.id.in_(ids)))
        by_id = {c.id: c for c in result.scalars().all()}
        for item in items:
            if item.id in by_id:
                by_id[item.id].sort_order = item.order
        await self.db.commit()

    async def bulk_create(self, items: List[Dict[str, Any]], user: User) -> Dict[str, Any]:
        """逐条创建，单条失败记录到 errors 不影响其余"""
        created: List[Category] = []
        errors: List[Dict[str, Any]] = []
        for index, raw in enumerate(items):
            try:
                data = CategoryCreate.model_validate(raw)
                created.append(await self.create_category(data, user))
            except ValidationError as e:
                errors.append({"index": index, "message": e.errors()[0].get("msg")})
            except ServiceError as e:
                errors.append({"index": index, "message": e.message})
        logger.info(f"🗂️ 批量创建分类: 成功 {len(created)}，失败 {len(errors)}")
        return {"created": created, "errors": errors}

    async def export(self) -> List[Dict[str, Any]]:
        rows = []
        for category, stats in await self.list_categories({}):
            rows.append({
                "id": category.id,
                "nameEn": category.name_en,
                "nameAr": category.name_ar,
                "descriptionEn": category.description_en,
                "descriptionAr": category.description_ar,
                "slug": category.slug,
                "status": category.status,
                "order": category.sort_order,
                **stats,
            })
        return rows
