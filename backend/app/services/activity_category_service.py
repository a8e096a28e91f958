"""
活动分类服务（多级树）
"""

from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError
from app.models.activity_category import ActivityCategory
from app.models.user import User
from app.schemas.activity_category import ActivityCategoryCreate, ActivityCategoryOut, ActivityCategoryUpdate
from app.schemas.common import serialize
from app.utils.slug import slugify


def build_category_tree(categories: List[ActivityCategory]) -> List[Dict[str, Any]]:
    """扁平列表 -> 嵌套树；父节点不在列表中的视为根"""
    nodes = {c.id: {**serialize(ActivityCategoryOut, c), "children": []} for c in categories}
    roots = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id)
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


class ActivityCategoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_category(self, category_id: int) -> ActivityCategory:
        category = await self.db.get(ActivityCategory, category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    async def list_categories(self, active_only: bool = False) -> List[ActivityCategory]:
        query = select(ActivityCategory)
        if active_only:
            query = query.where(ActivityCategory.is_active.is_(True))
        result = await self.db.execute(
            query.order_by(ActivityCategory.level, ActivityCategory.sort_order, ActivityCategory.name)
        )
        return list(result.scalars().all())

    async def get_tree(self, active_only: bool = True) -> List[Dict[str, Any]]:
        return build_category_tree(await self.list_categories(active_only))

    async def get_subcategories(self, category_id: int) -> List[ActivityCategory]:
        result = await self.db.execute(
            select(ActivityCategory)
            .where(ActivityCategory.parent_id == category_id)
            .order_by(ActivityCategory.sort_order, ActivityCategory.name)
        )
        return list(result.scalars().all())

    async def get_stats(self) -> Dict[str, Any]:
        row = (await self.db.execute(select(
            func.count(ActivityCategory.id),
            func.sum(case((ActivityCategory.is_active.is_(True), 1), else_=0)),
            func.sum(case((ActivityCategory.level == 0, 1), else_=0)),
            func.sum(case((ActivityCategory.level > 0, 1), else_=0)),
        ))).one()
        by_level = (await self.db.execute(
            select(ActivityCategory.level, func.count(ActivityCategory.id))
            .group_by(ActivityCategory.level).order_by(ActivityCategory.level)
        )).all()

        total, active = row[0] or 0, row[1] or 0
        return {
            "overview": {
                "totalCategories": total,
                "activeCategories": active,
                "inactiveCategories": total - active,
                "topLevelCategories": row[2] or 0,
                "subcategories": row[3] or 0,
            },
            "byLevel": [{"level": level, "count": count} for level, count in by_level],
        }

    async def _unique_slug(self, name: str, exclude_id: Optional[int] = None) -> str:
        base = slugify(name) or "category"
        slug, suffix = base, 1
        while True:
            query = select(ActivityCategory.id).where(ActivityCategory.slug == slug)
            if exclude_id is not None:
                query = query.where(ActivityCategory.id != exclude_id)
            if (await self.db.execute(query)).first() is None:
                return slug
            suffix += 1
            slug = f"{base}-{suffix}"

    async def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = select(ActivityCategory.id).where(func.lower(ActivityCategory.name) == name.lower())
        if exclude_id is not None:
            query = query.where(ActivityCategory.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def _parent(self, parent_id: Optional[int]) -> Optional[ActivityCategory]:
        if parent_id is None:
            return None
        parent = await self.db.get(ActivityCategory, parent_id)
        if not parent:
            raise ServiceError("Parent category not found")
        return parent

    @staticmethod
    def _place(category: ActivityCategory, parent: Optional[ActivityCategory]) -> None:
        category.level = parent.level + 1 if parent else 0
        category.path = f"{parent.path}/{category.slug}" if parent and parent.path else category.slug

    async def _refresh_descendant_paths(self, category: ActivityCategory) -> None:
        for child in await self.get_subcategories(category.id):
            self._place(child, category)
            await self._refresh_descendant_paths(child)

    async def create_category(self, data: ActivityCategoryCreate, user: User) -> ActivityCategory:
        name = data.name.strip()
        if not name:
            raise ServiceError("Category name is required")
        if await self._name_taken(name):
            raise ServiceError("Category with this name already exists")

        parent = await self._parent(data.parent_id)
        category = ActivityCategory(**data.model_dump(), created_by_id=user.id)
        category.name = name
        category.slug = await self._unique_slug(name)
        self._place(category, parent)

        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        logger.info(f"🏷️ 活动分类已创建: {category.path}")
        return category

    async def _is_descendant(self, candidate_id: int, ancestor_id: int) -> bool:
        """candidate 是否位于 ancestor 的子树中"""
        current = await self.db.get(ActivityCategory, candidate_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id == ancestor_id:
                return True
            current = await self.db.get(ActivityCategory, current.parent_id)
        return False

    async def update_category(self, category_id: int, data: ActivityCategoryUpdate) -> ActivityCategory:
        category = await self.get_category(category_id)
        payload = data.model_dump(exclude_unset=True)

        relocate = "parent_id" in payload and payload["parent_id"] != category.parent_id
        if relocate and payload["parent_id"] is not None:
            if payload["parent_id"] == category.id:
                raise ServiceError("Category cannot be its own parent")
            if await self._is_descendant(payload["parent_id"], category.id):
                raise ServiceError("Cannot create circular reference")

        renamed = payload.get("name") and payload["name"].strip() != category.name
        if renamed:
            payload["name"] = payload["name"].strip()
            if await self._name_taken(payload["name"], category.id):
                raise ServiceError("Category with this name already exists")

        parent_id = payload.get("parent_id", category.parent_id)
        parent = await self._parent(parent_id)

        for field, value in payload.items():
            setattr(category, field, value)
        if renamed:
            category.slug = await self._unique_slug(category.name, category.id)
        if renamed or relocate:
            self._place(category, parent)
            await self._refresh_descendant_paths(category)

        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        category = await self.get_category(category_id)
        if await self.get_subcategories(category.id):
            raise ServiceError("Cannot delete category with subcategories")
        await self.db.delete(category)
        await self.db.commit()
        logger.info(f"🗑️ 活动分类已删除: {category_id}")

    async def set_status(self, category_id: int, is_active: Any) -> ActivityCategory:
        if not isinstance(is_active, bool):
            raise ServiceError("isActive must be a boolean value")
        category = await self.get_category(category_id)
        category.is_active = is_active
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def reorder(self, categories: Any) -> None:
        if not isinstance(categories, list):
            raise ServiceError("Categories must be an array")

        for index, item in enumerate(categories):
            if not isinstance(item, dict) or "id" not in item:
                raise ServiceError(f"Invalid category entry at position {index}")
            category = await self.get_category(int(item["id"]))
            category.sort_order = int(item.get("order", index))
        await self.db.commit()
