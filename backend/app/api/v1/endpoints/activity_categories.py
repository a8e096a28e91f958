"""
活动分类API端点
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.activity_category import (
    ActivityCategoryCreate,
    ActivityCategoryOut,
    ActivityCategoryReorder,
    ActivityCategoryStatus,
    ActivityCategoryUpdate,
)
from app.schemas.common import serialize, serialize_list
from app.services.activity_category_service import ActivityCategoryService

router = APIRouter()

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required.")


@router.get("/")
async def get_categories(
    flat: bool = False,
    active_only: bool = Query(True, alias="activeOnly"),
    db: AsyncSession = Depends(get_async_db),
):
    service = ActivityCategoryService(db)
    if flat:
        categories = serialize_list(ActivityCategoryOut, await service.list_categories(active_only))
    else:
        categories = await service.get_tree(active_only)
    return success_response({"categories": categories}, "Categories retrieved successfully")


@router.get("/stats")
async def get_category_stats(
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    stats = await ActivityCategoryService(db).get_stats()
    return success_response(stats, "Category statistics retrieved successfully")


@router.put("/reorder/bulk")
async def reorder_categories(
    data: ActivityCategoryReorder,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await ActivityCategoryService(db).reorder(data.categories)
    return success_response(message="Categories reordered successfully")


@router.get("/{category_id}")
async def get_category(category_id: int, db: AsyncSession = Depends(get_async_db)):
    service = ActivityCategoryService(db)
    category = await service.get_category(category_id)
    subcategories = await service.get_subcategories(category.id)
    return success_response({
        "category": {
            **serialize(ActivityCategoryOut, category),
            "subcategories": serialize_list(ActivityCategoryOut, subcategories),
        },
    }, "Category retrieved successfully")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_category(
    data: ActivityCategoryCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await ActivityCategoryService(db).create_category(data, current_user)
    return success_response({"category": serialize(ActivityCategoryOut, category)}, "Category created successfully")


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    data: ActivityCategoryUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await ActivityCategoryService(db).update_category(category_id, data)
    return success_response({"category": serialize(ActivityCategoryOut, category)}, "Category updated successfully")


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await ActivityCategoryService(db).delete_category(category_id)
    return success_response(message="Category deleted successfully")


@router.patch("/{category_id}/status")
async def toggle_category_status(
    category_id: int,
    data: ActivityCategoryStatus,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await ActivityCategoryService(db).set_status(category_id, data.is_active)
    state = "activated" if category.is_active else "deactivated"
    return success_response(
        {"category": serialize(ActivityCategoryOut, category)},
        f"Category {state} successfully",
    )
