"""
套餐分类API端点
读取公开，写操作仅限管理员
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.category import (
    CategoryBulkCreate,
    CategoryCreate,
    CategoryOrderItem,
    CategoryOut,
    CategoryStatusUpdate,
    CategoryUpdate,
)
from app.schemas.common import serialize, serialize_list
from app.services.admin_service import to_csv
from app.services.category_service import CategoryService

router = APIRouter()

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required")


@router.get("/")
async def list_categories(
    status_filter: Optional[str] = Query(None, alias="status"),
    parent_id: Optional[int] = Query(None, alias="parentId"),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    filters = {"status": status_filter, "parent_id": parent_id, "search": search}
    items = await CategoryService(db).list_categories(filters)
    categories = [{**serialize(CategoryOut, category), "stats": stats} for category, stats in items]
    return success_response({"categories": categories}, "Categories retrieved successfully")


@router.get("/export")
async def export_categories(
    format: str = Query("json", pattern="^(json|csv)$"),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    rows = await CategoryService(db).export()
    if format == "csv":
        return Response(
            content=to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="categories.csv"'},
        )
    return success_response({"categories": rows}, "Categories exported successfully")


@router.patch("/order")
async def update_category_order(
    categories: List[CategoryOrderItem] = Body(..., embed=True),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await CategoryService(db).update_order(categories)
    return success_response(message="Category order updated successfully")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_create_categories(
    data: CategoryBulkCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    result = await CategoryService(db).bulk_create(data.categories, current_user)
    return success_response({
        "created": serialize_list(CategoryOut, result["created"]),
        "errors": result["errors"],
    }, f"{len(result['created'])} categories created successfully")


@router.get("/{category_id}")
async def get_category(category_id: int, db: AsyncSession = Depends(get_async_db)):
    service = CategoryService(db)
    category = await service.get_category(category_id)
    return success_response({
        "category": {**serialize(CategoryOut, category), "stats": await service.get_stats(category)},
    }, "Category retrieved successfully")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await CategoryService(db).create_category(data, current_user)
    return success_response({"category": serialize(CategoryOut, category)}, "Category created successfully")


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await CategoryService(db).update_category(category_id, data)
    return success_response({"category": serialize(CategoryOut, category)}, "Category updated successfully")


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await CategoryService(db).delete_category(category_id)
    return success_response(message="Category deleted successfully")


@router.patch("/{category_id}/status")
async def update_category_status(
    category_id: int,
    data: CategoryStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    category = await CategoryService(db).update_status(category_id, data.status)
    return success_response({"category": serialize(CategoryOut, category)}, "Category status updated successfully")
