"""
翻译任务API端点（管理员与专家）
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.common import serialize, serialize_list
from app.schemas.translation import (
    TranslationAssign,
    TranslationComment,
    TranslationCreate,
    TranslationOut,
    TranslationUpdate,
)
from app.services.translation_service import TranslationService

router = APIRouter()

TRANSLATORS = require_roles("admin", "expert")


@router.get("/")
async def list_translations(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    content_type: Optional[str] = Query(None, alias="contentType"),
    target_language: Optional[str] = Query(None, alias="targetLanguage"),
    assigned_to: Optional[int] = Query(None, alias="assignedTo"),
    overdue: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    filters = {
        "status": status_filter,
        "priority": priority,
        "content_type": content_type,
        "target_language": target_language,
        "assigned_to": assigned_to,
        "overdue": overdue,
    }
    tasks, total = await TranslationService(db).list_tasks(filters, page, limit)
    return success_response({
        "translations": serialize_list(TranslationOut, tasks),
        "pagination": build_pagination(page, limit, total, "totalTranslations"),
    }, "Translations retrieved successfully")


@router.get("/stats")
async def get_translation_stats(
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    stats = await TranslationService(db).get_stats()
    return success_response(stats, "Translation statistics retrieved successfully")


@router.get("/packages/status")
async def get_package_translation_status(
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    packages = await TranslationService(db).package_statuses()
    return success_response({"packages": packages}, "Package translation status retrieved successfully")


@router.post("/packages/{package_id}/bulk-create", status_code=status.HTTP_201_CREATED)
async def bulk_create_package_translations(
    package_id: int,
    priority: str = Body("medium", embed=True, pattern="^(low|medium|high|urgent)$"),
    assigned_to: Optional[int] = Body(None, embed=True, alias="assignedTo"),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    result = await TranslationService(db).bulk_create_for_package(package_id, priority, assigned_to)
    return success_response({
        "created": serialize_list(TranslationOut, result["created"]),
        "skipped": result["skipped"],
    }, f"{len(result['created'])} translation tasks created")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_translation(
    data: TranslationCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    task = await TranslationService(db).create_task(data)
    return success_response({"translation": serialize(TranslationOut, task)}, "Translation task created successfully")


@router.get("/{task_id}")
async def get_translation(
    task_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    task = await TranslationService(db).get_task(task_id)
    return success_response({"translation": serialize(TranslationOut, task)}, "Translation retrieved successfully")


@router.put("/{task_id}")
async def update_translation(
    task_id: int,
    data: TranslationUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    task = await TranslationService(db).update_task(task_id, data, current_user)
    return success_response({"translation": serialize(TranslationOut, task)}, "Translation updated successfully")


@router.put("/{task_id}/assign")
async def assign_translation(
    task_id: int,
    data: TranslationAssign,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    task = await TranslationService(db).assign_task(task_id, data.assigned_to_id)
    return success_response({"translation": serialize(TranslationOut, task)}, "Translation assigned successfully")


@router.post("/{task_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_translation_comment(
    task_id: int,
    data: TranslationComment,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(TRANSLATORS),
):
    task = await TranslationService(db).add_comment(task_id, data.text, current_user)
    return success_response({"translation": serialize(TranslationOut, task)}, "Comment added successfully")
