"""
套餐媒体API端点
图片上传/外链视频/排序/封面
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.common import serialize, serialize_list
from app.schemas.media import ExternalVideoCreate, MediaMetadataUpdate, MediaOut, MediaReorder
from app.services.media_service import MediaService, UploadedImage

router = APIRouter()

MEDIA_EDITORS = require_roles("admin", "expert")


@router.post("/upload/images/{package_id}", status_code=status.HTTP_201_CREATED)
async def upload_images(
    package_id: int,
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    uploads = [
        UploadedImage(filename=f.filename or "image", content_type=f.content_type, data=await f.read())
        for f in images
    ]
    media = await MediaService(db).upload_images(package_id, uploads, current_user)
    return success_response({"media": serialize_list(MediaOut, media)}, f"{len(media)} images uploaded successfully")


@router.post("/external-video/{package_id}", status_code=status.HTTP_201_CREATED)
async def add_external_video(
    package_id: int,
    data: ExternalVideoCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    media = await MediaService(db).add_external_video(package_id, data, current_user)
    return success_response({"media": serialize(MediaOut, media)}, "External video added successfully")


@router.get("/package/{package_id}")
async def get_package_media(
    package_id: int,
    media_type: Optional[str] = Query(None, alias="type", pattern="^(image|video)$"),
    db: AsyncSession = Depends(get_async_db),
):
    media = await MediaService(db).list_package_media(package_id, media_type)
    return success_response({"media": serialize_list(MediaOut, media)}, "Package media retrieved successfully")


@router.put("/package/{package_id}/reorder")
async def reorder_media(
    package_id: int,
    data: MediaReorder,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    media = await MediaService(db).reorder(package_id, data.media_ids)
    return success_response({"media": serialize_list(MediaOut, media)}, "Media reordered successfully")


@router.put("/{media_id}/metadata")
async def update_media_metadata(
    media_id: int,
    data: MediaMetadataUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    media = await MediaService(db).update_metadata(media_id, data)
    return success_response({"media": serialize(MediaOut, media)}, "Media metadata updated successfully")


@router.put("/{media_id}/featured")
async def set_featured_media(
    media_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    media = await MediaService(db).set_featured(media_id)
    return success_response({"media": serialize(MediaOut, media)}, "Featured image updated successfully")


@router.delete("/{media_id}")
async def delete_media(
    media_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    await MediaService(db).delete_media(media_id)
    return success_response(message="Media deleted successfully")


@router.get("/{media_id}/suggestions")
async def get_optimization_suggestions(
    media_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(MEDIA_EDITORS),
):
    suggestions = await MediaService(db).get_suggestions(media_id)
    return success_response(suggestions, "Optimization suggestions retrieved successfully")
