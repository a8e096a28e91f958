"""
套餐媒体服务
图片多尺寸处理与质量分析（Pillow），外链视频解析
"""

import asyncio
import os
import re
import shutil
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, ServiceError
from app.models.media import Media
from app.models.package import Package
from app.models.user import User
from app.schemas.media import ExternalVideoCreate, MediaMetadataUpdate
from app.utils.image_utils import IMAGE_SIZES, analyze_image_quality, image_metadata, open_image, save_resized_jpeg

YOUTUBE_PATTERN = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#/]+)")
VIMEO_PATTERN = re.compile(r"vimeo\.com/(?:video/)?(\d+)")


@dataclass
class UploadedImage:
    filename: str
    content_type: Optional[str]
    data: bytes


def parse_video_url(url: str) -> Optional[Dict[str, str]]:
    match = YOUTUBE_PATTERN.search(url)
    if match:
        return {"provider": "youtube", "videoId": match.group(1)}
    match = VIMEO_PATTERN.search(url)
    if match:
        return {"provider": "vimeo", "videoId": match.group(1)}
    return None


def video_embed_url(provider: str, video_id: str) -> str:
    if provider == "youtube":
        return f"https://www.youtube.com/embed/{video_id}"
    return f"https://player.vimeo.com/video/{video_id}"


def video_thumbnail_url(provider: str, video_id: str) -> Optional[str]:
    if provider == "youtube":
        return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"
    return None


class MediaService:

    def __init__(self, db: AsyncSession, upload_dir: Optional[str] = None):
        self.db = db
        self.upload_dir = upload_dir or settings.UPLOAD_DIR

    def _package_dir(self, package_id: int) -> str:
        return os.path.join(self.upload_dir, "packages", str(package_id))

    @staticmethod
    def _public_url(package_id: int, filename: str) -> str:
        return f"{settings.STATIC_URL_PREFIX.rstrip('/')}/packages/{package_id}/{filename}"

    async def _get_package(self, package_id: int) -> Package:
        package = await self.db.get(Package, package_id)
        if not package:
            raise NotFoundError("Package not found")
        return package

    async def get_media(self, media_id: int) -> Media:
        media = await self.db.get(Media, media_id)
        if not media:
            raise NotFoundError("Media not found")
        return media

    def _process_image(self, package_id: int, upload: UploadedImage) -> Dict[str, Any]:
        """保存原图与各标准尺寸，返回媒体记录字段"""
        try:
            image = open_image(upload.data)
        except ValueError as e:
            raise ServiceError(str(e))

        target_dir = self._package_dir(package_id)
        os.makedirs(target_dir, exist_ok=True)

        stem = uuid.uuid4().hex
        extension = os.path.splitext(upload.filename or "")[1].lower() or f".{(image.format or 'jpg').lower()}"
        original_name = f"{stem}{extension}"
        with open(os.path.join(target_dir, original_name), "wb") as fh:
            fh.write(upload.data)

        sizes = []
        for name, size in IMAGE_SIZES.items():
            filename = f"{stem}_{name}.jpg"
            info = save_resized_jpeg(image, size, os.path.join(target_dir, filename))
            sizes.append({"name": name, "url": self._public_url(package_id, filename), **info})

        score, suggestions = analyze_image_quality(image, len(upload.data))
        return {
            "filename": original_name,
            "original_url": self._public_url(package_id, original_name),
            "mime_type": upload.content_type,
            "size": len(upload.data),
            "sizes": sizes,
            "image_optimization": {
                "qualityScore": score,
                "suggestions": suggestions,
                "metadata": image_metadata(image),
            },
        }

    async def upload_images(self, package_id: int, uploads: List[UploadedImage], user: User) -> List[Media]:
        if not uploads:
            raise ServiceError("No files uploaded")
        if len(uploads) > settings.MAX_IMAGES_PER_UPLOAD:
            raise ServiceError(f"Maximum {settings.MAX_IMAGES_PER_UPLOAD} images allowed per upload")
        if any(not (u.content_type or "").startswith("image/") for u in uploads):
            raise ServiceError("Only image files are allowed")
        if any(len(u.data) > settings.MAX_FILE_SIZE for u in uploads):
            raise ServiceError(f"File too large. Maximum size is {settings.MAX_FILE_SIZE // (1024 * 1024)}MB")

        await self._get_package(package_id)

        max_order = (await self.db.execute(
            select(func.max(Media.sort_order)).where(Media.package_id == package_id)
        )).scalar()
        next_order = (max_order + 1) if max_order is not None else 0
        has_featured = (await self.db.execute(
            select(Media.id).where(Media.package_id == package_id, Media.is_featured.is_(True))
        )).first() is not None

        created = []
        for index, upload in enumerate(uploads):
            fields = await asyncio.to_thread(self._process_image, package_id, upload)
            media = Media(
                package_id=package_id,
                type="image",
                provider="local",
                sort_order=next_order + index,
                is_featured=not has_featured and index == 0,
                status="ready",
                uploaded_by_id=user.id,
                meta={"altText": {"en": "", "ar": ""}, "caption": {"en": "", "ar": ""}, "tags": []},
                **fields,
            )
            self.db.add(media)
            created.append(media)

        await self.db.commit()
        for media in created:
            await self.db.refresh(media)
        logger.info(f"🖼️ 套餐 {package_id} 上传 {len(created)} 张图片")
        return created

    async def add_external_video(self, package_id: int, data: ExternalVideoCreate, user: User) -> Media:
        parsed = parse_video_url(data.url)
        if not parsed:
            raise ServiceError("Invalid video URL. Only YouTube and Vimeo are supported")

        await self._get_package(package_id)
        max_order = (await self.db.execute(
            select(func.max(Media.sort_order)).where(Media.package_id == package_id)
        )).scalar()

        provider, video_id = parsed["provider"], parsed["videoId"]
        thumbnail = video_thumbnail_url(provider, video_id)
        media = Media(
            package_id=package_id,
            type="video",
            provider=provider,
            original_url=data.url,
            video_id=video_id,
            sizes=[{"name": "thumbnail", "url": thumbnail}] if thumbnail else [],
            meta={
                "altText": (data.alt_text.model_dump() if data.alt_text else {"en": "", "ar": ""}),
                "caption": (data.caption.model_dump() if data.caption else {"en": "", "ar": ""}),
                "tags": [],
                "embedUrl": video_embed_url(provider, video_id),
            },
            sort_order=(max_order + 1) if max_order is not None else 0,
            status="ready",
            uploaded_by_id=user.id,
        )
        self.db.add(media)
        await self.db.commit()
        await self.db.refresh(media)
        logger.info(f"🎬 套餐 {package_id} 添加{provider}视频 {video_id}")
        return media

    async def list_package_media(self, package_id: int, media_type: Optional[str] = None) -> List[Media]:
        query = select(Media).where(
            Media.package_id == package_id,
            Media.status == "ready",
            Media.is_visible.is_(True),
        )
        if media_type:
            query = query.where(Media.type == media_type)
        result = await self.db.execute(query.order_by(Media.sort_order, Media.id))
        return list(result.scalars().all())

    async def update_metadata(self, media_id: int, data: MediaMetadataUpdate) -> Media:
        media = await self.get_media(media_id)
        meta = dict(media.meta or {})
        if data.alt_text is not None:
            meta["altText"] = {**(meta.get("altText") or {}), **data.alt_text.model_dump(exclude_unset=True)}
        if data.caption is not None:
            meta["caption"] = {**(meta.get("caption") or {}), **data.caption.model_dump(exclude_unset=True)}
        if data.tags is not None:
            meta["tags"] = [tag.strip() for tag in data.tags if tag.strip()]
        media.meta = meta
        await self.db.commit()
        await self.db.refresh(media)
        return media

    async def reorder(self, package_id: int, media_ids: List[int]) -> List[Media]:
        result = await self.db.execute(
            select(Media).where(Media.package_id == package_id, Media.id.in_(media_ids))
        )
        by_id = {m.id: m for m in result.scalars().all()}
        for position, media_id in enumerate(media_ids):
            if media_id in by_id:
                by_id[media_id].sort_order = position
        await self.db.commit()
        return await self.list_package_media(package_id)

    async def set_featured(self, media_id: int) -> Media:
        media = await self.get_media(media_id)
        if media.type != "image":
            raise ServiceError("Only images can be featured")

        others = await self.db.execute(
            select(Media).where(Media.package_id == media.package_id, Media.is_featured.is_(True), Media.id != media.id)
        )
        for other in others.scalars().all():
            other.is_featured = False
        media.is_featured = True
        await self.db.commit()
        await self.db.refresh(media)
        return media

    async def delete_media(self, media_id: int) -> None:
        media = await self.get_media(media_id)
        if media.provider == "local":
            target_dir = self._package_dir(media.package_id)
            names = [media.filename] + [s["url"].rsplit("/", 1)[-1] for s in media.sizes or [] if s.get("url")]
            for name in filter(None, names):
                path = os.path.join(target_dir, name)
                if os.path.exists(path):
                    os.remove(path)
            if os.path.isdir(target_dir) and not os.listdir(target_dir):
                shutil.rmtree(target_dir)

        await self.db.delete(media)
        await self.db.commit()
        logger.info(f"🗑️ 媒体已删除: {media_id}")

    async def get_suggestions(self, media_id: int) -> Dict[str, Any]:
        media = await self.get_media(media_id)
        optimization = media.image_optimization or {}
        return {
            "mediaId": media.id,
            "qualityScore": optimization.get("qualityScore"),
            "suggestions": optimization.get("suggestions") or [],
        }
