"""
翻译任务服务
任务完成后将阿语译文回写到套餐对应字段
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, func, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError
from app.models.package import Package
from app.models.translation import Translation
from app.models.user import User
from app.schemas.translation import TranslationCreate, TranslationUpdate

OPEN_STATUSES = ("pending", "in_progress", "needs_revision")
DONE_STATUSES = ("completed", "reviewed")
TEXT_FIELDS = ("title", "description", "destination")
LIST_FIELDS = ("inclusions", "exclusions", "highlights")
ITINERARY_KEYS = ("title", "description")


def apply_package_translation(package: Package, field_name: str, text: str) -> bool:
    """
    按字段路径回写阿语译文

    title / description / destination          -> <field>_ar
    inclusions.i / exclusions.i / highlights.i -> <field>_ar[i]
    itinerary.i.title / itinerary.i.description -> 第i天的 <key>_ar
    """
    parts = field_name.split(".")

    if len(parts) == 1 and parts[0] in TEXT_FIELDS:
        setattr(package, f"{parts[0]}_ar", text)
        return True

    if len(parts) == 2 and parts[0] in LIST_FIELDS and parts[1].isdigit():
        index = int(parts[1])
        items = list(getattr(package, f"{parts[0]}_ar") or [])
        while len(items) <= index:
            items.append("")
        items[index] = text
        setattr(package, f"{parts[0]}_ar", items)
        return True

    if len(parts) == 3 and parts[0] == "itinerary" and parts[1].isdigit() and parts[2] in ITINERARY_KEYS:
        index = int(parts[1])
        days = [dict(day) for day in package.itinerary or []]
        if index >= len(days):
            return False
        days[index][f"{parts[2]}_ar"] = text
        package.itinerary = days
        return True

    return False


def package_source_fields(package: Package) -> List[Tuple[str, str]]:
    """套餐中所有非空英文字段 (字段路径, 原文)"""
    fields = []
    for field in TEXT_FIELDS:
        value = getattr(package, field)
        if value and value.strip():
            fields.append((field, value))
    for field in LIST_FIELDS:
        for index, value in enumerate(getattr(package, field) or []):
            if value and str(value).strip():
                fields.append((f"{field}.{index}", value))
    for index, day in enumerate(package.itinerary or []):
        for key in ITINERARY_KEYS:
            value = day.get(key)
            if value and str(value).strip():
                fields.append((f"itinerary.{index}.{key}", value))
    return fields


class TranslationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_task(self, task_id: int) -> Translation:
        task = await self.db.get(Translation, task_id)
        if not task:
            raise NotFoundError("Translation task not found")
        return task

    async def list_tasks(self, filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Translation], int]:
        conditions = []
        if filters.get("status"):
            conditions.append(Translation.status == filters["status"])
        if filters.get("priority"):
            conditions.append(Translation.priority == filters["priority"])
        if filters.get("content_type"):
            conditions.append(Translation.content_type == filters["content_type"])
        if filters.get("target_language"):
            conditions.append(Translation.target_language == filters["target_language"])
        if filters.get("assigned_to"):
            conditions.append(Translation.assigned_to_id == filters["assigned_to"])
        if filters.get("overdue"):
            conditions.append(Translation.due_date < datetime.utcnow())
            conditions.append(Translation.status.notin_(DONE_STATUSES))

        where = and_(*conditions) if conditions else true()
        total = (await self.db.execute(select(func.count(Translation.id)).where(where))).scalar() or 0
        result = await self.db.execute(
            select(Translation).where(where)
            .order_by(Translation.created_at.desc(), Translation.id.desc())
            .offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_stats(self) -> Dict[str, Any]:
        by_status = await self.db.execute(
            select(Translation.status, func.count(Translation.id), func.avg(Translation.quality_score))
            .group_by(Translation.status)
        )
        by_language = await self.db.execute(
            select(Translation.target_language, Translation.status, func.count(Translation.id))
            .group_by(Translation.target_language, Translation.status)
        )

        languages: Dict[str, Dict[str, Any]] = {}
        for language, status, count in by_language.all():
            entry = languages.setdefault(language, {"language": language, "total": 0, "completed": 0})
            entry["total"] += count
            if status == "completed":
                entry["completed"] += count

        overdue = (await self.db.execute(
            select(func.count(Translation.id)).where(
                Translation.due_date < datetime.utcnow(),
                Translation.status.notin_(DONE_STATUSES),
            )
        )).scalar() or 0

        return {
            "byStatus": [
                {"status": status, "count": count, "avgQuality": round(float(avg), 2) if avg is not None else None}
                for status, count, avg in by_status.all()
            ],
            "byLanguage": list(languages.values()),
            "overdueCount": overdue,
        }

    async def package_statuses(self) -> List[Dict[str, Any]]:
        packages = (await self.db.execute(select(Package).order_by(Package.id))).scalars().all()
        pending = dict((await self.db.execute(
            select(Translation.content_id, func.count(Translation.id))
            .where(Translation.content_type == "package", Translation.status.in_(OPEN_STATUSES))
            .group_by(Translation.content_id)
        )).all())
        return [
            {
                "id": pkg.id,
                "title": pkg.title,
                "titleAr": pkg.title_ar,
                "destination": pkg.destination,
                "destinationAr": pkg.destination_ar,
                "translationStatus": pkg.arabic_translation_status,
                "needsTranslation": not pkg.title_ar or not pkg.destination_ar,
                "pendingTasks": pending.get(pkg.id, 0),
            }
            for pkg in packages
        ]

    async def _open_task_exists(self, content_type: str, content_id: int, field_name: str, target_language: str) -> bool:
        query = select(Translation.id).where(
            Translation.content_type == content_type,
            Translation.content_id == content_id,
            Translation.field_name == field_name,
            Translation.target_language == target_language,
            Translation.status.in_(OPEN_STATUSES),
        )
        return (await self.db.execute(query)).first() is not None

    async def create_task(self, data: TranslationCreate) -> Translation:
        if await self._open_task_exists(data.content_type, data.content_id, data.field_name, data.target_language):
            raise ServiceError("Translation task already exists for this field")

        task = Translation(**data.model_dump())
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info(f"🌐 翻译任务已创建: {task.content_type}#{task.content_id} {task.field_name}")
        return task

    async def update_task(self, task_id: int, data: TranslationUpdate, user: User) -> Translation:
        task = await self.get_task(task_id)
        payload = data.model_dump(exclude_unset=True)
        reason = payload.pop("reason", None)

        new_text = payload.get("translated_text")
        if new_text is not None and new_text != task.translated_text:
            task.revision_history = list(task.revision_history or []) + [{
                "text": new_text,
                "changedBy": user.id,
                "changedAt": datetime.utcnow().isoformat(),
                "reason": reason or "Translation updated",
            }]

        for field, value in payload.items():
            setattr(task, field, value)

        if payload.get("status") == "reviewed":
            task.reviewed_by_id = user.id
        if payload.get("status") == "completed":
            task.completed_at = datetime.utcnow()
            await self._write_back(task)

        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def _write_back(self, task: Translation) -> None:
        if task.content_type != "package" or task.target_language != "ar" or not task.translated_text:
            return
        package = await self.db.get(Package, task.content_id)
        if not package:
            logger.warning(f"⚠️ 翻译回写失败，套餐不存在: {task.content_id}")
            return
        if apply_package_translation(package, task.field_name, task.translated_text):
            logger.info(f"📝 译文已回写套餐 {package.id}: {task.field_name}")
        else:
            logger.warning(f"⚠️ 无法识别的字段路径: {task.field_name}")

    async def assign_task(self, task_id: int, assignee_id: int) -> Translation:
        task = await self.get_task(task_id)
        assignee = await self.db.get(User, assignee_id)
        if not assignee:
            raise NotFoundError("User not found")
        task.assigned_to_id = assignee.id
        task.status = "in_progress"
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def add_comment(self, task_id: int, text: str, user: User) -> Translation:
        task = await self.get_task(task_id)
        task.comments = list(task.comments or []) + [{
            "userId": user.id,
            "text": text,
            "createdAt": datetime.utcnow().isoformat(),
        }]
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def bulk_create_for_package(self, package_id: int, priority: str = "medium",
                                      assigned_to_id: Optional[int] = None) -> Dict[str, Any]:
        package = await self.db.get(Package, package_id)
        if not package:
            raise NotFoundError("Package not found")

        created: List[Translation] = []
        skipped = 0
        for field_name, text in package_source_fields(package):
            if await self._open_task_exists("package", package.id, field_name, "ar"):
                skipped += 1
                continue
            task = Translation(
                content_type="package",
                content_id=package.id,
                field_name=field_name,
                source_language="en",
                target_language="ar",
                source_text=text,
                priority=priority,
                assigned_to_id=assigned_to_id,
            )
            self.db.add(task)
            created.append(task)

        await self.db.commit()
        for task in created:
            await self.db.refresh(task)
        logger.info(f"🌐 套餐 {package.id} 批量创建翻译任务: 新建 {len(created)}，跳过 {skipped}")
        return {"created": created, "skipped": skipped}
