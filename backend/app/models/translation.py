"""
翻译任务模型
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

CONTENT_TYPES = ("package", "itinerary", "user_content", "system_content")
TRANSLATION_STATUSES = ("pending", "in_progress", "completed", "reviewed", "rejected", "needs_revision")
TRANSLATION_PRIORITIES = ("low", "medium", "high", "urgent")
LANGUAGES = ("en", "ar")

STATUS_PROGRESS = {
    "pending": 0,
    "in_progress": 25,
    "completed": 75,
    "reviewed": 100,
    "rejected": 0,
    "needs_revision": 50,
}


class Translation(BaseModel):
    """翻译任务"""
    __tablename__ = "translations"

    content_type = Column(String(30), nullable=False, index=True)
    content_id = Column(Integer, nullable=False, index=True)
    field_name = Column(String(100), nullable=False)

    source_language = Column(String(5), nullable=False, default="en")
    target_language = Column(String(5), nullable=False, default="ar")
    source_text = Column(Text, nullable=False)
    translated_text = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    priority = Column(String(10), nullable=False, default="medium")
    quality_score = Column(Float, nullable=True)
    cultural_validation = Column(JSON, nullable=False, default=dict)  # {isValidated, notes}

    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    revision_history = Column(JSON, nullable=False, default=list)  # [{text, changedBy, changedAt, reason}]
    comments = Column(JSON, nullable=False, default=list)  # [{userId, text, createdAt}]

    due_date = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    assigned_to = relationship("User", foreign_keys=[assigned_to_id])

    @property
    def progress_percentage(self) -> int:
        return STATUS_PROGRESS.get(self.status, 0)

    @property
    def is_overdue(self) -> bool:
        if not self.due_date:
            return False
        return self.due_date < datetime.utcnow() and self.status not in ("completed", "reviewed")
