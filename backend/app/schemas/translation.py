"""
翻译任务数据模式
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, parse_datetime

ContentType = Literal["package", "itinerary", "user_content", "system_content"]
Language = Literal["en", "ar"]
Status = Literal["pending", "in_progress", "completed", "reviewed", "rejected", "needs_revision"]
Priority = Literal["low", "medium", "high", "urgent"]


class TranslationCreate(CamelModel):
    content_type: ContentType
    content_id: int
    field_name: str = Field(..., min_length=1)
    source_text: str = Field(..., min_length=1)
    source_language: Language = "en"
    target_language: Language = "ar"
    priority: Priority = "medium"
    assigned_to_id: Optional[int] = Field(None, alias="assignedTo")
    due_date: Optional[datetime] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due(cls, v):
        return parse_datetime(v)


class TranslationUpdate(CamelModel):
    translated_text: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    quality_score: Optional[float] = Field(None, ge=0, le=100)
    cultural_validation: Optional[Dict[str, Any]] = None
    due_date: Optional[datetime] = None
    reason: Optional[str] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due(cls, v):
        return parse_datetime(v)


class TranslationAssign(CamelModel):
    assigned_to_id: int = Field(..., alias="assignedTo")


class TranslationComment(CamelModel):
    text: str = Field(..., min_length=1)


class TranslationOut(CamelModel):
    id: int
    content_type: str
    content_id: int
    field_name: str
    source_language: str
    target_language: str
    source_text: str
    translated_text: Optional[str] = None
    status: str
    priority: str
    quality_score: Optional[float] = None
    cultural_validation: Dict[str, Any] = {}
    assigned_to_id: Optional[int] = None
    reviewed_by_id: Optional[int] = None
    revision_history: List[Dict[str, Any]] = []
    comments: List[Dict[str, Any]] = []
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    progress_percentage: int
    is_overdue: bool
    created_at: datetime
    updated_at: datetime
