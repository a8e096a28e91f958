"""
旅行套餐数据模式
长度/取值等业务校验由 package_service.validate_package_data 负责，返回统一的错误文案
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.common import CamelModel, parse_datetime


class ItineraryDay(BaseModel):
    """每日行程（以下划线键存储）"""
    model_config = ConfigDict(extra="allow")

    day: int = Field(..., ge=1)
    title: Optional[str] = None
    title_ar: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    activities: List[str] = []
    activities_ar: List[str] = []


class PackageBase(CamelModel):
    title_ar: Optional[str] = None
    description_ar: Optional[str] = None
    destination_ar: Optional[str] = None
    main_destination: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    price_sar: Optional[float] = Field(None, ge=0)
    price_adult: Optional[float] = Field(None, ge=0)
    price_child: Optional[float] = Field(None, ge=0)
    price_infant: Optional[float] = Field(None, ge=0)
    currency: Optional[Literal["SAR", "USD"]] = None
    discount_type: Optional[Literal["percentage", "fixed_amount", "early_bird", "group_discount", "none"]] = None
    discount_value: Optional[float] = Field(None, ge=0)

    max_travelers: Optional[int] = Field(None, ge=1)
    min_people: Optional[int] = Field(None, ge=1)
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, ge=0)

    categories: Optional[List[str]] = None
    tour_type: Optional[str] = None
    difficulty: Optional[Literal["easy", "moderate", "challenging", "expert"]] = None
    tags: Optional[List[str]] = None

    inclusions: Optional[List[str]] = None
    inclusions_ar: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    exclusions_ar: Optional[List[str]] = None
    highlights: Optional[List[str]] = None
    highlights_ar: Optional[List[str]] = None
    itinerary: Optional[List[ItineraryDay]] = None
    images: Optional[List[Dict[str, Any]]] = None

    is_featured: Optional[bool] = None
    availability: Optional[bool] = None
    booking_status: Optional[Literal["active", "inactive", "sold_out", "cancelled", "draft"]] = None
    tour_status: Optional[Literal["draft", "published", "archived", "deleted"]] = None
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None

    hotel_packages: Optional[List[Dict[str, Any]]] = None

    meta_title: Optional[str] = None
    meta_description: Optional[str] = None

    @field_validator("sale_start_date", "sale_end_date", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return parse_datetime(v)

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, v):
        if v is None:
            return v
        return [tag.strip().lower() for tag in v if tag and tag.strip()]


class PackageCreate(PackageBase):
    """创建套餐"""
    title: Optional[str] = None
    description: Optional[str] = None
    destination: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[float] = None


class PackageUpdate(PackageBase):
    """更新套餐（只校验提交的字段）"""
    title: Optional[str] = None
    description: Optional[str] = None
    destination: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[float] = None


class PackageTranslationUpdate(CamelModel):
    model_config = ConfigDict(extra="allow")

    language: str
    title: Optional[str] = None
    description: Optional[str] = None
    destination: Optional[str] = None
    # 列表字段也接受逗号分隔的字符串
    inclusions: Optional[Union[List[str], str]] = None
    exclusions: Optional[Union[List[str], str]] = None
    highlights: Optional[Union[List[str], str]] = None
    itinerary: Optional[List[Dict[str, Any]]] = None


class PackageOut(CamelModel):
    id: int
    title: str
    title_ar: Optional[str] = None
    description: str
    description_ar: Optional[str] = None
    slug: Optional[str] = None
    destination: str
    destination_ar: Optional[str] = None
    main_destination: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    duration: int
    total_nights: Optional[int] = None

    price: float
    price_sar: Optional[float] = None
    price_adult: Optional[float] = None
    price_child: Optional[float] = None
    price_infant: Optional[float] = None
    currency: str
    discount_type: str
    discount_value: float
    price_range: Dict[str, float]

    max_travelers: int
    min_people: int
    current_bookings: int
    available_spots: int
    min_age: Optional[int] = None
    max_age: Optional[int] = None

    categories: List[str] = []
    tour_type: Optional[str] = None
    difficulty: Optional[str] = None
    tags: List[str] = []

    inclusions: List[str] = []
    inclusions_ar: List[str] = []
    exclusions: List[str] = []
    exclusions_ar: List[str] = []
    highlights: List[str] = []
    highlights_ar: List[str] = []
    itinerary: List[Dict[str, Any]] = []
    images: List[Dict[str, Any]] = []

    is_featured: bool
    availability: bool
    booking_status: str
    tour_status: str
    sale_start_date: Optional[datetime] = None
    sale_end_date: Optional[datetime] = None
    hotel_packages: List[Dict[str, Any]] = []

    meta_title: Optional[str] = None
    meta_description: Optional[str] = None

    arabic_translation_status: Dict[str, Any]
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
