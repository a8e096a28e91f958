"""
酒店数据模式
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import CamelModel


class HotelLocation(CamelModel):
    model_config = ConfigDict(extra="allow")

    address: Optional[str] = None
    city: Optional[str] = None
    country: str = "Saudi Arabia"
    coordinates: Optional[Dict[str, float]] = None


class RoomType(BaseModel):
    """房型（以驼峰键存储）"""
    model_config = ConfigDict(extra="allow")

    name: str
    capacity: int = Field(2, ge=1)
    bedType: Optional[str] = None
    pricePerNight: Optional[float] = Field(None, ge=0)
    totalRooms: int = Field(1, ge=0)


class HotelBase(CamelModel):
    name_ar: Optional[str] = None
    description_ar: Optional[str] = None
    hotel_class: Optional[str] = None
    room_types: Optional[List[RoomType]] = None
    amenities: Optional[List[str]] = None
    services: Optional[List[str]] = None
    images: Optional[List[Dict[str, Any]]] = None
    policies: Optional[Dict[str, Any]] = None
    currency: Optional[Literal["SAR", "USD"]] = None
    status: Optional[Literal["active", "inactive", "maintenance"]] = None


class HotelCreate(HotelBase):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[HotelLocation] = None
    star_rating: Optional[int] = None
    base_price: Optional[float] = None
    total_rooms: Optional[int] = None


class HotelUpdate(HotelCreate):
    pass


class AvailabilityEntry(CamelModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    room_type: Optional[str] = None
    available_rooms: int = Field(..., ge=0)
    price: Optional[float] = Field(None, ge=0)


class AvailabilityUpdate(CamelModel):
    availability: List[AvailabilityEntry]


class TBOLinkUpdate(CamelModel):
    is_linked: bool
    tbo_hotel_code: Optional[str] = None
    live_pricing: bool = True


class HotelOut(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    description: str
    description_ar: Optional[str] = None
    location: Dict[str, Any]
    city: Optional[str] = None
    star_rating: int
    hotel_class: Optional[str] = None
    room_types: List[Dict[str, Any]] = []
    total_rooms: int
    amenities: List[str] = []
    services: List[str] = []
    images: List[Dict[str, Any]] = []
    policies: Dict[str, Any] = {}
    base_price: float
    currency: str
    availability: List[Dict[str, Any]] = []
    status: str
    tbo_integration: Dict[str, Any] = {}
    is_active: bool
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
