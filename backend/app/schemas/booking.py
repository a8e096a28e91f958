"""
预订数据模式
出行人/日期/联系方式的缺失与取值由 booking_service.validate_booking_data 校验
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator, model_validator

from app.schemas.common import CamelModel, parse_datetime


class Travelers(CamelModel):
    adults: Optional[int] = None
    children: int = 0
    infants: int = 0


class TravelDates(CamelModel):
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return parse_datetime(v)


class ContactInfo(CamelModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class BookingCreate(CamelModel):
    package_id: Optional[int] = None
    travelers: Optional[Travelers] = None
    travel_dates: Optional[TravelDates] = None
    contact_info: Optional[ContactInfo] = None
    special_requests: Optional[str] = None


class BookingCancel(CamelModel):
    reason: Optional[str] = None


class BookingStatusUpdate(CamelModel):
    booking_status: Optional[str] = None
    payment_status: Optional[str] = None

    @model_validator(mode="after")
    def require_one(self):
        if self.booking_status is None and self.payment_status is None:
            raise ValueError("bookingStatus or paymentStatus is required")
        return self


class TBOStatusUpdate(CamelModel):
    status: str
    notes: Optional[str] = None


class BookingOut(CamelModel):
    id: int
    booking_reference: str
    user_id: int
    package_id: Optional[int] = None
    travelers: Dict[str, int]
    travel_dates: Dict[str, Any]
    contact_info: Dict[str, Any]
    total_travelers: int
    total_price: float
    booking_status: str
    payment_status: str
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    tbo_booking: Optional[Dict[str, Any]] = None
    package: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def from_booking(cls, obj: Any):
        if isinstance(obj, (dict, BaseModel)):
            return obj
        package = obj.__dict__.get("package")
        return {
            "id": obj.id,
            "booking_reference": obj.booking_reference,
            "user_id": obj.user_id,
            "package_id": obj.package_id,
            "travelers": {"adults": obj.adults, "children": obj.children, "infants": obj.infants},
            "travel_dates": {"checkIn": obj.check_in, "checkOut": obj.check_out},
            "contact_info": {"email": obj.contact_email, "phone": obj.contact_phone},
            "total_travelers": obj.total_travelers,
            "total_price": obj.total_price,
            "booking_status": obj.booking_status,
            "payment_status": obj.payment_status,
            "special_requests": obj.special_requests,
            "cancellation_reason": obj.cancellation_reason,
            "cancelled_at": obj.cancelled_at,
            "tbo_booking": obj.tbo_booking,
            # 仅在已加载时附带套餐摘要，避免异步懒加载
            "package": {
                "id": package.id,
                "title": package.title,
                "destination": package.destination,
                "duration": package.duration,
                "images": package.images or [],
            } if package is not None else None,
            "created_at": obj.created_at,
            "updated_at": obj.updated_at,
        }
