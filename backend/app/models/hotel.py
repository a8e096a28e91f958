"""
酒店模型
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union
from sqlalchemy import Column, String, Text, Integer, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

HOTEL_STATUSES = ("active", "inactive", "maintenance")

DateLike = Union[date, datetime, str]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class Hotel(BaseModel):
    """酒店模型"""
    __tablename__ = "hotels"

    # 基本信息
    name = Column(String(200), nullable=False, index=True)
    name_ar = Column(String(200), nullable=True)
    description = Column(Text, nullable=False)
    description_ar = Column(Text, nullable=True)

    # 位置 {address, city, country, coordinates: {latitude, longitude}}
    location = Column(JSON, nullable=False, default=dict)
    city = Column(String(100), nullable=True, index=True)  # 冗余自location，便于检索

    star_rating = Column(Integer, nullable=False, default=3)
    hotel_class = Column(String(50), nullable=True)

    # 房型 [{name, capacity, bedType, pricePerNight, totalRooms}]
    room_types = Column(JSON, nullable=False, default=list)
    total_rooms = Column(Integer, nullable=False, default=1)

    amenities = Column(JSON, nullable=False, default=list)
    services = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    policies = Column(JSON, nullable=False, default=dict)

    base_price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="SAR")

    # 每日可售 [{date: YYYY-MM-DD, roomType, availableRooms, price}]
    availability = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default="active")

    # TBO 对接 {isLinked, tboHotelCode, livePricing, syncStatus, lastSyncDate}
    tbo_integration = Column(JSON, nullable=False, default=dict)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_by = relationship("User")

    @property
    def has_live_pricing(self) -> bool:
        integration = self.tbo_integration or {}
        return bool(integration.get("isLinked") and integration.get("livePricing"))

    def _room_type(self, room_type: Optional[str]):
        for entry in self.room_types or []:
            if room_type is None or entry.get("name") == room_type:
                return entry
        return None

    def _availability_entry(self, night: date, room_type: Optional[str]):
        key = night.isoformat()
        for entry in self.availability or []:
            if str(entry.get("date", ""))[:10] != key:
                continue
            if room_type is None or entry.get("roomType") == room_type:
                return entry
        return None

    @staticmethod
    def iter_nights(check_in: DateLike, check_out: DateLike):
        night = _as_date(check_in)
        end = _as_date(check_out)
        while night < end:
            yield night
            night += timedelta(days=1)

    def check_availability(self, check_in: DateLike, check_out: DateLike, rooms_needed: int = 1,
                           room_type: Optional[str] = None) -> bool:
        """区间内每晚可售房量均需满足需求；未登记的夜晚按房型总房量判断"""
        nights = list(self.iter_nights(check_in, check_out))
        if not nights:
            return False
        room = self._room_type(room_type)
        fallback_rooms = (room or {}).get("totalRooms", self.total_rooms or 0)
        for night in nights:
            entry = self._availability_entry(night, room_type)
            available = entry.get("availableRooms", 0) if entry else fallback_rooms
            if available < rooms_needed:
                return False
        return True

    def get_price_for_period(self, check_in: DateLike, check_out: DateLike,
                             room_type: Optional[str] = None) -> float:
        """逐晚计价：每日价格 > 房型价格 > 基础价格"""
        room = self._room_type(room_type)
        total = 0.0
        for night in self.iter_nights(check_in, check_out):
            entry = self._availability_entry(night, room_type)
            if entry and entry.get("price") is not None:
                total += float(entry["price"])
            elif room and room.get("pricePerNight") is not None:
                total += float(room["pricePerNight"])
            else:
                total += float(self.base_price or 0)
        return round(total, 2)

    def __repr__(self):
        try:
            obj_id = getattr(self, 'id', 'N/A')
            return f"<Hotel(id={obj_id})>"
        except Exception:
            return f"<Hotel(instance)>"
