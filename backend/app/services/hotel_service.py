"""
酒店服务
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import String, and_, cast, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, PermissionDeniedError, ServiceError
from app.core.logging_config import log_database_operation
from app.models.hotel import Hotel
from app.models.package import Package
from app.models.user import User
from app.schemas.hotel import AvailabilityUpdate, HotelCreate, HotelUpdate, TBOLinkUpdate


def _text_length(value: Any) -> int:
    return len(value.strip()) if isinstance(value, str) else 0


def validate_hotel_data(data: Dict[str, Any], partial: bool = False) -> Optional[str]:
    """返回第一条错误文案；partial=True 时只校验提交了的字段"""
    def _check(field: str) -> bool:
        return not partial or field in data

    if _check("name") and _text_length(data.get("name")) < 2:
        return "Hotel name must be at least 2 characters long"
    if _check("description") and _text_length(data.get("description")) < 10:
        return "Description must be at least 10 characters long"
    if _check("location"):
        location = data.get("location") or {}
        if not location.get("address") or not location.get("city"):
            return "Address and city are required"
    if _check("star_rating"):
        rating = data.get("star_rating")
        if not isinstance(rating, int) or rating < 1 or rating > 5:
            return "Star rating must be between 1 and 5"
    if _check("base_price"):
        price = data.get("base_price")
        if price is None or price <= 0:
            return "Base price must be greater than 0"
    if _check("total_rooms"):
        rooms = data.get("total_rooms")
        if rooms is None or rooms < 1:
            return "Total rooms must be at least 1"
    return None


def can_modify_hotel(user: User, hotel: Hotel) -> bool:
    if user.role == "admin":
        return True
    return user.role == "expert" and hotel.created_by_id == user.id


class HotelService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_hotel(self, hotel_id: int) -> Hotel:
        hotel = await self.db.get(Hotel, hotel_id)
        if not hotel:
            raise NotFoundError("Hotel not found")
        return hotel

    async def get_editable_hotel(self, hotel_id: int, user: User) -> Hotel:
        hotel = await self.get_hotel(hotel_id)
        if not can_modify_hotel(user, hotel):
            raise PermissionDeniedError("You can only modify hotels you created")
        return hotel

    async def create_hotel(self, data: HotelCreate, user: User) -> Hotel:
        if user.role not in ("admin", "expert"):
            raise PermissionDeniedError("Only admin and expert users can create hotels")

        payload = data.model_dump(exclude_unset=True)
        if payload.get("total_rooms") is None:
            # 未填总房量时按房型汇总
            payload["total_rooms"] = sum(r.get("totalRooms", 0) for r in payload.get("room_types") or []) or None
        error = validate_hotel_data(payload)
        if error:
            raise ServiceError(error)

        fields = {k: v for k, v in payload.items() if v is not None}
        hotel = Hotel(**fields, city=payload["location"]["city"], created_by_id=user.id)
        self.db.add(hotel)
        await self.db.commit()
        await self.db.refresh(hotel)
        log_database_operation("CREATE", "hotels", hotel.id)
        logger.info(f"🏨 酒店已创建: {hotel.name}")
        return hotel

    async def update_hotel(self, hotel_id: int, data: HotelUpdate, user: User) -> Hotel:
        hotel = await self.get_editable_hotel(hotel_id, user)
        payload = data.model_dump(exclude_unset=True)
        error = validate_hotel_data(payload, partial=True)
        if error:
            raise ServiceError(error)

        if "location" in payload:
            payload["location"] = {**(hotel.location or {}), **payload["location"]}
            hotel.city = payload["location"].get("city")
        for field, value in payload.items():
            setattr(hotel, field, value)

        await self.db.commit()
        await self.db.refresh(hotel)
        log_database_operation("UPDATE", "hotels", hotel.id)
        return hotel

    async def _linked_packages(self, hotel_id: int) -> List[Package]:
        # JSON 列跨方言检索：先按文本粗筛，再精确比对
        result = await self.db.execute(
            select(Package).where(cast(Package.hotel_packages, String).like(f"%{hotel_id}%"))
        )
        return [p for p in result.scalars().all() if hotel_id in p.linked_hotel_ids()]

    async def delete_hotel(self, hotel_id: int, user: User) -> None:
        hotel = await self.get_editable_hotel(hotel_id, user)
        linked = await self._linked_packages(hotel.id)
        if linked:
            raise ServiceError(f"Cannot delete hotel. It is linked to {len(linked)} package(s).")

        await self.db.delete(hotel)
        await self.db.commit()
        log_database_operation("DELETE", "hotels", hotel_id)

    async def list_hotels(self, filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Hotel], int]:
        conditions = []
        if filters.get("city"):
            conditions.append(Hotel.city.ilike(f"%{filters['city']}%"))
        if filters.get("star_rating"):
            conditions.append(Hotel.star_rating == filters["star_rating"])
        if filters.get("status"):
            conditions.append(Hotel.status == filters["status"])

        where = and_(*conditions) if conditions else true()
        total = (await self.db.execute(select(func.count(Hotel.id)).where(where))).scalar() or 0
        result = await self.db.execute(
            select(Hotel).where(where).order_by(Hotel.created_at.desc(), Hotel.id.desc())
            .offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def search_hotels(self, filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Hotel], int]:
        conditions = [Hotel.status == "active"]
        if filters.get("q"):
            pattern = f"%{filters['q']}%"
            conditions.append(or_(Hotel.name.ilike(pattern), Hotel.description.ilike(pattern)))
        if filters.get("city"):
            conditions.append(Hotel.city.ilike(f"%{filters['city']}%"))
        if filters.get("star_rating"):
            conditions.append(Hotel.star_rating >= filters["star_rating"])
        if filters.get("min_price") is not None:
            conditions.append(Hotel.base_price >= filters["min_price"])
        if filters.get("max_price") is not None:
            conditions.append(Hotel.base_price <= filters["max_price"])

        result = await self.db.execute(
            select(Hotel).where(and_(*conditions)).order_by(Hotel.star_rating.desc(), Hotel.base_price)
        )
        hotels = list(result.scalars().all())

        amenities = [a.strip().lower() for a in (filters.get("amenities") or "").split(",") if a.strip()]
        if amenities:
            hotels = [
                h for h in hotels
                if all(a in {x.lower() for x in h.amenities or []} for a in amenities)
            ]
        room_type = filters.get("room_type")
        if room_type:
            hotels = [h for h in hotels if any(r.get("name") == room_type for r in h.room_types or [])]

        total = len(hotels)
        start = (page - 1) * limit
        return hotels[start:start + limit], total

    async def get_availability(self, hotel_id: int, check_in: str, check_out: str,
                               rooms: int = 1, room_type: Optional[str] = None) -> Dict[str, Any]:
        hotel = await self.get_hotel(hotel_id)
        try:
            start = datetime.strptime(check_in, "%Y-%m-%d")
            end = datetime.strptime(check_out, "%Y-%m-%d")
        except (TypeError, ValueError):
            raise ServiceError("Check-in and check-out dates are required in YYYY-MM-DD format")
        if end <= start:
            raise ServiceError("Check-out date must be after check-in date")

        available = hotel.check_availability(start, end, rooms, room_type)
        nights = (end - start).days
        return {
            "available": available,
            "nights": nights,
            "totalPrice": round(hotel.get_price_for_period(start, end, room_type) * rooms, 2),
            "currency": hotel.currency,
        }

    async def update_availability(self, hotel_id: int, data: AvailabilityUpdate, user: User) -> Hotel:
        hotel = await self.get_editable_hotel(hotel_id, user)
        entries = {(str(e.get("date"))[:10], e.get("roomType")): dict(e) for e in hotel.availability or []}
        for item in data.availability:
            entries[(item.date, item.room_type)] = {
                "date": item.date,
                "roomType": item.room_type,
                "availableRooms": item.available_rooms,
                "price": item.price,
            }
        hotel.availability = sorted(entries.values(), key=lambda e: (e["date"], e.get("roomType") or ""))
        await self.db.commit()
        await self.db.refresh(hotel)
        logger.info(f"📅 酒店 {hotel.id} 可售房量已更新: {len(data.availability)} 条")
        return hotel

    async def get_hotel_packages(self, hotel_id: int) -> List[Package]:
        hotel = await self.get_hotel(hotel_id)
        return await self._linked_packages(hotel.id)

    async def update_tbo_link(self, hotel_id: int, data: TBOLinkUpdate) -> Hotel:
        hotel = await self.get_hotel(hotel_id)
        if data.is_linked and not data.tbo_hotel_code:
            raise ServiceError("TBO hotel code is required when linking")

        integration = dict(hotel.tbo_integration or {})
        integration.update({
            "isLinked": data.is_linked,
            "tboHotelCode": data.tbo_hotel_code if data.is_linked else None,
            "livePricing": data.live_pricing if data.is_linked else False,
            "syncStatus": "pending" if data.is_linked else None,
            "lastSyncDate": integration.get("lastSyncDate"),
        })
        hotel.tbo_integration = integration
        await self.db.commit()
        await self.db.refresh(hotel)
        logger.info(f"🔗 酒店 {hotel.id} TBO关联: {integration['tboHotelCode']}")
        return hotel

    async def list_linked_hotels(self) -> List[Hotel]:
        result = await self.db.execute(select(Hotel).where(Hotel.status == "active"))
        return [h for h in result.scalars().all() if (h.tbo_integration or {}).get("isLinked")]
