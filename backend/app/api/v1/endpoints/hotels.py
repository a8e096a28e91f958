"""
酒店API端点
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import get_current_user, require_roles
from app.models.user import User
from app.schemas.common import serialize, serialize_list
from app.schemas.hotel import AvailabilityUpdate, HotelCreate, HotelOut, HotelUpdate, TBOLinkUpdate
from app.schemas.package import PackageOut
from app.services.hotel_service import HotelService

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_hotel(
    data: HotelCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    hotel = await HotelService(db).create_hotel(data, current_user)
    return success_response({"hotel": serialize(HotelOut, hotel)}, "Hotel created successfully")


@router.get("/")
async def list_hotels(
    city: Optional[str] = None,
    star_rating: Optional[int] = Query(None, alias="starRating", ge=1, le=5),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    filters = {"city": city, "star_rating": star_rating, "status": status_filter}
    hotels, total = await HotelService(db).list_hotels(filters, page, limit)
    return success_response({
        "hotels": serialize_list(HotelOut, hotels),
        "pagination": build_pagination(page, limit, total, "totalHotels"),
    }, "Hotels retrieved successfully")


@router.get("/search")
async def search_hotels(
    q: Optional[str] = None,
    city: Optional[str] = None,
    star_rating: Optional[int] = Query(None, alias="starRating", ge=1, le=5),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    amenities: Optional[str] = None,
    room_type: Optional[str] = Query(None, alias="roomType"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    filters = {
        "q": q,
        "city": city,
        "star_rating": star_rating,
        "min_price": min_price,
        "max_price": max_price,
        "amenities": amenities,
        "room_type": room_type,
    }
    hotels, total = await HotelService(db).search_hotels(filters, page, limit)
    return success_response({
        "hotels": serialize_list(HotelOut, hotels),
        "pagination": build_pagination(page, limit, total, "totalHotels"),
    }, "Hotels search completed successfully")


@router.get("/{hotel_id}")
async def get_hotel(hotel_id: int, db: AsyncSession = Depends(get_async_db)):
    hotel = await HotelService(db).get_hotel(hotel_id)
    return success_response({"hotel": serialize(HotelOut, hotel)}, "Hotel retrieved successfully")


@router.put("/{hotel_id}")
async def update_hotel(
    hotel_id: int,
    data: HotelUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    hotel = await HotelService(db).update_hotel(hotel_id, data, current_user)
    return success_response({"hotel": serialize(HotelOut, hotel)}, "Hotel updated successfully")


@router.delete("/{hotel_id}")
async def delete_hotel(
    hotel_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    await HotelService(db).delete_hotel(hotel_id, current_user)
    return success_response(message="Hotel deleted successfully")


@router.get("/{hotel_id}/availability")
async def get_hotel_availability(
    hotel_id: int,
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    rooms: int = Query(1, ge=1),
    room_type: Optional[str] = Query(None, alias="roomType"),
    db: AsyncSession = Depends(get_async_db),
):
    availability = await HotelService(db).get_availability(hotel_id, check_in, check_out, rooms, room_type)
    return success_response(availability, "Hotel availability retrieved successfully")


@router.put("/{hotel_id}/availability")
async def update_hotel_availability(
    hotel_id: int,
    data: AvailabilityUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    hotel = await HotelService(db).update_availability(hotel_id, data, current_user)
    return success_response({"availability": hotel.availability}, "Hotel availability updated successfully")


@router.get("/{hotel_id}/packages")
async def get_hotel_packages(hotel_id: int, db: AsyncSession = Depends(get_async_db)):
    packages = await HotelService(db).get_hotel_packages(hotel_id)
    return success_response({"packages": serialize_list(PackageOut, packages)}, "Hotel packages retrieved successfully")


@router.put("/{hotel_id}/tbo-link")
async def update_tbo_link(
    hotel_id: int,
    data: TBOLinkUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(require_roles("admin", message="Access denied. Admin role required")),
):
    hotel = await HotelService(db).update_tbo_link(hotel_id, data)
    return success_response({
        "hotel": serialize(HotelOut, hotel),
        "tboIntegration": hotel.tbo_integration,
    }, "Hotel TBO link updated successfully")
