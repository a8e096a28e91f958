"""
TBO酒店接口透传端点
搜索与地点数据走Redis缓存
"""

import hashlib
import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from app.core.config import settings
from app.core.exceptions import NotFoundError, ServiceError
from app.core.redis import cache_key, clear_cache_pattern, delete_cache, get_cache, set_cache
from app.core.responses import success_response
from app.core.security import get_current_user, require_roles
from app.models.user import User
from app.schemas.common import parse_datetime
from app.schemas.tbo import TBOBookRequest, TBOCancelRequest, TBOPreBookRequest, TBOSearchRequest
from app.services.tbo_service import TBOService, TBOServiceError, get_tbo_service

router = APIRouter()

CACHE_PREFIX = "tbo"


def _upstream_error(message: str, error: TBOServiceError) -> ServiceError:
    logger.error(f"❌ {message}: {error.message}")
    return ServiceError(f"{message}: {error.message}", status.HTTP_502_BAD_GATEWAY)


def _search_key(request: TBOSearchRequest, hotel_codes: str, pax_rooms: list) -> str:
    digest = hashlib.md5(json.dumps({
        "checkIn": request.check_in,
        "checkOut": request.check_out,
        "hotelCodes": hotel_codes,
        "guestNationality": request.guest_nationality or settings.TBO_GUEST_NATIONALITY,
        "paxRooms": pax_rooms,
        "filters": request.filters,
    }, sort_keys=True).encode()).hexdigest()
    return cache_key(CACHE_PREFIX, "search", digest)


@router.post("/search")
async def search_hotels(request: TBOSearchRequest, tbo: TBOService = Depends(get_tbo_service)):
    if not request.check_in or not request.check_out or not (request.city_code or request.hotel_codes):
        raise ServiceError("Missing required fields: checkIn, checkOut, and either cityCode or hotelCodes")

    try:
        check_in = parse_datetime(request.check_in)
        check_out = parse_datetime(request.check_out)
    except (TypeError, ValueError, OverflowError):
        raise ServiceError("Invalid date format. Use YYYY-MM-DD format")
    if check_in >= check_out:
        raise ServiceError("Check-out date must be after check-in date")
    if check_in.date() < datetime.utcnow().date():
        raise ServiceError("Check-in date cannot be in the past")

    hotel_codes = request.hotel_codes
    if not hotel_codes:
        try:
            city_hotels = await tbo.get_hotels_by_city(request.city_code)
        except TBOServiceError as e:
            raise _upstream_error("Failed to fetch hotels for city", e)
        if not city_hotels:
            raise NotFoundError("No hotels found for the specified city")
        hotel_codes = ",".join(str(h.get("HotelCode")) for h in city_hotels if h.get("HotelCode"))

    pax_rooms = [
        {"Adults": room.adults, "Children": room.children, "ChildrenAges": room.children_ages}
        for room in (request.pax_rooms or [])
    ] or [{"Adults": 2, "Children": 0, "ChildrenAges": []}]

    key = _search_key(request, hotel_codes, pax_rooms)
    cached = await get_cache(key)
    if cached is not None:
        logger.info("📋 命中TBO搜索缓存")
        return {"success": True, "data": cached, "meta": {"cached": True, "totalResults": len(cached)}}

    try:
        result = await tbo.search_hotels(
            check_in=request.check_in,
            check_out=request.check_out,
            hotel_codes=hotel_codes,
            pax_rooms=pax_rooms,
            guest_nationality=request.guest_nationality,
            response_time=request.response_time,
            is_detailed_response=request.is_detailed_response,
            filters=request.filters,
        )
    except TBOServiceError as e:
        raise _upstream_error("TBO search failed", e)

    hotels = result["hotels"]
    await set_cache(key, hotels, settings.TBO_SEARCH_CACHE_TTL)
    return {"success": True, "data": hotels, "meta": {"cached": False, "totalResults": len(hotels)}}


@router.post("/prebook")
async def prebook_hotel(
    request: TBOPreBookRequest,
    current_user: User = Depends(get_current_user),
    tbo: TBOService = Depends(get_tbo_service),
):
    if not request.booking_code:
        raise ServiceError("Booking code is required")
    try:
        result = await tbo.pre_book(request.booking_code, request.payment_mode)
    except TBOServiceError as e:
        raise _upstream_error("Failed to pre-book hotel", e)
    return success_response(result["hotelResult"], "Hotel pre-booked successfully")


@router.post("/book")
async def book_hotel(
    request: TBOBookRequest,
    current_user: User = Depends(get_current_user),
    tbo: TBOService = Depends(get_tbo_service),
):
    if not all([request.booking_code, request.customer_details, request.client_reference_id,
                request.total_fare, request.email_id]):
        raise ServiceError("Missing required booking fields")
    try:
        result = await tbo.book_hotel(
            booking_code=request.booking_code,
            customer_details=request.customer_details,
            client_reference_id=request.client_reference_id,
            booking_reference_id=request.booking_reference_id or request.client_reference_id,
            total_fare=request.total_fare,
            email_id=request.email_id,
            phone_number=request.phone_number or "",
            booking_type=request.booking_type,
            payment_mode=request.payment_mode,
            payment_info=request.payment_info,
        )
    except TBOServiceError as e:
        raise _upstream_error("Failed to confirm hotel booking", e)

    logger.info(f"🏨 用户 {current_user.id} TBO预订成功: {result['confirmationNumber']}")
    return success_response({
        "confirmationNumber": result["confirmationNumber"],
        "clientReferenceId": result["clientReferenceId"],
        "status": result["status"],
    }, "Hotel booked successfully")


@router.get("/booking/{confirmation_number}")
async def get_booking_details(
    confirmation_number: str,
    current_user: User = Depends(get_current_user),
    tbo: TBOService = Depends(get_tbo_service),
):
    try:
        result = await tbo.get_booking_details(confirmation_number=confirmation_number)
    except TBOServiceError as e:
        raise _upstream_error("Failed to fetch booking details", e)
    return success_response(result["bookingDetail"], "Booking details retrieved successfully")


@router.post("/cancel")
async def cancel_booking(
    request: TBOCancelRequest,
    current_user: User = Depends(get_current_user),
    tbo: TBOService = Depends(get_tbo_service),
):
    if not request.confirmation_number:
        raise ServiceError("Confirmation number is required")
    try:
        result = await tbo.cancel_booking(request.confirmation_number)
    except TBOServiceError as e:
        raise _upstream_error("Failed to cancel booking", e)
    return success_response(result, "Booking cancelled successfully")


@router.get("/locations/countries")
async def get_countries(tbo: TBOService = Depends(get_tbo_service)):
    key = cache_key(CACHE_PREFIX, "countries")
    countries = await get_cache(key)
    if countries is None:
        try:
            countries = await tbo.get_country_list()
        except TBOServiceError as e:
            raise _upstream_error("Failed to fetch countries", e)
        await set_cache(key, countries, settings.TBO_LOCATION_CACHE_TTL)
    return success_response(countries, "Countries retrieved successfully")


@router.get("/locations/cities/{country_code}")
async def get_cities(country_code: str, tbo: TBOService = Depends(get_tbo_service)):
    code = country_code.upper()
    key = cache_key(CACHE_PREFIX, "cities", code)
    cities = await get_cache(key)
    if cities is None:
        try:
            cities = await tbo.get_city_list(code)
        except TBOServiceError as e:
            raise _upstream_error("Failed to fetch cities", e)
        await set_cache(key, cities, settings.TBO_LOCATION_CACHE_TTL)
    return success_response(cities, "Cities retrieved successfully")


@router.get("/hotels/city/{city_code}")
async def get_hotels_by_city(
    city_code: str,
    detailed: bool = False,
    tbo: TBOService = Depends(get_tbo_service),
):
    try:
        hotels = await tbo.get_hotels_by_city(city_code, detailed)
    except TBOServiceError as e:
        raise _upstream_error("Failed to fetch hotels by city", e)
    return success_response(hotels, "Hotels retrieved successfully")


@router.get("/hotels/{hotel_code}")
async def get_hotel_details(
    hotel_code: str,
    language: str = "EN",
    tbo: TBOService = Depends(get_tbo_service),
):
    try:
        hotel = await tbo.get_hotel_details(hotel_code, language)
    except TBOServiceError as e:
        raise _upstream_error("Failed to fetch hotel details", e)
    if hotel is None:
        raise NotFoundError("Hotel not found")
    return success_response(hotel, "Hotel details retrieved successfully")


@router.delete("/cache/clean")
async def clean_cache(
    country_code: Optional[str] = Query(None, alias="countryCode"),
    current_user: User = Depends(require_roles("admin")),
):
    """清理TBO缓存；指定countryCode时只删除该国家的城市列表"""
    if country_code:
        removed = int(await delete_cache(cache_key(CACHE_PREFIX, "cities", country_code.upper())))
    else:
        removed = await clear_cache_pattern(cache_key(CACHE_PREFIX, "*"))
    logger.info(f"🧹 已清理TBO缓存: {removed} 条")
    return success_response({"removed": removed}, "TBO cache cleaned successfully")
