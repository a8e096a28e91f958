"""
本地酒店与TBO酒店的同步与实时报价
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from app.models.hotel import Hotel
from app.services.tbo_service import TBOService, TBOServiceError, get_tbo_service


class HotelSyncService:

    def __init__(self, tbo_service: Optional[TBOService] = None):
        self.tbo = tbo_service or get_tbo_service()

    async def search_tbo_hotels_by_city(self, city_name: str, country_code: str = "AE") -> List[Dict[str, Any]]:
        """按城市名查找TBO酒店：先精确匹配，再双向包含匹配"""
        cities = await self.tbo.get_city_list(country_code)
        target = city_name.strip().lower()

        matching = [c for c in cities if (c.get("Name") or "").lower() == target]
        if not matching:
            matching = [
                c for c in cities
                if c.get("Name") and (target in c["Name"].lower() or c["Name"].lower() in target)
            ]
        if not matching:
            available = ", ".join(c.get("Name", "") for c in cities[:10])
            raise TBOServiceError(
                f'City "{city_name}" not found in TBO locations for country {country_code}. '
                f"Available cities: {available}"
            )

        hotels: List[Dict[str, Any]] = []
        for city in matching:
            try:
                hotels.extend(await self.tbo.get_hotels_by_city(city.get("Code")))
            except TBOServiceError as e:
                logger.warning(f"⚠️ 获取城市 {city.get('Name')} 的酒店失败: {e}")

        logger.info(f"🏨 在 {len(matching)} 个城市中找到 {len(hotels)} 家TBO酒店")
        return [
            {
                "tboHotelCode": h.get("HotelCode"),
                "name": h.get("HotelName"),
                "cityCode": h.get("CityId"),
                "countryCode": h.get("CountryCode"),
                "starRating": h.get("StarRating"),
                "address": h.get("Address"),
                "description": h.get("Description"),
                "coordinates": {
                    "latitude": h["GeoLocation"].get("Latitude"),
                    "longitude": h["GeoLocation"].get("Longitude"),
                } if h.get("GeoLocation") else None,
                "amenities": h.get("Amenities") or [],
                "images": h.get("Images") or [],
            }
            for h in hotels
        ]

    async def get_live_pricing(self, hotel: Hotel, search_params: Dict[str, Any]) -> Dict[str, Any]:
        """
        查询TBO实时房价

        search_params: {checkIn, checkOut, rooms: [{adults, children, childrenAges}]}
        每个房型价格 = TotalFare + TotalTax + ServiceTax
        """
        integration = hotel.tbo_integration or {}
        if not integration.get("isLinked") or not integration.get("tboHotelCode"):
            raise TBOServiceError("Hotel not linked to TBO")

        rooms = search_params.get("rooms") or [{"adults": 2, "children": 0}]
        result = await self.tbo.search_hotels(
            check_in=search_params["checkIn"],
            check_out=search_params["checkOut"],
            hotel_codes=str(integration["tboHotelCode"]),
            pax_rooms=[
                {
                    "Adults": room.get("adults", 1),
                    "Children": room.get("children", 0),
                    "ChildrenAges": room.get("childrenAges") or [],
                }
                for room in rooms
            ],
            response_time=20,
            is_detailed_response=True,
        )

        if not result["hotels"]:
            logger.info(f"🏨 酒店 {hotel.id} 在所选日期无可售房")
            return {"available": False, "message": "No availability found for selected dates"}

        tbo_hotel = result["hotels"][0]
        currency = tbo_hotel.get("Currency") or "USD"
        mapped_rooms = []
        for room in tbo_hotel.get("Rooms") or []:
            base_fare = room.get("TotalFare") or 0
            total_tax = room.get("TotalTax") or 0
            service_tax = room.get("ServiceTax") or 0
            names = room.get("Name") or []
            mapped_rooms.append({
                "roomType": names[0] if names else "Standard Room",
                "mealPlan": room.get("MealType") or "Room Only",
                "price": base_fare + total_tax + service_tax,
                "baseFare": base_fare,
                "totalTax": total_tax,
                "serviceTax": service_tax,
                "currency": currency,
                "refundable": bool(room.get("IsRefundable")),
                "bookingCode": room.get("BookingCode") or "",
                "inclusion": room.get("Inclusion") or "",
            })

        cheapest = min(mapped_rooms, key=lambda r: r["price"]) if mapped_rooms else {"price": 0}
        return {
            "available": True,
            "hotel": {
                "name": hotel.name,
                "starRating": hotel.star_rating,
                "tboHotelCode": integration["tboHotelCode"],
                "currency": currency,
            },
            "rooms": mapped_rooms,
            "totalPrice": cheapest["price"],
            "currency": currency,
            "hotelCode": tbo_hotel.get("HotelCode"),
        }

    async def sync_hotel(self, hotel: Hotel) -> Dict[str, Any]:
        """刷新TBO对接信息（lastSyncDate/syncStatus），并同步描述、星级、设施"""
        integration = dict(hotel.tbo_integration or {})
        if not integration.get("isLinked") or not integration.get("tboHotelCode"):
            raise TBOServiceError("Hotel not linked to TBO")

        try:
            details = await self.tbo.get_hotel_details(str(integration["tboHotelCode"]))
        except TBOServiceError as e:
            integration.update({
                "syncStatus": "failed",
                "syncError": e.message,
                "lastSyncDate": datetime.utcnow().isoformat(),
            })
            hotel.tbo_integration = integration
            raise

        synced_fields = []
        if details:
            if details.get("Description"):
                hotel.description = details["Description"]
                synced_fields.append("description")
            if isinstance(details.get("HotelRating"), int) and 1 <= details["HotelRating"] <= 5:
                hotel.star_rating = details["HotelRating"]
                synced_fields.append("starRating")
            if details.get("HotelFacilities"):
                hotel.amenities = list(details["HotelFacilities"])
                synced_fields.append("amenities")

        integration.update({
            "syncStatus": "synced",
            "syncError": None,
            "lastSyncDate": datetime.utcnow().isoformat(),
            "syncedFields": synced_fields,
        })
        hotel.tbo_integration = integration
        logger.info(f"🔄 酒店 {hotel.id} 已与TBO同步: {synced_fields}")
        return {"success": True, "syncedFields": synced_fields}
