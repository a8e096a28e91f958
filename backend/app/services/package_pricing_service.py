"""
套餐报价服务
基础价格（成人/儿童/婴儿）+ 关联酒店价格（TBO实时或静态），再叠加套餐折扣
"""

import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.hotel import Hotel, _as_date
from app.models.package import Package
from app.services.currency_service import CurrencyService, currency_service as default_currency_service
from app.services.hotel_sync_service import HotelSyncService
from app.services.tbo_service import TBOService, TBOServiceError

DEFAULT_TRAVELERS = {"adults": 2, "children": 0, "infants": 0}


def _js_round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _shift_date(start, day_offset: int) -> str:
    """day_offset 从1开始计数"""
    return (_as_date(start) + timedelta(days=day_offset - 1)).isoformat()


def calculate_rooms_needed(adults: int, children: int) -> List[Dict[str, int]]:
    """每间房最多2成人2儿童，直到全部分配"""
    rooms = []
    remaining_adults = max(adults or 0, 0)
    remaining_children = max(children or 0, 0)
    while remaining_adults > 0 or remaining_children > 0:
        room = {"adults": min(2, remaining_adults), "children": min(2, remaining_children)}
        rooms.append(room)
        remaining_adults -= room["adults"]
        remaining_children -= room["children"]
    return rooms


def calculate_nights(start, end) -> int:
    start_dt = start if isinstance(start, datetime) else datetime.combine(_as_date(start), datetime.min.time())
    end_dt = end if isinstance(end, datetime) else datetime.combine(_as_date(end), datetime.min.time())
    seconds = abs((end_dt - start_dt).total_seconds())
    return math.ceil(seconds / 86400)


def calculate_base_pricing(package: Package, travelers: Dict[str, int]) -> Dict[str, Any]:
    adults = travelers.get("adults", 0) or 0
    children = travelers.get("children", 0) or 0
    infants = travelers.get("infants", 0) or 0

    adult_price = package.price_adult or package.price or 0
    child_price = package.price_child or adult_price * 0.7
    infant_price = package.price_infant or adult_price * 0.1

    adults_total = adults * adult_price
    children_total = children * child_price
    infants_total = infants * infant_price

    return {
        "adults": {"count": adults, "pricePerPerson": adult_price, "total": adults_total},
        "children": {"count": children, "pricePerPerson": child_price, "total": children_total},
        "infants": {"count": infants, "pricePerPerson": infant_price, "total": infants_total},
        "total": adults_total + children_total + infants_total,
        "currency": package.currency or "SAR",
    }


def calculate_package_discount(grand_total: float, discount_type: str, discount_value: float) -> Dict[str, Any]:
    amount = 0
    if discount_type == "percentage":
        amount = _js_round(grand_total * (discount_value / 100))
    elif discount_type == "fixed_amount":
        amount = min(discount_value, grand_total)

    return {
        "type": discount_type,
        "value": discount_value,
        "amount": amount,
        "percentage": _js_round(amount / grand_total * 100) if grand_total else 0,
    }


class PackagePricingService:

    def __init__(self, db: AsyncSession, tbo_service: Optional[TBOService] = None,
                 currency: Optional[CurrencyService] = None):
        self.db = db
        self.hotel_sync = HotelSyncService(tbo_service)
        self.currency = currency or default_currency_service

    async def convert_from_usd(self, price: float, target_currency: str) -> float:
        if target_currency == "USD":
            return price
        converted = await self.currency.convert_currency(price, "USD", target_currency)
        logger.debug(f"💱 汇率换算: ${price} USD = {target_currency} {converted}")
        return converted

    async def _live_hotel_pricing(self, hotel: Hotel, entry: Dict[str, Any], start_date, nights: int,
                                  rooms_needed: List[Dict[str, int]], target_currency: str) -> Optional[Dict[str, Any]]:
        check_in = _shift_date(start_date, entry.get("checkInDay") or 1)
        check_out = (_as_date(check_in) + timedelta(days=nights)).isoformat()

        live = await self.hotel_sync.get_live_pricing(hotel, {
            "checkIn": check_in,
            "checkOut": check_out,
            "rooms": rooms_needed,
        })
        if not live.get("available") or not live.get("rooms"):
            raise TBOServiceError("No availability from live pricing")

        first_room = live["rooms"][0]
        total_usd = (first_room.get("price") or 0) * len(rooms_needed)
        final_price = total_usd
        display_currency = live.get("currency") or "USD"
        if target_currency != "USD" and display_currency == "USD":
            final_price = await self.convert_from_usd(total_usd, target_currency)
            display_currency = target_currency

        return {
            "hotelId": hotel.id,
            "hotelName": hotel.name,
            "tboHotelCode": (hotel.tbo_integration or {}).get("tboHotelCode"),
            "nights": nights,
            "livePricing": True,
            "available": True,
            "pricePerNight": final_price / nights / len(rooms_needed) if nights else final_price,
            "totalPrice": final_price,
            "currency": display_currency,
            "originalCurrency": live.get("currency"),
            "originalPrice": total_usd,
            "bookingCode": first_room.get("bookingCode"),
            "roomType": first_room.get("roomType"),
            "baseFare": first_room.get("baseFare"),
            "taxes": (first_room.get("totalTax") or 0) + (first_room.get("serviceTax") or 0),
            "roomDetails": {**first_room, "price": final_price / len(rooms_needed)},
            "roomsCount": len(rooms_needed),
            "dates": {"checkIn": check_in, "checkOut": check_out},
        }

    async def calculate_hotel_pricing(self, hotel_packages: List[Dict[str, Any]], date_range: Dict[str, Any],
                                      travelers: Dict[str, int], target_currency: str = "SAR") -> Dict[str, Any]:
        start_date = date_range.get("startDate")
        end_date = date_range.get("endDate")
        if not start_date or not end_date:
            return {
                "summary": {"message": "Dates required for hotel pricing"},
                "details": [],
                "totalCost": 0,
                "errors": ["Check-in and check-out dates are required for hotel pricing"],
            }

        rooms_needed = calculate_rooms_needed(travelers.get("adults", 0), travelers.get("children", 0)) or [{"adults": 1, "children": 0}]
        results: List[Dict[str, Any]] = []
        errors: List[str] = []
        total_cost = 0.0

        for entry in hotel_packages:
            hotel_id = entry.get("hotelId") or entry.get("hotel")
            try:
                hotel = await self.db.get(Hotel, int(hotel_id)) if hotel_id is not None else None
            except (TypeError, ValueError):
                hotel = None
            if not hotel:
                errors.append(f"Hotel not found: {hotel_id}")
                continue

            nights = entry.get("nights") or calculate_nights(start_date, end_date)
            pricing = None

            if hotel.has_live_pricing:
                try:
                    pricing = await self._live_hotel_pricing(
                        hotel, entry, start_date, nights, rooms_needed, target_currency
                    )
                except TBOServiceError as e:
                    logger.warning(f"⚠️ 酒店 {hotel.id} 实时报价失败，改用静态价格: {e.message}")

            if pricing is None:
                static_price = entry.get("pricePerNight") or hotel.base_price or 0
                room_total = static_price * nights * len(rooms_needed)
                check_in_day = entry.get("checkInDay") or 1
                pricing = {
                    "hotelId": hotel.id,
                    "hotelName": hotel.name,
                    "nights": nights,
                    "livePricing": False,
                    "available": True,
                    "pricePerNight": static_price,
                    "totalPrice": room_total,
                    "currency": hotel.currency or "SAR",
                    "roomsCount": len(rooms_needed),
                    "dates": {
                        "checkIn": _shift_date(start_date, check_in_day),
                        "checkOut": _shift_date(start_date, check_in_day + nights - 1),
                    },
                }

            total_cost += pricing["totalPrice"]
            results.append(pricing)

        total_nights = sum(h["nights"] for h in results)
        summary = {
            "totalHotels": len(hotel_packages),
            "pricedHotels": len(results),
            "totalCost": total_cost,
            "averagePricePerNight": _js_round(total_cost / total_nights) if total_nights else 0,
            "livePricingCount": len([h for h in results if h["livePricing"]]),
            "staticPricingCount": len([h for h in results if not h["livePricing"]]),
        }
        return {"summary": summary, "details": results, "totalCost": total_cost, "errors": errors}

    async def calculate_package_pricing(self, package: Package, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        完整报价

        params: {travelers: {adults, children, infants}, dateRange: {startDate, endDate}, currency}
        有实时酒店价时以酒店价作为总价，否则为 基础价 + 酒店价
        """
        travelers = {**DEFAULT_TRAVELERS, **(params.get("travelers") or {})}
        date_range = params.get("dateRange") or {}
        currency = params.get("currency") or "SAR"

        breakdown: Dict[str, Any] = {
            "packageId": package.id,
            "packageName": package.title,
            "currency": currency,
            "dateRange": {k: v.isoformat() if isinstance(v, (date, datetime)) else v for k, v in date_range.items()},
            "travelers": travelers,
            "pricing": {"basePricing": {}, "hotelPricing": {}, "totalPricing": {}},
            "hotels": [],
            "errors": [],
        }

        base = calculate_base_pricing(package, travelers)
        breakdown["pricing"]["basePricing"] = base

        hotel_cost = 0.0
        if package.hotel_packages:
            hotel_pricing = await self.calculate_hotel_pricing(package.hotel_packages, date_range, travelers, currency)
            breakdown["pricing"]["hotelPricing"] = hotel_pricing["summary"]
            breakdown["hotels"] = hotel_pricing["details"]
            breakdown["errors"].extend(hotel_pricing["errors"])
            hotel_cost = hotel_pricing["totalCost"]

        use_live = any(h.get("livePricing") for h in breakdown["hotels"]) and hotel_cost > 0
        grand_total = hotel_cost if use_live else base["total"] + hotel_cost
        traveler_count = travelers["adults"] + travelers["children"] + travelers["infants"]

        def _bucket(name):
            if use_live:
                return {"count": base[name]["count"], "pricePerPerson": 0, "total": 0}
            return base[name]

        total_pricing: Dict[str, Any] = {
            "packageCost": 0 if use_live else base["total"],
            "hotelCost": hotel_cost,
            "grandTotal": grand_total,
            "currency": currency,
            "pricePerPerson": math.ceil(grand_total / traveler_count) if traveler_count else 0,
            "pricingMode": "live_hotel" if use_live else "traditional",
            "breakdown": {
                "adults": _bucket("adults"),
                "children": _bucket("children"),
                "infants": _bucket("infants"),
                "hotels": hotel_cost,
            },
        }

        if package.discount_type and package.discount_type != "none" and package.discount_value:
            discount = calculate_package_discount(grand_total, package.discount_type, package.discount_value)
            total_pricing["discount"] = discount
            total_pricing["finalTotal"] = grand_total - discount["amount"]
        else:
            total_pricing["finalTotal"] = grand_total

        breakdown["pricing"]["totalPricing"] = total_pricing
        logger.info(f"🎯 套餐 {package.id} 报价完成: {total_pricing['pricingMode']} {total_pricing['finalTotal']} {currency}")
        return breakdown
