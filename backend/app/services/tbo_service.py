"""
TBO 酒店API客户端
"""

import time
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from app.core.config import settings
from app.core.logging_config import log_external_api_call

TBO_ERROR_MESSAGES = {
    401: "Invalid TBO credentials",
    400: "Invalid request parameters",
    404: "TBO endpoint not found",
    429: "TBO rate limit exceeded",
    500: "TBO server error",
}


class TBOServiceError(Exception):
    """TBO调用失败（HTTP错误、连接错误或 Status.Code != 200）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _check_status(data: Dict[str, Any], default_message: str) -> None:
    status = data.get("Status") or {}
    if status.get("Code") != 200:
        raise TBOServiceError(status.get("Description") or default_message)


class TBOService:
    """TBO Holidays Hotel API（Basic Auth + JSON）"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.TBO_BASE_URL.rstrip("/")
        self.username = settings.TBO_USERNAME
        self.password = settings.TBO_PASSWORD
        self._transport = transport

        if not self.username or not self.password:
            logger.warning("⚠️ 未配置TBO账号（TBO_USERNAME/TBO_PASSWORD）")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.username, self.password),
            headers={"Content-Type": "application/json"},
            timeout=settings.TBO_TIMEOUT,
            transport=self._transport,
        )

    async def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.request(method, endpoint, json=payload)
        except httpx.HTTPError as e:
            log_external_api_call("TBO", endpoint, "connection_error", (time.perf_counter() - started) * 1000)
            logger.error(f"❌ TBO连接失败 {endpoint}: {e}")
            raise TBOServiceError(str(e) or "TBO connection error")

        duration = (time.perf_counter() - started) * 1000
        log_external_api_call("TBO", endpoint, str(response.status_code), duration)

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            description = (body.get("Status") or {}).get("Description") or body.get("Description")
            message = TBO_ERROR_MESSAGES.get(response.status_code) or description or "TBO API error"
            logger.error(f"❌ TBO接口错误 {endpoint}: {response.status_code} {message}")
            raise TBOServiceError(message, response.status_code)

        try:
            return response.json()
        except ValueError:
            raise TBOServiceError("TBO API error", response.status_code)

    async def search_hotels(self, check_in: str, check_out: str, hotel_codes: str,
                            pax_rooms: List[Dict[str, Any]], guest_nationality: Optional[str] = None,
                            response_time: int = 23, is_detailed_response: bool = False,
                            filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        filters = filters or {}
        payload = {
            "CheckIn": check_in,
            "CheckOut": check_out,
            "HotelCodes": hotel_codes,
            "GuestNationality": guest_nationality or settings.TBO_GUEST_NATIONALITY,
            "PaxRooms": pax_rooms,
            "ResponseTime": response_time,
            "IsDetailedResponse": is_detailed_response,
            "Filters": {
                "Refundable": filters.get("refundable", False),
                "NoOfRooms": filters.get("noOfRooms", 0),
                "MealType": filters.get("mealType", "All"),
            },
        }
        data = await self._request("POST", "/Search", payload)
        _check_status(data, "Search failed")
        return {"success": True, "hotels": data.get("HotelResult") or [], "status": data.get("Status")}

    async def pre_book(self, booking_code: str, payment_mode: str = "Limit") -> Dict[str, Any]:
        data = await self._request("POST", "/PreBook", {"BookingCode": booking_code, "PaymentMode": payment_mode})
        _check_status(data, "PreBook failed")
        results = data.get("HotelResult") or []
        return {"success": True, "hotelResult": results[0] if results else None, "status": data.get("Status")}

    async def book_hotel(self, booking_code: str, customer_details: List[Dict[str, Any]],
                         client_reference_id: str, booking_reference_id: str, total_fare: float,
                         email_id: str, phone_number: str, booking_type: str = "Voucher",
                         payment_mode: str = "Limit", payment_info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = {
            "BookingCode": booking_code,
            "CustomerDetails": customer_details,
            "ClientReferenceId": client_reference_id,
            "BookingReferenceId": booking_reference_id,
            "TotalFare": total_fare,
            "EmailId": email_id,
            "PhoneNumber": phone_number,
            "BookingType": booking_type,
            "PaymentMode": payment_mode,
        }
        if payment_info and payment_mode in ("NewCard", "SavedCard"):
            payload["PaymentInfo"] = payment_info

        data = await self._request("POST", "/Book", payload)
        _check_status(data, "Booking failed")
        return {
            "success": True,
            "confirmationNumber": data.get("ConfirmationNumber"),
            "clientReferenceId": data.get("ClientReferenceId"),
            "status": data.get("Status"),
        }

    async def get_booking_details(self, confirmation_number: Optional[str] = None,
                                  booking_reference_id: Optional[str] = None,
                                  payment_mode: str = "Limit") -> Dict[str, Any]:
        payload: Dict[str, Any] = {"PaymentMode": payment_mode}
        if confirmation_number:
            payload["ConfirmationNumber"] = confirmation_number
        elif booking_reference_id:
            payload["BookingReferenceId"] = booking_reference_id
        else:
            raise TBOServiceError("Either confirmation number or booking reference ID is required")

        data = await self._request("POST", "/BookingDetail", payload)
        _check_status(data, "Failed to get booking details")
        return {"success": True, "bookingDetail": data.get("BookingDetail"), "status": data.get("Status")}

    async def cancel_booking(self, confirmation_number: str) -> Dict[str, Any]:
        data = await self._request("POST", "/Cancel", {"ConfirmationNumber": confirmation_number})
        _check_status(data, "Cancellation failed")
        return {"success": True, "confirmationNumber": data.get("ConfirmationNumber"), "status": data.get("Status")}

    async def get_country_list(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/CountryList")
        return data.get("CountryList") or []

    async def get_city_list(self, country_code: str) -> List[Dict[str, Any]]:
        data = await self._request("POST", "/CityList", {"CountryCode": country_code})
        return data.get("CityList") or []

    async def get_hotel_details(self, hotel_code: str, language: str = "EN") -> Optional[Dict[str, Any]]:
        data = await self._request("POST", "/HotelDetails", {"Hotelcodes": hotel_code, "Language": language})
        details = data.get("HotelDetails") or []
        return details[0] if details else None

    async def get_hotels_by_city(self, city_code: str, is_detailed_response: bool = False) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST", "/TBOHotelCodeList",
            {"CityCode": str(city_code), "IsDetailedResponse": is_detailed_response},
        )
        return data.get("Hotels") or []


_tbo_service: Optional[TBOService] = None


def get_tbo_service() -> TBOService:
    """FastAPI依赖：进程内共享的TBO客户端"""
    global _tbo_service
    if _tbo_service is None:
        _tbo_service = TBOService()
    return _tbo_service
