"""
TBO透传接口数据模式
必填项在端点中校验，以返回统一的错误文案
"""

from typing import Any, Dict, List, Optional

from app.schemas.common import CamelModel


class PaxRoom(CamelModel):
    adults: int = 2
    children: int = 0
    children_ages: List[int] = []


class TBOSearchRequest(CamelModel):
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    city_code: Optional[str] = None
    hotel_codes: Optional[str] = None
    guest_nationality: Optional[str] = None
    pax_rooms: Optional[List[PaxRoom]] = None
    response_time: int = 23
    is_detailed_response: bool = False
    filters: Dict[str, Any] = {}


class TBOPreBookRequest(CamelModel):
    booking_code: Optional[str] = None
    payment_mode: str = "Limit"


class TBOBookRequest(CamelModel):
    booking_code: Optional[str] = None
    customer_details: Optional[List[Dict[str, Any]]] = None
    client_reference_id: Optional[str] = None
    booking_reference_id: Optional[str] = None
    total_fare: Optional[float] = None
    email_id: Optional[str] = None
    phone_number: Optional[str] = None
    booking_type: str = "Voucher"
    payment_mode: str = "Limit"
    payment_info: Optional[Dict[str, Any]] = None


class TBOCancelRequest(CamelModel):
    confirmation_number: Optional[str] = None
