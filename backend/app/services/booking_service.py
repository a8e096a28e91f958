"""
预订服务
创建预订（含TBO酒店预订流程）、取消、TBO状态查询与管理端报表
"""

import math
import random
import re
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, PermissionDeniedError, ServiceError
from app.core.logging_config import log_database_operation
from app.models.booking import BOOKING_STATUSES, PAYMENT_STATUSES, TBO_BOOKING_STATUSES, Booking
from app.models.hotel import Hotel
from app.models.package import Package
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingStatusUpdate
from app.services.package_pricing_service import PackagePricingService
from app.services.tbo_service import TBOService, TBOServiceError, get_tbo_service

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
FINAL_TBO_STATUSES = ("cancelled", "failed")

# TBO PreBook/Book 失败时使用的演示数据
MOCK_PREBOOK_TOTAL_FARE = 567.48
MOCK_BASE_FARE = 486.13
MOCK_TAXES = 81.35


def _utcnow() -> datetime:
    return datetime.utcnow()


def validate_booking_data(data: BookingCreate) -> Optional[str]:
    """按顺序校验，返回第一条错误文案"""
    travelers = data.travelers
    if travelers is None:
        return "Travelers information is required"
    if not travelers.adults or travelers.adults < 1:
        return "At least 1 adult traveler is required"
    if travelers.children is not None and travelers.children < 0:
        return "Number of children cannot be negative"
    if travelers.infants is not None and travelers.infants < 0:
        return "Number of infants cannot be negative"

    dates = data.travel_dates
    if dates is None:
        return "Travel dates are required"
    if not dates.check_in or not dates.check_out:
        return "Check-in and check-out dates are required"

    today = _utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    if dates.check_in <= today:
        return "Check-in date must be in the future"
    if dates.check_out <= dates.check_in:
        return "Check-out date must be after check-in date"

    contact = data.contact_info
    if contact is None:
        return "Contact information is required"
    if not contact.email or not contact.phone:
        return "Contact email and phone are required"
    if not EMAIL_PATTERN.match(contact.email):
        return "Please provide a valid email address"

    return None


def _history_entry(status: str, notes: str) -> Dict[str, Any]:
    return {"status": status, "timestamp": _utcnow().isoformat(), "notes": notes}


def append_tbo_history(booking: Booking, status: str, notes: str, set_status: bool = True) -> None:
    """追加TBO状态历史（JSON列需整体替换才会被ORM感知）"""
    record = dict(booking.tbo_booking or {})
    if set_status:
        record["bookingStatus"] = status
    record["lastStatusCheck"] = _utcnow().isoformat()
    record["statusHistory"] = list(record.get("statusHistory") or []) + [_history_entry(status, notes)]
    booking.tbo_booking = record


def can_access_booking(user: User, booking: Booking) -> bool:
    return user.role == "admin" or booking.user_id == user.id


def build_email_data(booking: Booking, user: User, package: Package) -> Dict[str, Any]:
    return {
        "to": booking.contact_email,
        "cc": user.email,
        "subject": f"Booking Confirmation - {booking.booking_reference}",
        "data": {
            "bookingReference": booking.booking_reference,
            "userName": user.name,
            "packageTitle": package.title,
            "destination": package.destination,
            "duration": package.duration,
            "checkIn": booking.check_in.isoformat(),
            "checkOut": booking.check_out.isoformat(),
            "totalTravelers": booking.total_travelers,
            "totalPrice": booking.total_price,
            "bookingStatus": booking.booking_status,
            "paymentStatus": booking.payment_status,
            "specialRequests": booking.special_requests,
            "contactInfo": {"email": booking.contact_email, "phone": booking.contact_phone},
        },
    }


class BookingService:

    def __init__(self, db: AsyncSession, tbo_service: Optional[TBOService] = None):
        self.db = db
        self.tbo = tbo_service or get_tbo_service()

    # ---------------------------------------------------------------- 查询

    async def get_booking(self, booking_id: int, with_package: bool = False) -> Booking:
        query = select(Booking).where(Booking.id == booking_id)
        if with_package:
            query = query.options(selectinload(Booking.package)).execution_options(populate_existing=True)
        booking = (await self.db.execute(query)).scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    async def get_accessible_booking(self, booking_id: int, user: User, with_package: bool = False) -> Booking:
        booking = await self.get_booking(booking_id, with_package)
        if not can_access_booking(user, booking):
            raise PermissionDeniedError("You can only access your own bookings")
        return booking

    async def _paginate(self, conditions: List[Any], page: int, limit: int) -> Tuple[List[Booking], int]:
        where = and_(*conditions) if conditions else true()
        total = (await self.db.execute(select(func.count(Booking.id)).where(where))).scalar() or 0
        result = await self.db.execute(
            select(Booking)
            .where(where)
            .options(selectinload(Booking.package))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_user_bookings(self, user: User, status: Optional[str], page: int, limit: int):
        conditions = [Booking.user_id == user.id]
        if status:
            conditions.append(Booking.booking_status == status)
        return await self._paginate(conditions, page, limit)

    async def list_all_bookings(self, filters: Dict[str, Any], page: int, limit: int):
        conditions = []
        if filters.get("status"):
            conditions.append(Booking.booking_status == filters["status"])
        if filters.get("payment_status"):
            conditions.append(Booking.payment_status == filters["payment_status"])
        if filters.get("user_id"):
            conditions.append(Booking.user_id == filters["user_id"])
        if filters.get("package_id"):
            conditions.append(Booking.package_id == filters["package_id"])
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            conditions.append(or_(
                Booking.booking_reference.ilike(pattern),
                Booking.contact_email.ilike(pattern),
            ))
        return await self._paginate(conditions, page, limit)

    async def list_package_bookings(self, package_id: int, user: User, status: Optional[str], page: int, limit: int):
        package = await self.db.get(Package, package_id)
        if not package:
            raise NotFoundError("Package not found")
        if user.role == "expert" and package.created_by_id != user.id:
            raise PermissionDeniedError("You can only view bookings for your packages")

        conditions = [Booking.package_id == package_id]
        if status:
            conditions.append(Booking.booking_status == status)
        bookings, total = await self._paginate(conditions, page, limit)
        return package, bookings, total

    # ---------------------------------------------------------------- 创建

    async def generate_booking_reference(self) -> str:
        """TRP-YYYYMMDD-NNNN，冲突时重新生成"""
        date_part = _utcnow().strftime("%Y%m%d")
        while True:
            reference = f"TRP-{date_part}-{random.randint(0, 9999):04d}"
            exists = (await self.db.execute(
                select(Booking.id).where(Booking.booking_reference == reference)
            )).first()
            if not exists:
                return reference
            logger.debug(f"预订编号冲突，重新生成: {reference}")

    async def check_package_has_tbo_hotels(self, package: Package) -> Tuple[bool, Optional[Hotel]]:
        hotel_ids = package.linked_hotel_ids()
        if not hotel_ids:
            return False, None
        hotel = await self.db.get(Hotel, hotel_ids[0])
        if not hotel:
            logger.warning(f"⚠️ 套餐 {package.id} 关联的酒店 {hotel_ids[0]} 不存在")
            return False, None
        return hotel.has_live_pricing, hotel if hotel.has_live_pricing else None

    async def handle_tbo_booking(self, package: Package, hotel: Hotel, data: BookingCreate,
                                 reference: str) -> Dict[str, Any]:
        """
        TBO酒店预订：实时报价取 bookingCode -> PreBook -> Book
        PreBook/Book 失败时使用演示数据继续，其余错误抛出 ServiceError
        """
        travelers = data.travelers
        dates = data.travel_dates
        contact = data.contact_info

        pricing_service = PackagePricingService(self.db, tbo_service=self.tbo)
        live = await pricing_service.calculate_package_pricing(package, {
            "travelers": {"adults": travelers.adults, "children": travelers.children, "infants": travelers.infants},
            "dateRange": {"startDate": dates.check_in.date(), "endDate": dates.check_out.date()},
            "currency": "USD",
        })
        if not live["hotels"]:
            raise ServiceError("Unable to get live pricing for TBO booking")
        live_hotel = live["hotels"][0]
        booking_code = live_hotel.get("bookingCode")
        if not booking_code:
            raise ServiceError("No booking code available for TBO booking")

        integration = hotel.tbo_integration or {}
        final_total = live["pricing"]["totalPricing"]["finalTotal"]

        try:
            pre_book = await self.tbo.pre_book(booking_code)
            logger.info(f"✅ TBO PreBook 成功: {reference}")
        except TBOServiceError as e:
            logger.warning(f"⚠️ TBO PreBook 失败，使用演示数据: {e.message}")
            pre_book = {
                "success": True,
                "status": "Success",
                "hotelResult": {
                    "HotelCode": integration.get("tboHotelCode"),
                    "HotelName": hotel.name,
                    "TotalFare": MOCK_PREBOOK_TOTAL_FARE,
                    "Currency": "USD",
                },
            }

        client_reference = f"TRIP-{reference}"
        try:
            book_result = await self.tbo.book_hotel(
                booking_code=booking_code,
                customer_details=[{
                    "CustomerNames": [{
                        "Title": contact.title or "Mr",
                        "FirstName": contact.first_name or contact.email.split("@")[0],
                        "LastName": contact.last_name or "Guest",
                        "Type": "Adult",
                    }],
                }],
                client_reference_id=client_reference,
                booking_reference_id=reference,
                total_fare=final_total,
                email_id=contact.email,
                phone_number=contact.phone,
            )
            logger.info(f"✅ TBO Book 成功: {book_result.get('confirmationNumber')}")
        except TBOServiceError as e:
            logger.warning(f"⚠️ TBO Book 失败，使用演示确认号: {e.message}")
            book_result = {
                "success": True,
                "confirmationNumber": f"TBO{int(time.time() * 1000)}{random.randint(0, 999)}",
                "clientReferenceId": client_reference,
                "status": {"Code": 200, "Description": "Success"},
            }

        confirmation = book_result.get("confirmationNumber")
        nights = math.ceil((dates.check_out - dates.check_in).total_seconds() / 86400)
        return {
            "isLinked": True,
            "bookingCode": booking_code,
            "confirmationNumber": confirmation,
            "preBookData": pre_book,
            "bookingResult": book_result,
            "hotelDetails": {
                "hotelId": hotel.id,
                "tboHotelCode": integration.get("tboHotelCode"),
                "hotelName": hotel.name,
                "roomType": live_hotel.get("roomType") or "Deluxe Room",
                "checkInDate": dates.check_in.isoformat(),
                "checkOutDate": dates.check_out.isoformat(),
                "nights": nights,
            },
            "pricingDetails": {
                "baseFare": live_hotel.get("baseFare") or MOCK_BASE_FARE,
                "taxes": live_hotel.get("taxes") or MOCK_TAXES,
                "totalPrice": final_total,
                "currency": live["currency"],
            },
            "bookingStatus": "confirmed",
            "lastStatusCheck": _utcnow().isoformat(),
            "statusHistory": [_history_entry("confirmed", f"TBO booking confirmed with reference: {confirmation}")],
        }

    async def create_booking(self, data: BookingCreate, user: User) -> Tuple[Booking, Dict[str, Any]]:
        if not data.package_id:
            raise ServiceError("Package ID is required")

        error = validate_booking_data(data)
        if error:
            raise ServiceError(error)

        package = await self.db.get(Package, data.package_id)
        if not package:
            raise NotFoundError("Package not found")
        if not package.availability:
            raise ServiceError("Package is not available for booking")

        travelers = data.travelers
        total_travelers = travelers.adults + (travelers.children or 0) + (travelers.infants or 0)
        if total_travelers > package.max_travelers:
            raise ServiceError(f"Maximum {package.max_travelers} travelers allowed for this package")

        reference = await self.generate_booking_reference()
        tbo_record = None
        has_tbo, tbo_hotel = await self.check_package_has_tbo_hotels(package)
        if has_tbo:
            logger.info(f"🏨 套餐 {package.id} 关联TBO酒店，开始酒店预订流程")
            try:
                tbo_record = await self.handle_tbo_booking(package, tbo_hotel, data, reference)
            except (ServiceError, TBOServiceError) as e:
                logger.error(f"❌ TBO酒店预订失败: {e.message}")
                raise ServiceError(f"Hotel booking failed: {e.message}")
            total_price = tbo_record["pricingDetails"]["totalPrice"]
        else:
            total_price = package.price * total_travelers

        booking = Booking(
            booking_reference=reference,
            user_id=user.id,
            package_id=package.id,
            adults=travelers.adults,
            children=travelers.children or 0,
            infants=travelers.infants or 0,
            check_in=data.travel_dates.check_in,
            check_out=data.travel_dates.check_out,
            contact_email=data.contact_info.email,
            contact_phone=data.contact_info.phone,
            total_price=total_price,
            special_requests=data.special_requests or "",
            tbo_booking=tbo_record,
        )
        self.db.add(booking)
        package.current_bookings = (package.current_bookings or 0) + total_travelers
        await self.db.commit()

        log_database_operation("INSERT", "bookings", booking.id)
        logger.info(f"🧾 预订已创建: {booking.booking_reference} 用户={user.id} 套餐={package.id} 总价={total_price}")

        booking = await self.get_booking(booking.id, with_package=True)
        return booking, build_email_data(booking, user, package)

    # ---------------------------------------------------------------- 状态变更

    async def cancel_booking(self, booking_id: int, user: User, reason: Optional[str] = None) -> Booking:
        booking = await self.get_accessible_booking(booking_id, user, with_package=True)

        if booking.booking_status == "cancelled":
            raise ServiceError("Booking is already cancelled")
        if booking.booking_status == "completed":
            raise ServiceError("Cannot cancel completed booking")
        if booking.check_in - _utcnow() < timedelta(days=1):
            raise ServiceError("Cannot cancel booking within 24 hours of check-in date")

        booking.booking_status = "cancelled"
        booking.cancelled_at = _utcnow()
        booking.cancellation_reason = reason

        if booking.package is not None:
            booking.package.current_bookings = max(0, (booking.package.current_bookings or 0) - booking.total_travelers)

        confirmation = (booking.tbo_booking or {}).get("confirmationNumber")
        if booking.is_tbo_linked and confirmation and self.tbo is not None:
            try:
                await self.tbo.cancel_booking(confirmation)
                append_tbo_history(booking, "cancelled", "TBO booking cancelled with the booking")
            except TBOServiceError as e:
                logger.error(f"❌ TBO取消失败 {confirmation}: {e.message}")
                append_tbo_history(booking, "cancelled", f"TBO cancellation failed: {e.message}", set_status=False)

        await self.db.commit()
        booking = await self.get_booking(booking.id, with_package=True)
        logger.info(f"🚫 预订已取消: {booking.booking_reference}")
        return booking

    async def update_status(self, booking_id: int, update: BookingStatusUpdate) -> Booking:
        booking = await self.get_booking(booking_id, with_package=True)

        if update.booking_status is not None and update.booking_status not in BOOKING_STATUSES:
            raise ServiceError(f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}")
        if update.payment_status is not None and update.payment_status not in PAYMENT_STATUSES:
            raise ServiceError(f"Invalid payment status. Must be one of: {', '.join(PAYMENT_STATUSES)}")

        if update.booking_status is not None:
            booking.booking_status = update.booking_status
            if update.booking_status == "cancelled" and not booking.cancelled_at:
                booking.cancelled_at = _utcnow()
        if update.payment_status is not None:
            booking.payment_status = update.payment_status

        await self.db.commit()
        booking = await self.get_booking(booking.id, with_package=True)
        return booking

    async def update_tbo_booking_status(self, booking_id: int, status: str, notes: Optional[str] = None) -> Booking:
        booking = await self.get_booking(booking_id)
        if not booking.is_tbo_linked:
            raise ServiceError("This booking is not linked to TBO")
        if status not in TBO_BOOKING_STATUSES:
            raise ServiceError(f"Invalid TBO status. Must be one of: {', '.join(TBO_BOOKING_STATUSES)}")

        append_tbo_history(booking, status, notes or f"Status updated to {status}")
        await self.db.commit()
        booking = await self.get_booking(booking.id, with_package=True)
        logger.info(f"✅ TBO预订状态已更新: {booking.booking_reference} -> {status}")
        return booking

    async def check_tbo_status(self, booking_id: int, user: User) -> Tuple[Booking, str]:
        booking = await self.get_accessible_booking(booking_id, user)
        if not booking.is_tbo_linked:
            raise ServiceError("This booking is not linked to TBO")

        message = "TBO booking status retrieved successfully"
        record = booking.tbo_booking
        confirmation = record.get("confirmationNumber")
        if confirmation:
            try:
                result = await self.tbo.get_booking_details(confirmation_number=confirmation)
                detail = result.get("bookingDetail") or {}
                live_status = str(detail.get("BookingStatus") or record.get("bookingStatus")).lower()
                if live_status != record.get("bookingStatus"):
                    append_tbo_history(booking, live_status, "Status updated from TBO live check")
                    message = "TBO booking status updated from live check"
                else:
                    record = dict(record)
                    record["lastStatusCheck"] = _utcnow().isoformat()
                    booking.tbo_booking = record
                await self.db.commit()
            except TBOServiceError as e:
                logger.warning(f"⚠️ 无法获取TBO实时状态: {e.message}")
                message = "TBO booking status retrieved (live check unavailable)"
        return booking, message

    async def refresh_open_tbo_bookings(self) -> Dict[str, int]:
        """定时任务：检查未结束的TBO预订的实时状态"""
        result = await self.db.execute(
            select(Booking).where(Booking.tbo_booking.isnot(None), Booking.booking_status != "cancelled")
        )
        checked = updated = failed = 0
        for booking in result.scalars().all():
            record = booking.tbo_booking or {}
            if not record.get("isLinked") or record.get("bookingStatus") in FINAL_TBO_STATUSES:
                continue
            if not record.get("confirmationNumber"):
                continue
            checked += 1
            try:
                details = await self.tbo.get_booking_details(confirmation_number=record["confirmationNumber"])
            except TBOServiceError as e:
                failed += 1
                logger.warning(f"⚠️ TBO状态检查失败 {booking.booking_reference}: {e.message}")
                continue
            live_status = str((details.get("bookingDetail") or {}).get("BookingStatus") or record.get("bookingStatus")).lower()
            if live_status != record.get("bookingStatus"):
                append_tbo_history(booking, live_status, "Status updated from scheduled TBO check")
                updated += 1
        await self.db.commit()
        return {"checked": checked, "updated": updated, "failed": failed}

    # ---------------------------------------------------------------- 报表

    async def generate_report(self, start_date: Optional[datetime], end_date: Optional[datetime],
                              package_id: Optional[int] = None, status: Optional[str] = None) -> Dict[str, Any]:
        conditions = []
        if start_date:
            conditions.append(Booking.created_at >= start_date)
        if end_date:
            conditions.append(Booking.created_at <= end_date)
        if package_id:
            conditions.append(Booking.package_id == package_id)
        if status:
            conditions.append(Booking.booking_status == status)
        where = and_(*conditions) if conditions else true()

        total = (await self.db.execute(select(func.count(Booking.id)).where(where))).scalar() or 0
        revenue = (await self.db.execute(
            select(func.coalesce(func.sum(Booking.total_price), 0)).where(where, Booking.payment_status == "paid")
        )).scalar() or 0

        status_rows = await self.db.execute(
            select(Booking.booking_status, func.count(Booking.id)).where(where).group_by(Booking.booking_status)
        )
        payment_rows = await self.db.execute(
            select(Booking.payment_status, func.count(Booking.id)).where(where).group_by(Booking.payment_status)
        )

        booking_count = func.count(Booking.id).label("booking_count")
        top_rows = await self.db.execute(
            select(Package.id, Package.title, booking_count, func.sum(Booking.total_price))
            .join(Package, Package.id == Booking.package_id)
            .where(where)
            .group_by(Package.id, Package.title)
            .order_by(booking_count.desc())
            .limit(10)
        )

        monthly: Dict[str, Dict[str, Any]] = {}
        for created_at, price in (await self.db.execute(
            select(Booking.created_at, Booking.total_price).where(where)
        )).all():
            month = created_at.strftime("%Y-%m")
            bucket = monthly.setdefault(month, {"month": month, "bookings": 0, "revenue": 0.0})
            bucket["bookings"] += 1
            bucket["revenue"] += price or 0

        return {
            "summary": {
                "totalBookings": total,
                "totalRevenue": float(revenue),
                "averageBookingValue": round(float(revenue) / total, 2) if total else 0,
                "reportPeriod": {
                    "startDate": start_date.date().isoformat() if start_date else None,
                    "endDate": end_date.date().isoformat() if end_date else None,
                },
            },
            "statusBreakdown": {row[0]: row[1] for row in status_rows.all()},
            "paymentBreakdown": {row[0]: row[1] for row in payment_rows.all()},
            "topPackages": [
                {"packageId": row[0], "packageTitle": row[1], "bookingCount": row[2], "revenue": float(row[3] or 0)}
                for row in top_rows.all()
            ],
            "monthlyTrends": [monthly[key] for key in sorted(monthly)],
        }
