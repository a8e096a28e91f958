"""
预订API端点
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import get_current_user, require_roles
from app.models.user import User
from app.schemas.booking import BookingCancel, BookingCreate, BookingOut, BookingStatusUpdate, TBOStatusUpdate
from app.schemas.common import serialize, serialize_list
from app.services.admin_service import parse_date_range
from app.services.booking_service import BookingService
from app.services.tbo_service import TBOService, get_tbo_service

router = APIRouter()

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required")


def _bookings_page(bookings, page: int, limit: int, total: int) -> dict:
    return {
        "bookings": serialize_list(BookingOut, bookings),
        "pagination": build_pagination(page, limit, total, "totalBookings"),
    }


@router.get("/")
async def get_user_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    bookings, total = await BookingService(db).list_user_bookings(current_user, status_filter, page, limit)
    return success_response(_bookings_page(bookings, page, limit, total), "Bookings retrieved successfully")


@router.get("/my-bookings")
async def get_my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    bookings, total = await BookingService(db).list_user_bookings(current_user, status_filter, page, limit)
    return success_response(_bookings_page(bookings, page, limit, total), "Bookings retrieved successfully")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
    tbo_service: TBOService = Depends(get_tbo_service),
):
    booking, email_data = await BookingService(db, tbo_service).create_booking(data, current_user)
    return success_response({
        "booking": serialize(BookingOut, booking),
        "emailData": email_data,
    }, "Booking created successfully")


# ---------------------------------------------------------------- 管理端

@router.get("/admin/bookings")
async def get_all_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    user_id: Optional[int] = Query(None, alias="userId"),
    package_id: Optional[int] = Query(None, alias="packageId"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    filters = {
        "status": status_filter,
        "payment_status": payment_status,
        "user_id": user_id,
        "package_id": package_id,
        "search": search,
    }
    bookings, total = await BookingService(db).list_all_bookings(filters, page, limit)
    return success_response(_bookings_page(bookings, page, limit, total), "Bookings retrieved successfully")


@router.get("/admin/bookings/reports")
async def get_booking_reports(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    package_id: Optional[int] = Query(None, alias="packageId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    start_dt, end_dt = parse_date_range(start_date, end_date)
    report = await BookingService(db).generate_report(start_dt, end_dt, package_id, status_filter)
    return success_response(report, "Booking report generated successfully")


@router.patch("/admin/bookings/{booking_id}/status")
async def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    booking = await BookingService(db).update_status(booking_id, update)
    return success_response({"booking": serialize(BookingOut, booking)}, "Booking status updated successfully")


@router.patch("/admin/bookings/{booking_id}/tbo-status")
async def update_tbo_status(
    booking_id: int,
    update: TBOStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    booking = await BookingService(db).update_tbo_booking_status(booking_id, update.status, update.notes)
    return success_response({
        "booking": serialize(BookingOut, booking),
        "tboBooking": booking.tbo_booking,
    }, "TBO booking status updated successfully")


@router.get("/admin/packages/{package_id}/bookings")
async def get_package_bookings(
    package_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(require_roles("admin", "expert")),
):
    package, bookings, total = await BookingService(db).list_package_bookings(
        package_id, current_user, status_filter, page, limit
    )
    data = _bookings_page(bookings, page, limit, total)
    data["package"] = {"id": package.id, "title": package.title}
    return success_response(data, "Package bookings retrieved successfully")


# ---------------------------------------------------------------- 单个预订

@router.get("/{booking_id}")
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    booking = await BookingService(db).get_accessible_booking(booking_id, current_user, with_package=True)
    return success_response({"booking": serialize(BookingOut, booking)}, "Booking retrieved successfully")


@router.patch("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: int,
    body: Optional[BookingCancel] = Body(None),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
    tbo_service: TBOService = Depends(get_tbo_service),
):
    reason = body.reason if body else None
    booking = await BookingService(db, tbo_service).cancel_booking(booking_id, current_user, reason)
    return success_response({"booking": serialize(BookingOut, booking)}, "Booking cancelled successfully")


@router.get("/{booking_id}/tbo-status")
async def check_tbo_status(
    booking_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
    tbo_service: TBOService = Depends(get_tbo_service),
):
    booking, message = await BookingService(db, tbo_service).check_tbo_status(booking_id, current_user)
    return success_response({
        "bookingReference": booking.booking_reference,
        "tboBooking": booking.tbo_booking,
    }, message)
