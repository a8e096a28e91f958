"""
预订接口测试
"""

import json
import re
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy import func, select

from app.models.booking import Booking
from app.schemas.booking import BookingCreate
from app.services.booking_service import validate_booking_data
from tests.conftest import auth_headers, create_hotel, create_package, create_user, future


def _booking_payload(package_id, **overrides):
    payload = {
        "packageId": package_id,
        "travelers": {"adults": 2, "children": 1, "infants": 0},
        "travelDates": {"checkIn": future(10), "checkOut": future(13)},
        "contactInfo": {"email": "guest@example.com", "phone": "+966500000000"},
        "specialRequests": "Late check-in",
    }
    payload.update(overrides)
    return payload


async def _make_booking(db, user, package, **overrides) -> Booking:
    values = {
        "booking_reference": f"TRP-20990101-{user.id:02d}{package.id:02d}",
        "user_id": user.id,
        "package_id": package.id,
        "adults": 2,
        "check_in": datetime.utcnow() + timedelta(days=10),
        "check_out": datetime.utcnow() + timedelta(days=13),
        "contact_email": user.email,
        "contact_phone": "+966500000000",
        "total_price": 2000.0,
    }
    values.update(overrides)
    booking = Booking(**values)
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


@pytest.mark.parametrize("overrides, message", [
    ({"travelers": None}, "Travelers information is required"),
    ({"travelers": {"adults": 0}}, "At least 1 adult traveler is required"),
    ({"travelers": {"adults": 1, "children": -1}}, "Number of children cannot be negative"),
    ({"travelers": {"adults": 1, "infants": -2}}, "Number of infants cannot be negative"),
    ({"travelDates": None}, "Travel dates are required"),
    ({"travelDates": {"checkIn": "2099-01-01"}}, "Check-in and check-out dates are required"),
    ({"travelDates": {"checkIn": "2000-01-01", "checkOut": "2000-01-05"}}, "Check-in date must be in the future"),
    ({"travelDates": {"checkIn": "2099-01-05", "checkOut": "2099-01-05"}}, "Check-out date must be after check-in date"),
    ({"contactInfo": None}, "Contact information is required"),
    ({"contactInfo": {"email": "guest@example.com"}}, "Contact email and phone are required"),
    ({"contactInfo": {"email": "not-an-email", "phone": "1"}}, "Please provide a valid email address"),
])
def test_validate_booking_data(overrides, message):
    data = BookingCreate.model_validate(_booking_payload(1, **overrides))
    assert validate_booking_data(data) == message


async def test_create_booking(client, db, customer, customer_headers):
    package = await create_package(db, price=1000, max_travelers=10)

    response = await client.post("/api/v1/bookings/", json=_booking_payload(package.id), headers=customer_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Booking created successfully"

    booking = body["data"]["booking"]
    assert booking["bookingReference"].startswith("TRP-")
    assert len(booking["bookingReference"]) == len("TRP-20250101-0001")
    assert booking["totalTravelers"] == 3
    assert booking["totalPrice"] == 3000
    assert booking["bookingStatus"] == "pending"
    assert booking["package"]["title"] == package.title

    email = body["data"]["emailData"]
    assert email["to"] == "guest@example.com"
    assert email["cc"] == customer.email
    assert email["subject"] == f"Booking Confirmation - {booking['bookingReference']}"

    await db.refresh(package)
    assert package.current_bookings == 3


async def test_create_booking_requires_package_id(client, customer_headers):
    response = await client.post("/api/v1/bookings/", json=_booking_payload(None), headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Package ID is required"


async def test_create_booking_package_checks(client, db, customer_headers):
    response = await client.post("/api/v1/bookings/", json=_booking_payload(9999), headers=customer_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Package not found"

    unavailable = await create_package(db, availability=False)
    response = await client.post("/api/v1/bookings/", json=_booking_payload(unavailable.id), headers=customer_headers)
    assert response.json()["message"] == "Package is not available for booking"

    small = await create_package(db, max_travelers=2)
    response = await client.post("/api/v1/bookings/", json=_booking_payload(small.id), headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Maximum 2 travelers allowed for this package"


async def test_user_bookings_are_scoped(client, db, customer, customer_headers):
    other = await create_user(db, email="other@example.com")
    package = await create_package(db)
    mine = await _make_booking(db, customer, package)
    theirs = await _make_booking(db, other, package)

    response = await client.get("/api/v1/bookings/my-bookings", headers=customer_headers)
    data = response.json()["data"]
    assert [b["id"] for b in data["bookings"]] == [mine.id]
    assert data["pagination"]["totalBookings"] == 1

    response = await client.get(f"/api/v1/bookings/{theirs.id}", headers=customer_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "You can only access your own bookings"


async def test_cancel_booking(client, db, customer, customer_headers):
    package = await create_package(db, current_bookings=2)
    booking = await _make_booking(db, customer, package)

    response = await client.patch(f"/api/v1/bookings/{booking.id}/cancel", headers=customer_headers,
                                  json={"reason": "Change of plans"})
    assert response.status_code == 200
    data = response.json()["data"]["booking"]
    assert data["bookingStatus"] == "cancelled"
    assert data["cancellationReason"] == "Change of plans"
    assert data["cancelledAt"] is not None

    await db.refresh(package)
    assert package.current_bookings == 0

    response = await client.patch(f"/api/v1/bookings/{booking.id}/cancel", headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Booking is already cancelled"


async def test_cancel_rules(client, db, customer, customer_headers):
    package = await create_package(db)
    completed = await _make_booking(db, customer, package, booking_status="completed")
    soon = await _make_booking(db, customer, package, booking_reference="TRP-20990101-9999",
                               check_in=datetime.utcnow() + timedelta(hours=12))

    response = await client.patch(f"/api/v1/bookings/{completed.id}/cancel", headers=customer_headers)
    assert response.json()["message"] == "Cannot cancel completed booking"

    response = await client.patch(f"/api/v1/bookings/{soon.id}/cancel", headers=customer_headers)
    assert response.json()["message"] == "Cannot cancel booking within 24 hours of check-in date"


async def test_admin_routes_require_admin(client, customer_headers):
    response = await client.get("/api/v1/bookings/admin/bookings", headers=customer_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin role required"


async def test_admin_update_status(client, db, customer, admin_headers):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package)

    response = await client.patch(f"/api/v1/bookings/admin/bookings/{booking.id}/status", headers=admin_headers,
                                  json={"bookingStatus": "confirmed", "paymentStatus": "paid"})
    assert response.status_code == 200
    data = response.json()["data"]["booking"]
    assert (data["bookingStatus"], data["paymentStatus"]) == ("confirmed", "paid")

    response = await client.patch(f"/api/v1/bookings/admin/bookings/{booking.id}/status", headers=admin_headers,
                                  json={"bookingStatus": "lost"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid status. Must be one of:")


async def test_admin_list_and_search(client, db, customer, admin_headers):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package)

    response = await client.get("/api/v1/bookings/admin/bookings", headers=admin_headers,
                                params={"search": booking.booking_reference[-4:]})
    assert [b["id"] for b in response.json()["data"]["bookings"]] == [booking.id]


async def test_booking_report(client, db, customer, admin_headers):
    package = await create_package(db)
    await _make_booking(db, customer, package, payment_status="paid", total_price=1500)
    await _make_booking(db, customer, package, booking_reference="TRP-20990101-8888", total_price=500)

    today = datetime.utcnow().strftime("%Y-%m-%d")
    response = await client.get("/api/v1/bookings/admin/bookings/reports", headers=admin_headers,
                                params={"startDate": today, "endDate": today})
    assert response.status_code == 200
    report = response.json()["data"]
    assert report["summary"]["totalBookings"] == 2
    assert report["summary"]["totalRevenue"] == 1500
    assert report["summary"]["averageBookingValue"] == 750
    assert report["summary"]["reportPeriod"] == {"startDate": today, "endDate": today}
    assert report["statusBreakdown"] == {"pending": 2}
    assert report["paymentBreakdown"] == {"paid": 1, "pending": 1}
    assert report["topPackages"][0]["bookingCount"] == 2
    assert report["monthlyTrends"][0]["bookings"] == 2


@pytest.mark.parametrize("params, message", [
    ({"startDate": "not-a-date"}, "Invalid start date format. Use YYYY-MM-DD format."),
    ({"endDate": "2099-13-40"}, "Invalid end date format. Use YYYY-MM-DD format."),
    ({"startDate": "2099-02-01", "endDate": "2099-01-01"}, "Start date cannot be after end date."),
])
async def test_booking_report_rejects_bad_dates(client, admin_headers, params, message):
    response = await client.get("/api/v1/bookings/admin/bookings/reports", headers=admin_headers, params=params)
    assert response.status_code == 400
    assert response.json()["message"] == message


async def test_package_bookings_for_expert(client, db, customer, expert, expert_headers):
    mine = await create_package(db, created_by=expert)
    other = await create_package(db)
    await _make_booking(db, customer, mine)

    response = await client.get(f"/api/v1/bookings/admin/packages/{mine.id}/bookings", headers=expert_headers)
    data = response.json()["data"]
    assert data["package"] == {"id": mine.id, "title": mine.title}
    assert data["pagination"]["totalBookings"] == 1

    response = await client.get(f"/api/v1/bookings/admin/packages/{other.id}/bookings", headers=expert_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "You can only view bookings for your packages"


async def test_tbo_status_requires_linked_booking(client, db, customer, customer_headers, admin):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package)

    response = await client.get(f"/api/v1/bookings/{booking.id}/tbo-status", headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "This booking is not linked to TBO"

    response = await client.patch(f"/api/v1/bookings/admin/bookings/{booking.id}/tbo-status",
                                  headers=auth_headers(admin), json={"status": "confirmed"})
    assert response.json()["message"] == "This booking is not linked to TBO"


async def test_tbo_status_live_check(client, db, customer, customer_headers, tbo_mock):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package, tbo_booking={
        "isLinked": True,
        "confirmationNumber": "CONF123",
        "bookingStatus": "confirmed",
        "statusHistory": [],
    })
    tbo_mock.routes["/BookingDetail"] = {
        "Status": {"Code": 200, "Description": "Successful"},
        "BookingDetail": {"BookingStatus": "Vouchered"},
    }

    response = await client.get(f"/api/v1/bookings/{booking.id}/tbo-status", headers=customer_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "TBO booking status updated from live check"
    record = body["data"]["tboBooking"]
    assert record["bookingStatus"] == "vouchered"
    assert record["statusHistory"][-1]["status"] == "vouchered"


async def test_admin_tbo_status_update(client, db, customer, admin_headers):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package, tbo_booking={"isLinked": True, "bookingStatus": "pending"})

    response = await client.patch(f"/api/v1/bookings/admin/bookings/{booking.id}/tbo-status",
                                  headers=admin_headers, json={"status": "bogus"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid TBO status")

    response = await client.patch(f"/api/v1/bookings/admin/bookings/{booking.id}/tbo-status",
                                  headers=admin_headers, json={"status": "confirmed", "notes": "Manual check"})
    record = response.json()["data"]["tboBooking"]
    assert record["bookingStatus"] == "confirmed"
    assert record["statusHistory"] == [
        {"status": "confirmed", "timestamp": record["statusHistory"][0]["timestamp"], "notes": "Manual check"}
    ]


async def test_cancel_linked_booking_cancels_upstream(client, db, customer, customer_headers, tbo_mock):
    package = await create_package(db)
    booking = await _make_booking(db, customer, package, tbo_booking={
        "isLinked": True, "confirmationNumber": "CONF9", "bookingStatus": "confirmed", "statusHistory": [],
    })
    tbo_mock.routes["/Cancel"] = {"Status": {"Code": 200}, "ConfirmationNumber": "CONF9"}

    response = await client.patch(f"/api/v1/bookings/{booking.id}/cancel", headers=customer_headers)
    assert response.status_code == 200
    assert "Cancel" in tbo_mock.calls
    assert response.json()["data"]["booking"]["tboBooking"]["bookingStatus"] == "cancelled"


async def _live_priced_package(db):
    hotel = await create_hotel(db, name="Creek View", tbo_integration={
        "isLinked": True, "livePricing": True, "tboHotelCode": "777",
    })
    return await create_package(db, hotel_packages=[{"hotelId": hotel.id, "nights": 3}],
                                discount_type="percentage", discount_value=10)


def _search_result(booking_code="BC-777"):
    return {"Status": {"Code": 200, "Description": "Successful"}, "HotelResult": [{
        "HotelCode": "777",
        "Currency": "USD",
        "Rooms": [{"Name": ["Deluxe King"], "TotalFare": 100, "TotalTax": 10, "BookingCode": booking_code}],
    }]}


async def test_create_tbo_booking(client, db, customer_headers, tbo_mock):
    package = await _live_priced_package(db)
    booked = {}

    def book(request: httpx.Request):
        booked.update(json.loads(request.content))
        return {"Status": {"Code": 200}, "ConfirmationNumber": "CONF9", "ClientReferenceId": booked["ClientReferenceId"]}

    tbo_mock.routes["/Search"] = _search_result()
    tbo_mock.routes["/PreBook"] = {"Status": {"Code": 200}, "HotelResult": [{"BookingCode": "BC-777", "TotalFare": 110}]}
    tbo_mock.routes["/Book"] = book

    response = await client.post("/api/v1/bookings/", json=_booking_payload(package.id), headers=customer_headers)
    assert response.status_code == 201, response.text
    booking = response.json()["data"]["booking"]
    reference = booking["bookingReference"]

    # 实时酒店价 110 USD，套餐九折
    assert booking["totalPrice"] == 99
    assert tbo_mock.calls == ["Search", "PreBook", "Book"]
    assert booked["BookingCode"] == "BC-777"
    assert booked["ClientReferenceId"] == f"TRIP-{reference}"
    assert booked["BookingReferenceId"] == reference
    assert booked["TotalFare"] == 99
    assert booked["CustomerDetails"][0]["CustomerNames"][0]["FirstName"] == "guest"

    record = booking["tboBooking"]
    assert record["isLinked"] is True
    assert record["confirmationNumber"] == "CONF9"
    assert record["bookingStatus"] == "confirmed"
    assert record["preBookData"]["hotelResult"]["TotalFare"] == 110
    assert record["hotelDetails"]["roomType"] == "Deluxe King"
    assert record["hotelDetails"]["nights"] == 3
    assert record["pricingDetails"] == {"baseFare": 100, "taxes": 10, "totalPrice": 99, "currency": "USD"}
    assert [h["status"] for h in record["statusHistory"]] == ["confirmed"]
    assert record["statusHistory"][0]["notes"] == "TBO booking confirmed with reference: CONF9"


async def test_create_tbo_booking_falls_back_when_upstream_fails(client, db, customer_headers, tbo_mock):
    package = await _live_priced_package(db)
    tbo_mock.routes["/Search"] = _search_result()

    response = await client.post("/api/v1/bookings/", json=_booking_payload(package.id), headers=customer_headers)
    assert response.status_code == 201, response.text
    assert tbo_mock.calls == ["Search", "PreBook", "Book"]

    record = response.json()["data"]["booking"]["tboBooking"]
    assert record["preBookData"]["hotelResult"]["TotalFare"] == 567.48
    assert record["preBookData"]["hotelResult"]["HotelName"] == "Creek View"
    assert re.fullmatch(r"TBO\d+", record["confirmationNumber"])
    assert record["bookingResult"]["clientReferenceId"].startswith("TRIP-TRP-")
    assert len(record["statusHistory"]) == 1


async def test_create_tbo_booking_without_booking_code(client, db, customer_headers, tbo_mock):
    package = await _live_priced_package(db)
    tbo_mock.routes["/Search"] = _search_result(booking_code="")

    response = await client.post("/api/v1/bookings/", json=_booking_payload(package.id), headers=customer_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Hotel booking failed: No booking code available for TBO booking"
    assert tbo_mock.calls == ["Search"]

    count = (await db.execute(select(func.count(Booking.id)))).scalar()
    assert count == 0


async def test_live_hotel_package_pricing(client, db, tbo_mock):
    package = await _live_priced_package(db)
    tbo_mock.routes["/Search"] = _search_result()

    response = await client.get(f"/api/v1/packages/{package.id}/pricing", params={
        "adults": 2, "children": 1, "checkIn": future(10), "checkOut": future(13), "currency": "USD",
    })
    assert response.status_code == 200
    data = response.json()["data"]
    total = data["pricing"]["totalPricing"]
    assert total["pricingMode"] == "live_hotel"
    assert total["packageCost"] == 0
    assert total["grandTotal"] == 110
    assert total["discount"]["amount"] == 11
    assert total["finalTotal"] == 99
    assert data["hotels"][0]["bookingCode"] == "BC-777"
    assert data["hotels"][0]["dates"] == {"checkIn": future(10), "checkOut": future(13)}
