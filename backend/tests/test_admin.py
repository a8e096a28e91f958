"""
管理后台接口测试
"""

from datetime import datetime

import pytest

from app.core.exceptions import ServiceError
from app.models.booking import Booking
from app.services.admin_service import parse_date_range, to_csv
from tests.conftest import create_package, create_user


async def _booking(db, user, package, reference, total_price, status="confirmed", payment="paid"):
    booking = Booking(
        booking_reference=reference, user_id=user.id, package_id=package.id,
        check_in=datetime(2099, 1, 1), check_out=datetime(2099, 1, 4),
        contact_email=user.email, contact_phone="+966500000000",
        total_price=total_price, booking_status=status, payment_status=payment,
    )
    db.add(booking)
    await db.commit()
    return booking


def test_parse_date_range():
    start, end = parse_date_range("2024-01-01", "2024-01-31")
    assert start == datetime(2024, 1, 1)
    assert end == datetime(2024, 1, 31, 23, 59, 59, 999999)
    assert parse_date_range(None, None) == (None, None)

    with pytest.raises(ServiceError, match="Invalid start date format"):
        parse_date_range("01/01/2024", None)
    with pytest.raises(ServiceError, match="Start date cannot be after end date."):
        parse_date_range("2024-02-01", "2024-01-01")


def test_to_csv_union_headers_and_quoting():
    text = to_csv([{"a": 1, "b": 'say "hi"'}, {"a": 2, "c": ["x", "y"]}])
    lines = text.strip().split("\n")
    assert lines[0] == "a,b,c"
    assert lines[1] == '1,"say ""hi""",'
    assert lines[2] == '2,,"[""x"", ""y""]"'


async def test_admin_routes_require_admin(client, expert_headers):
    response = await client.get("/api/v1/admin/dashboard/stats", headers=expert_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. Admin role required"


async def test_dashboard_stats_cached(client, db, admin_headers, customer):
    package = await create_package(db)
    await _booking(db, customer, package, "TRP-20990101-0001", 1500)
    await _booking(db, customer, package, "TRP-20990101-0002", 700, status="pending", payment="pending")

    response = await client.get("/api/v1/admin/dashboard/stats", headers=admin_headers)
    body = response.json()
    assert body["message"] == "Dashboard statistics retrieved successfully"
    overview = body["data"]["overview"]
    assert overview["totalUsers"] == 2
    assert overview["totalBookings"] == 2
    assert overview["confirmedBookings"] == 1
    assert overview["pendingBookings"] == 1
    assert overview["totalRevenue"] == 1500
    assert overview["conversionRate"] == 50.0
    assert len(body["data"]["recentActivity"]["recentBookings"]) == 2

    response = await client.get("/api/v1/admin/dashboard/stats", headers=admin_headers)
    assert response.json()["message"] == "Dashboard statistics retrieved from cache"

    response = await client.get("/api/v1/admin/dashboard/stats", headers=admin_headers,
                                params={"startDate": "2024-13-01"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid start date format. Use YYYY-MM-DD format."


async def test_analytics(client, db, admin_headers, customer):
    package = await create_package(db, difficulty="easy")
    await _booking(db, customer, package, "TRP-20990101-0003", 1000)
    await _booking(db, customer, package, "TRP-20990101-0004", 500, status="cancelled", payment="refunded")

    response = await client.get("/api/v1/admin/analytics/bookings", headers=admin_headers)
    data = response.json()["data"]
    assert data["overview"]["totalBookings"] == 2
    assert data["overview"]["cancelledBookings"] == 1
    assert data["overview"]["averageBookingValue"] == 1000
    assert data["topPackages"][0]["bookingCount"] == 2

    response = await client.get("/api/v1/admin/analytics/revenue", headers=admin_headers, params={"period": "yearly"})
    data = response.json()["data"]
    assert data["totalRevenue"] == 1000
    assert data["trends"][0]["bookings"] == 1
    assert {p["status"] for p in data["paymentStatusBreakdown"]} == {"paid", "refunded"}

    response = await client.get("/api/v1/admin/analytics/packages", headers=admin_headers)
    data = response.json()["data"]
    assert data["overview"]["published"] == 1
    assert data["byCategory"] == [{"category": "cultural", "count": 1}]
    assert data["byDifficulty"] == [{"difficulty": "easy", "count": 1}]

    response = await client.get("/api/v1/admin/analytics/users", headers=admin_headers)
    data = response.json()["data"]
    assert data["overview"]["totalUsers"] == 2
    assert {r["role"] for r in data["roleDistribution"]} == {"admin", "customer"}


async def test_user_management(client, db, admin, admin_headers, customer):
    await create_user(db, role="expert", email="guide@example.com", name="Desert Guide", is_active=False)

    response = await client.get("/api/v1/admin/users", headers=admin_headers, params={"page": "abc"})
    assert response.json()["message"] == "Page must be a positive number."
    response = await client.get("/api/v1/admin/users", headers=admin_headers, params={"limit": 500})
    assert response.json()["message"] == "Limit must be a number between 1 and 100."

    response = await client.get("/api/v1/admin/users", headers=admin_headers,
                                params={"status": "inactive", "search": "guide"})
    data = response.json()["data"]
    assert [u["email"] for u in data["users"]] == ["guide@example.com"]
    assert data["pagination"]["totalUsers"] == 1

    response = await client.patch(f"/api/v1/admin/users/{admin.id}/status", headers=admin_headers,
                                  json={"isActive": False})
    assert response.json()["message"] == "Cannot modify your own account status"

    response = await client.patch(f"/api/v1/admin/users/{customer.id}/status", headers=admin_headers,
                                  json={"isActive": "false"})
    assert response.json()["message"] == "isActive must be a boolean value"

    response = await client.patch(f"/api/v1/admin/users/{customer.id}/status", headers=admin_headers,
                                  json={"isActive": False})
    assert response.json()["message"] == "User deactivated successfully"

    response = await client.patch(f"/api/v1/admin/users/{customer.id}/role", headers=admin_headers,
                                  json={"role": "superuser"})
    assert response.json()["message"] == "Invalid role. Must be one of: customer, expert, admin"

    response = await client.patch(f"/api/v1/admin/users/{customer.id}/role", headers=admin_headers,
                                  json={"role": "expert"})
    assert response.json()["message"] == "User role updated to expert successfully"
    assert response.json()["data"]["user"]["role"] == "expert"

    response = await client.patch("/api/v1/admin/users/999/role", headers=admin_headers, json={"role": "expert"})
    assert response.status_code == 404


async def test_export(client, db, admin_headers):
    await create_package(db)

    response = await client.get("/api/v1/admin/export/packages", headers=admin_headers, params={"format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "packages_export_" in response.headers["content-disposition"]
    assert response.text.startswith("id,")

    response = await client.get("/api/v1/admin/export/users", headers=admin_headers)
    body = response.json()
    assert body["message"] == "Users data exported successfully"
    assert body["data"]["count"] == 1

    response = await client.get("/api/v1/admin/export/bookings", headers=admin_headers)
    assert response.json()["message"] == "No data available for export"

    response = await client.get("/api/v1/admin/export/coupons", headers=admin_headers)
    assert response.json()["message"] == "Invalid export type. Must be users, bookings, or packages"


async def test_system_health_and_activity(client, db, admin_headers, customer):
    await create_package(db)

    response = await client.get("/api/v1/admin/system/health", headers=admin_headers)
    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["collections"] == {"users": 2, "packages": 1, "bookings": 0}

    response = await client.get("/api/v1/admin/activity/recent", headers=admin_headers, params={"limit": 2})
    activities = response.json()["data"]["activities"]
    assert len(activities) == 2
