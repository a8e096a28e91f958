"""
套餐分类接口测试
"""

from app.models.booking import Booking
from tests.conftest import create_package

CATEGORY = {"nameEn": "Cultural Trips", "nameAr": "رحلات ثقافية", "packageCategory": "cultural"}


async def _create(client, headers, **overrides):
    response = await client.post("/api/v1/categories/", json={**CATEGORY, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["category"]


async def test_create_category(client, admin_headers):
    category = await _create(client, admin_headers)
    assert category["slug"] == "cultural-trips"
    assert category["sortOrder"] == 1
    assert category["icon"] == "Package"

    second = await _create(client, admin_headers, nameEn="Beach Escapes", nameAr="شواطئ")
    assert second["sortOrder"] == 2


async def test_create_category_errors(client, admin_headers, customer_headers):
    response = await client.post("/api/v1/categories/", json=CATEGORY, headers=customer_headers)
    assert response.status_code == 403

    response = await client.post("/api/v1/categories/", json={"nameEn": "Only English"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Category name in English and Arabic is required"

    await _create(client, admin_headers)
    response = await client.post("/api/v1/categories/", json=CATEGORY, headers=admin_headers)
    assert response.json()["message"] == "Category with this name already exists"


async def test_category_stats(client, db, admin_headers, customer):
    category = await _create(client, admin_headers)
    package = await create_package(db, categories=["cultural"])
    await create_package(db, categories=["luxury"])
    db.add(Booking(
        booking_reference="TRP-20990101-0100", user_id=customer.id, package_id=package.id,
        check_in=package.created_at, check_out=package.created_at, contact_email="c@example.com",
        contact_phone="1", total_price=800, booking_status="confirmed",
    ))
    await db.commit()

    response = await client.get(f"/api/v1/categories/{category['id']}")
    stats = response.json()["data"]["category"]["stats"]
    assert stats == {"packageCount": 1, "totalBookings": 1, "revenue": 800, "conversionRate": 100.0}

    response = await client.delete(f"/api/v1/categories/{category['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete category. It is being used by 1 package(s)."


async def test_list_update_status_and_delete(client, admin_headers):
    category = await _create(client, admin_headers)

    response = await client.patch(f"/api/v1/categories/{category['id']}/status", headers=admin_headers,
                                  json={"status": "archived"})
    assert response.json()["message"] == 'Invalid status. Must be "active" or "inactive"'

    response = await client.patch(f"/api/v1/categories/{category['id']}/status", headers=admin_headers,
                                  json={"status": "inactive"})
    assert response.json()["data"]["category"]["status"] == "inactive"

    response = await client.get("/api/v1/categories/", params={"status": "active"})
    assert response.json()["data"]["categories"] == []

    response = await client.put(f"/api/v1/categories/{category['id']}", headers=admin_headers,
                                json={"nameEn": "Heritage Trips"})
    assert response.json()["data"]["category"]["slug"] == "heritage-trips"

    response = await client.delete(f"/api/v1/categories/{category['id']}", headers=admin_headers)
    assert response.status_code == 200
    response = await client.get(f"/api/v1/categories/{category['id']}")
    assert response.status_code == 404


async def test_reorder_categories(client, admin_headers):
    first = await _create(client, admin_headers)
    second = await _create(client, admin_headers, nameEn="Beach Escapes", nameAr="شواطئ")

    response = await client.patch("/api/v1/categories/order", headers=admin_headers, json={
        "categories": [{"id": first["id"], "order": 5}, {"id": second["id"], "order": 1}],
    })
    assert response.status_code == 200

    response = await client.get("/api/v1/categories/")
    assert [c["id"] for c in response.json()["data"]["categories"]] == [second["id"], first["id"]]


async def test_bulk_create(client, admin_headers):
    response = await client.post("/api/v1/categories/bulk", headers=admin_headers, json={"categories": [
        {"nameEn": "Safari", "nameAr": "سفاري"},
        {"nameEn": "Safari", "nameAr": "سفاري"},
        {"nameEn": "No Arabic"},
    ]})
    assert response.status_code == 201
    data = response.json()["data"]
    assert [c["slug"] for c in data["created"]] == ["safari"]
    assert data["errors"] == [
        {"index": 1, "message": "Category with this name already exists"},
        {"index": 2, "message": "Category name in English and Arabic is required"},
    ]
    assert response.json()["message"] == "1 categories created successfully"


async def test_export_csv(client, admin_headers):
    await _create(client, admin_headers, descriptionEn='Old towns, "souqs" and museums')

    response = await client.get("/api/v1/categories/export", params={"format": "csv"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="categories.csv"' in response.headers["content-disposition"]
    header, row = response.text.strip().split("\n")
    assert header.startswith("id,nameEn,nameAr,descriptionEn")
    assert '"Old towns, ""souqs"" and museums"' in row

    response = await client.get("/api/v1/categories/export", headers=admin_headers)
    assert response.json()["data"]["categories"][0]["packageCount"] == 0
