"""
酒店接口测试
"""

from tests.conftest import create_hotel, create_package

HOTEL_PAYLOAD = {
    "name": "Jeddah Corniche Suites",
    "description": "Sea-facing suites on the Jeddah corniche.",
    "location": {"address": "Corniche Rd", "city": "Jeddah"},
    "starRating": 5,
    "basePrice": 650,
    "roomTypes": [
        {"name": "Deluxe", "capacity": 2, "pricePerNight": 700, "totalRooms": 4},
        {"name": "Family", "capacity": 4, "pricePerNight": 900, "totalRooms": 2},
    ],
    "amenities": ["Pool", "WiFi"],
}


async def test_create_hotel(client, expert_headers):
    response = await client.post("/api/v1/hotels/", json=HOTEL_PAYLOAD, headers=expert_headers)
    assert response.status_code == 201
    hotel = response.json()["data"]["hotel"]
    assert hotel["city"] == "Jeddah"
    assert hotel["totalRooms"] == 6
    assert hotel["location"]["country"] == "Saudi Arabia"


async def test_create_hotel_validation(client, admin_headers, customer_headers):
    response = await client.post("/api/v1/hotels/", json=HOTEL_PAYLOAD, headers=customer_headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Only admin and expert users can create hotels"

    bad = {**HOTEL_PAYLOAD, "location": {"city": "Jeddah"}}
    response = await client.post("/api/v1/hotels/", json=bad, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Address and city are required"

    bad = {**HOTEL_PAYLOAD, "starRating": 6}
    response = await client.post("/api/v1/hotels/", json=bad, headers=admin_headers)
    assert response.json()["message"] == "Star rating must be between 1 and 5"

    bad = {**HOTEL_PAYLOAD, "basePrice": 0}
    response = await client.post("/api/v1/hotels/", json=bad, headers=admin_headers)
    assert response.json()["message"] == "Base price must be greater than 0"


async def test_list_and_search_hotels(client, db):
    await create_hotel(db, name="Budget Inn", star_rating=2, base_price=150, amenities=["WiFi"])
    await create_hotel(db, name="Palace Resort", star_rating=5, base_price=1200, amenities=["Pool", "Spa"],
                       city="Jeddah", location={"address": "X", "city": "Jeddah"})

    response = await client.get("/api/v1/hotels/", params={"city": "jed"})
    data = response.json()["data"]
    assert [h["name"] for h in data["hotels"]] == ["Palace Resort"]
    assert data["pagination"]["totalHotels"] == 1

    response = await client.get("/api/v1/hotels/search", params={"amenities": "pool,spa"})
    assert [h["name"] for h in response.json()["data"]["hotels"]] == ["Palace Resort"]

    response = await client.get("/api/v1/hotels/search", params={"maxPrice": 500})
    assert [h["name"] for h in response.json()["data"]["hotels"]] == ["Budget Inn"]


async def test_hotel_availability(client, db, admin_headers):
    hotel = await create_hotel(db, base_price=400, total_rooms=3)

    response = await client.put(f"/api/v1/hotels/{hotel.id}/availability", headers=admin_headers, json={
        "availability": [
            {"date": "2099-03-01", "availableRooms": 2, "price": 500},
            {"date": "2099-03-02", "availableRooms": 0},
        ],
    })
    assert response.status_code == 200
    assert len(response.json()["data"]["availability"]) == 2

    response = await client.get(f"/api/v1/hotels/{hotel.id}/availability",
                                params={"checkIn": "2099-03-01", "checkOut": "2099-03-02", "rooms": 2})
    data = response.json()["data"]
    assert data == {"available": True, "nights": 1, "totalPrice": 1000, "currency": "SAR"}

    response = await client.get(f"/api/v1/hotels/{hotel.id}/availability",
                                params={"checkIn": "2099-03-01", "checkOut": "2099-03-03"})
    data = response.json()["data"]
    assert data["available"] is False
    assert data["totalPrice"] == 900

    response = await client.get(f"/api/v1/hotels/{hotel.id}/availability",
                                params={"checkIn": "2099-03-03", "checkOut": "2099-03-01"})
    assert response.status_code == 400
    assert response.json()["message"] == "Check-out date must be after check-in date"


async def test_delete_hotel_linked_to_package(client, db, admin_headers):
    hotel = await create_hotel(db)
    package = await create_package(db, hotel_packages=[{"hotelId": hotel.id, "nights": 2}])

    response = await client.get(f"/api/v1/hotels/{hotel.id}/packages")
    assert [p["id"] for p in response.json()["data"]["packages"]] == [package.id]

    response = await client.delete(f"/api/v1/hotels/{hotel.id}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete hotel. It is linked to 1 package(s)."


async def test_update_and_delete_hotel(client, db, admin_headers):
    hotel = await create_hotel(db)
    response = await client.put(f"/api/v1/hotels/{hotel.id}", headers=admin_headers,
                                json={"location": {"address": "New St", "city": "Dammam"}})
    assert response.json()["data"]["hotel"]["city"] == "Dammam"

    response = await client.delete(f"/api/v1/hotels/{hotel.id}", headers=admin_headers)
    assert response.status_code == 200
    response = await client.get(f"/api/v1/hotels/{hotel.id}")
    assert response.status_code == 404
    assert response.json()["message"] == "Hotel not found"


async def test_tbo_link(client, db, admin_headers, expert_headers):
    hotel = await create_hotel(db)

    response = await client.put(f"/api/v1/hotels/{hotel.id}/tbo-link", headers=expert_headers,
                                json={"isLinked": True, "tboHotelCode": "1234"})
    assert response.status_code == 403

    response = await client.put(f"/api/v1/hotels/{hotel.id}/tbo-link", headers=admin_headers,
                                json={"isLinked": True})
    assert response.json()["message"] == "TBO hotel code is required when linking"

    response = await client.put(f"/api/v1/hotels/{hotel.id}/tbo-link", headers=admin_headers,
                                json={"isLinked": True, "tboHotelCode": "1234"})
    integration = response.json()["data"]["tboIntegration"]
    assert integration["isLinked"] is True
    assert integration["tboHotelCode"] == "1234"
    assert integration["livePricing"] is True
    assert integration["syncStatus"] == "pending"
