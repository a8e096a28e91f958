"""
TBO透传接口测试（上游以 MockTransport 替换）
"""

import json

import httpx
import pytest

from app.api.v1.endpoints import tbo as tbo_endpoints
from tests.conftest import future

OK = {"Code": 200, "Description": "Successful"}


@pytest.mark.parametrize("payload, message", [
    ({"checkIn": future(5), "checkOut": future(7)},
     "Missing required fields: checkIn, checkOut, and either cityCode or hotelCodes"),
    ({"checkIn": "soon", "checkOut": future(7), "hotelCodes": "1"}, "Invalid date format. Use YYYY-MM-DD format"),
    ({"checkIn": future(7), "checkOut": future(5), "hotelCodes": "1"}, "Check-out date must be after check-in date"),
    ({"checkIn": "2020-01-01", "checkOut": "2020-01-03", "hotelCodes": "1"}, "Check-in date cannot be in the past"),
])
async def test_search_validation(client, tbo_mock, payload, message):
    response = await client.post("/api/v1/tbo/search", json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == message
    assert tbo_mock.calls == []


async def test_search_resolves_city_hotels(client, tbo_mock):
    sent = {}

    def search(request: httpx.Request):
        sent.update(json.loads(request.content))
        return {"Status": OK, "HotelResult": [{"HotelCode": "101"}, {"HotelCode": "102"}]}

    tbo_mock.routes["/TBOHotelCodeList"] = {"Hotels": [{"HotelCode": "101"}, {"HotelCode": "102"}, {"Name": "x"}]}
    tbo_mock.routes["/Search"] = search

    response = await client.post("/api/v1/tbo/search", json={
        "checkIn": future(10), "checkOut": future(12), "cityCode": "115936",
        "paxRooms": [{"adults": 1, "children": 1, "childrenAges": [6]}],
        "filters": {"refundable": True},
    })
    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"cached": False, "totalResults": 2}
    assert tbo_mock.calls == ["TBOHotelCodeList", "Search"]

    assert sent["HotelCodes"] == "101,102"
    assert sent["GuestNationality"] == "AE"
    assert sent["PaxRooms"] == [{"Adults": 1, "Children": 1, "ChildrenAges": [6]}]
    assert sent["Filters"] == {"Refundable": True, "NoOfRooms": 0, "MealType": "All"}


async def test_search_served_from_cache(client, tbo_mock, monkeypatch):
    async def cached(key):
        return [{"HotelCode": "55"}]

    monkeypatch.setattr(tbo_endpoints, "get_cache", cached)
    response = await client.post("/api/v1/tbo/search",
                                 json={"checkIn": future(3), "checkOut": future(4), "hotelCodes": "55"})
    assert response.json()["meta"] == {"cached": True, "totalResults": 1}
    assert tbo_mock.calls == []


async def test_search_upstream_errors(client, tbo_mock):
    payload = {"checkIn": future(3), "checkOut": future(4), "cityCode": "1"}

    tbo_mock.routes["/TBOHotelCodeList"] = {"Hotels": []}
    response = await client.post("/api/v1/tbo/search", json=payload)
    assert response.status_code == 404
    assert response.json()["message"] == "No hotels found for the specified city"

    tbo_mock.routes["/TBOHotelCodeList"] = {"Hotels": [{"HotelCode": "9"}]}
    tbo_mock.routes["/Search"] = {"Status": {"Code": 201, "Description": "No Available rooms for given criteria"}}
    response = await client.post("/api/v1/tbo/search", json=payload)
    assert response.status_code == 502
    assert response.json()["message"] == "TBO search failed: No Available rooms for given criteria"

    tbo_mock.routes["/Search"] = httpx.Response(401, json={})
    response = await client.post("/api/v1/tbo/search", json=payload)
    assert response.status_code == 502
    assert response.json()["message"] == "TBO search failed: Invalid TBO credentials"


async def test_prebook_book_and_cancel(client, customer_headers, tbo_mock):
    response = await client.post("/api/v1/tbo/prebook", json={"bookingCode": "BC1"})
    assert response.status_code == 401

    response = await client.post("/api/v1/tbo/prebook", json={}, headers=customer_headers)
    assert response.json()["message"] == "Booking code is required"

    tbo_mock.routes["/PreBook"] = {"Status": OK, "HotelResult": [{"BookingCode": "BC1", "TotalFare": 420.5}]}
    response = await client.post("/api/v1/tbo/prebook", json={"bookingCode": "BC1"}, headers=customer_headers)
    assert response.json()["data"] == {"BookingCode": "BC1", "TotalFare": 420.5}

    response = await client.post("/api/v1/tbo/book", json={"bookingCode": "BC1"}, headers=customer_headers)
    assert response.json()["message"] == "Missing required booking fields"

    booked = {}

    def book(request: httpx.Request):
        booked.update(json.loads(request.content))
        return {"Status": OK, "ConfirmationNumber": "CONF1", "ClientReferenceId": "REF1"}

    tbo_mock.routes["/Book"] = book
    response = await client.post("/api/v1/tbo/book", headers=customer_headers, json={
        "bookingCode": "BC1",
        "customerDetails": [{"CustomerNames": [{"Title": "Mr", "FirstName": "Ali", "LastName": "Saleh", "Type": "Adult"}]}],
        "clientReferenceId": "REF1",
        "totalFare": 420.5,
        "emailId": "ali@example.com",
    })
    assert response.status_code == 200
    assert response.json()["data"]["confirmationNumber"] == "CONF1"
    assert booked["BookingReferenceId"] == "REF1"
    assert booked["PhoneNumber"] == ""
    assert "PaymentInfo" not in booked

    tbo_mock.routes["/BookingDetail"] = {"Status": OK, "BookingDetail": {"BookingStatus": "Confirmed"}}
    response = await client.get("/api/v1/tbo/booking/CONF1", headers=customer_headers)
    assert response.json()["data"] == {"BookingStatus": "Confirmed"}

    tbo_mock.routes["/Cancel"] = {"Status": OK, "ConfirmationNumber": "CONF1"}
    response = await client.post("/api/v1/tbo/cancel", json={"confirmationNumber": "CONF1"}, headers=customer_headers)
    assert response.json()["data"]["confirmationNumber"] == "CONF1"

    tbo_mock.routes["/Cancel"] = {"Status": {"Code": 500, "Description": "Already cancelled"}}
    response = await client.post("/api/v1/tbo/cancel", json={"confirmationNumber": "CONF1"}, headers=customer_headers)
    assert response.status_code == 502
    assert response.json()["message"] == "Failed to cancel booking: Already cancelled"


async def test_locations_and_hotel_details(client, tbo_mock):
    tbo_mock.routes["/CountryList"] = {"CountryList": [{"Code": "SA", "Name": "Saudi Arabia"}]}
    response = await client.get("/api/v1/tbo/locations/countries")
    assert response.json()["data"] == [{"Code": "SA", "Name": "Saudi Arabia"}]

    codes = []

    def cities(request: httpx.Request):
        codes.append(json.loads(request.content)["CountryCode"])
        return {"CityList": [{"Code": "1", "Name": "Riyadh"}]}

    tbo_mock.routes["/CityList"] = cities
    response = await client.get("/api/v1/tbo/locations/cities/sa")
    assert response.json()["data"][0]["Name"] == "Riyadh"
    assert codes == ["SA"]

    tbo_mock.routes["/TBOHotelCodeList"] = {"Hotels": [{"HotelCode": "7"}]}
    response = await client.get("/api/v1/tbo/hotels/city/1")
    assert response.json()["data"] == [{"HotelCode": "7"}]

    tbo_mock.routes["/HotelDetails"] = {"HotelDetails": []}
    response = await client.get("/api/v1/tbo/hotels/7")
    assert response.status_code == 404
    assert response.json()["message"] == "Hotel not found"

    tbo_mock.routes["/HotelDetails"] = {"HotelDetails": [{"HotelCode": "7", "HotelName": "Nakheel"}]}
    response = await client.get("/api/v1/tbo/hotels/7")
    assert response.json()["data"]["HotelName"] == "Nakheel"


async def test_connection_error_maps_to_bad_gateway(client, tbo_mock):
    def unreachable(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    tbo_mock.routes["/CountryList"] = unreachable
    response = await client.get("/api/v1/tbo/locations/countries")
    assert response.status_code == 502
    assert response.json()["message"] == "Failed to fetch countries: connection refused"


async def test_clean_cache_requires_admin(client, customer_headers, admin_headers):
    response = await client.delete("/api/v1/tbo/cache/clean", headers=customer_headers)
    assert response.status_code == 403

    response = await client.delete("/api/v1/tbo/cache/clean", headers=admin_headers)
    assert response.json()["data"] == {"removed": 0}


async def test_clean_cache_for_single_country(client, admin_headers, monkeypatch):
    deleted = []

    async def fake_delete(key):
        deleted.append(key)
        return True

    monkeypatch.setattr(tbo_endpoints, "delete_cache", fake_delete)
    response = await client.delete("/api/v1/tbo/cache/clean", params={"countryCode": "sa"}, headers=admin_headers)
    assert response.json()["data"] == {"removed": 1}
    assert deleted == ["trippat:tbo:cities:SA"]
