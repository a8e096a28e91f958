"""
工具函数与无状态服务测试
"""

import httpx
import pytest

from app.core.responses import build_pagination, success_response
from app.core.stats_cache import StatsCache
from app.services.currency_service import CurrencyService
from app.services.localization_service import localization_service
from app.services.package_pricing_service import (
    calculate_nights,
    calculate_package_discount,
    calculate_rooms_needed,
)
from app.utils.slug import slugify


@pytest.mark.parametrize("text, expected", [
    ("Riyadh Heritage Tour", "riyadh-heritage-tour"),
    ("  Al-Ula & Hegra!! ", "al-ula-hegra"),
    ("رحلة", ""),
    ("", ""),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_stats_cache_expires_entries():
    now = [1000.0]
    cache = StatsCache(ttl=300, clock=lambda: now[0])
    cache.set("dashboard", {"users": 3})
    assert cache.get("dashboard") == {"users": 3}

    now[0] += 299
    assert cache.get("dashboard") == {"users": 3}

    now[0] += 1
    assert cache.get("dashboard") is None
    assert len(cache) == 0


def test_response_helpers():
    assert success_response(message="Done") == {"success": True, "message": "Done"}
    assert build_pagination(2, 10, 25, "totalPackages") == {
        "currentPage": 2,
        "totalPages": 3,
        "totalPackages": 25,
        "hasNextPage": True,
        "hasPrevPage": True,
    }
    assert build_pagination(1, 10, 0, "totalHotels")["totalPages"] == 0


@pytest.mark.parametrize("adults, children, expected", [
    (2, 0, [{"adults": 2, "children": 0}]),
    (3, 1, [{"adults": 2, "children": 1}, {"adults": 1, "children": 0}]),
    (1, 3, [{"adults": 1, "children": 2}, {"adults": 0, "children": 1}]),
    (0, 0, []),
])
def test_calculate_rooms_needed(adults, children, expected):
    assert calculate_rooms_needed(adults, children) == expected


def test_calculate_nights():
    assert calculate_nights("2099-01-01", "2099-01-04") == 3
    assert calculate_nights("2099-01-04", "2099-01-01") == 3


def test_calculate_package_discount():
    assert calculate_package_discount(2500, "percentage", 10) == {
        "type": "percentage", "value": 10, "amount": 250, "percentage": 10,
    }
    assert calculate_package_discount(300, "fixed_amount", 500)["amount"] == 300
    assert calculate_package_discount(0, "none", 0)["percentage"] == 0


def test_localization_helpers():
    assert localization_service.validate_language("fr") == "en"
    assert localization_service.get_language_direction("ar") == "rtl"
    assert localization_service.format_number(2024, "ar") == "٢٠٢٤"
    assert localization_service.format_duration(2, "ar") == "يومان"
    assert localization_service.format_duration(12, "ar") == "12 يوماً"
    assert localization_service.format_duration(1) == "1 day"

    package = {
        "title": "Tour", "titleAr": "جولة", "duration": 3, "inclusions": ["Hotel"], "inclusionsAr": [],
        "itinerary": [{"day": 1, "title": "Arrival", "title_ar": "الوصول"}],
    }
    localized = localization_service.localize_package(package, "ar")
    assert localized["title"] == "جولة"
    assert localized["inclusions"] == ["Hotel"]
    assert localized["itinerary"][0]["title"] == "الوصول"
    assert localized["formattedDuration"] == "3 أيام"


async def test_currency_conversion_uses_fetched_rates():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"rates": {"USD": 1, "SAR": 3.75, "EUR": 0.9}})

    service = CurrencyService(transport=httpx.MockTransport(handler))
    assert await service.convert_currency(100, "USD", "SAR") == 375
    assert await service.convert_currency(375, "SAR", "USD") == 100
    assert round(await service.convert_currency(375, "SAR", "EUR"), 2) == 90
    assert len(requests) == 1

    converted = await service.convert_price_to_user_currency(10, "USD", "SAR")
    assert converted == {"price": 37.5, "currency": "SAR", "originalPrice": 10, "originalCurrency": "USD"}


async def test_currency_falls_back_to_default_rate():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    service = CurrencyService(transport=httpx.MockTransport(handler))
    rates = await service.get_exchange_rates()
    assert rates["SAR"] == 3.75
    assert service.format_price(1234.5, "SAR") == "ر.س 1,234.5"
    assert service.format_price(20, "USD") == "$20"


async def test_currency_failed_fetch_is_not_retried_every_call(monkeypatch):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(500)

    service = CurrencyService(transport=httpx.MockTransport(handler))
    assert (await service.get_exchange_rates())["SAR"] == 3.75
    assert await service.convert_currency(10, "USD", "SAR") == 37.5
    assert len(requests) == 1

    # 重试间隔过后再次请求上游
    monkeypatch.setattr(service, "retry_after", 0.0)
    await service.get_exchange_rates()
    assert len(requests) == 2
