"""
汇率与货币换算服务
"""

import time
from typing import Dict, Optional

import httpx
from loguru import logger

from app.core.config import settings
from app.core.redis import cache_key, get_cache, set_cache

SUPPORTED_CURRENCIES = ("USD", "SAR")
CURRENCY_SYMBOLS = {
    "USD": "$",
    "SAR": "ر.س",
}


def _format_amount(value: float) -> str:
    """千分位，最多两位小数，去掉多余的0"""
    text = f"{value:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class CurrencyService:
    """以USD为基准的汇率服务；拉取失败时沿用缓存，无缓存时使用默认SAR汇率"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.exchange_rates: Dict[str, float] = {}
        self.last_updated: Optional[float] = None
        self.retry_after: Optional[float] = None
        self._transport = transport

    def _is_stale(self) -> bool:
        if self.retry_after is not None and time.time() < self.retry_after:
            return False
        return self.last_updated is None or time.time() - self.last_updated > settings.EXCHANGE_RATE_TTL

    async def get_exchange_rates(self) -> Dict[str, float]:
        if not self._is_stale():
            return self.exchange_rates

        key = cache_key("exchange_rates", "USD")
        cached = await get_cache(key)
        if cached:
            logger.debug("📦 汇率缓存命中")
            self.exchange_rates = cached
            self.last_updated = time.time()
            return self.exchange_rates

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(settings.EXCHANGE_RATE_API_URL)
                response.raise_for_status()
                rates = response.json().get("rates") or {}
            if not rates:
                raise ValueError("empty rates payload")
            self.exchange_rates = {k: float(v) for k, v in rates.items()}
            self.last_updated = time.time()
            self.retry_after = None
            await set_cache(key, self.exchange_rates, settings.EXCHANGE_RATE_TTL)
            logger.info(f"💱 汇率已更新: USD->SAR {self.exchange_rates.get('SAR')}")
        except (httpx.HTTPError, ValueError) as e:
            # 失败后在重试间隔内不再请求上游
            self.retry_after = time.time() + settings.EXCHANGE_RATE_RETRY_SECONDS
            logger.warning(f"⚠️ 获取汇率失败，使用缓存汇率: {e}")

        if "SAR" not in self.exchange_rates:
            self.exchange_rates["SAR"] = settings.DEFAULT_USD_TO_SAR
        return self.exchange_rates

    async def convert_currency(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency == to_currency:
            return amount

        rates = await self.get_exchange_rates()
        if from_currency == "USD":
            return amount * rates.get(to_currency, 1)
        if to_currency == "USD":
            return amount / rates.get(from_currency, 1)
        # 经USD中转
        usd_amount = amount / rates.get(from_currency, 1)
        return usd_amount * rates.get(to_currency, 1)

    async def convert_price_to_user_currency(self, price: float, original_currency: str,
                                             user_currency: Optional[str]) -> Dict:
        if not user_currency or original_currency == user_currency:
            return {
                "price": price,
                "currency": original_currency,
                "originalPrice": price,
                "originalCurrency": original_currency,
            }

        converted = await self.convert_currency(price, original_currency, user_currency)
        return {
            "price": round(converted, 2),
            "currency": user_currency,
            "originalPrice": price,
            "originalCurrency": original_currency,
        }

    def format_price(self, price: float, currency: str) -> str:
        if currency == "SAR":
            return f"{CURRENCY_SYMBOLS['SAR']} {_format_amount(price)}"
        return f"{self.get_currency_symbol(currency)}{_format_amount(price)}"

    def get_supported_currencies(self):
        return list(SUPPORTED_CURRENCIES)

    def get_currency_symbol(self, currency: str) -> str:
        return CURRENCY_SYMBOLS.get(currency, currency)


currency_service = CurrencyService()
