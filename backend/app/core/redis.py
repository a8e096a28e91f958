"""
Redis缓存层
TBO查询结果与汇率的短期缓存；REDIS_ENABLED=false 时读写一律视为未命中
"""

import asyncio
import json
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from app.core.config import settings

CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)

_client: Optional[redis.Redis] = None
_client_loop: Optional[int] = None


async def init_redis():
    """按当前事件循环建立客户端并探活"""
    global _client, _client_loop

    if not settings.REDIS_ENABLED:
        logger.info("ℹ️ Redis未启用，缓存将直接穿透")
        return

    client = redis.Redis.from_url(
        settings.REDIS_URL,
        password=settings.REDIS_PASSWORD,
        max_connections=20,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=15,
    )
    try:
        await asyncio.wait_for(client.ping(), timeout=3)
    except CACHE_ERRORS as e:
        logger.error(f"❌ Redis连接失败: {e}")
        await client.aclose()
        raise

    _client, _client_loop = client, id(asyncio.get_running_loop())
    logger.info("✅ Redis连接成功")


async def close_redis():
    global _client, _client_loop
    if _client is not None:
        await _client.aclose()
        _client, _client_loop = None, None
        logger.info("✅ Redis连接已关闭")


async def get_redis() -> Optional[redis.Redis]:
    """Celery任务各自开事件循环，循环变化时重建客户端"""
    if not settings.REDIS_ENABLED:
        return None
    if _client is None or _client_loop != id(asyncio.get_running_loop()):
        await close_redis()
        await init_redis()
    return _client


def cache_key(prefix: str, *args, **kwargs) -> str:
    """trippat:<prefix>:<位置参数>:<k:v...>，关键字参数按键排序"""
    parts = ["trippat", prefix, *(str(a) for a in args)]
    parts.extend(f"{k}:{v}" for k, v in sorted(kwargs.items()))
    return ":".join(parts)


async def get_cache(key: str) -> Any:
    try:
        client = await get_redis()
        if client is None:
            return None
        raw = await client.get(key)
        return json.loads(raw) if raw else None
    except (*CACHE_ERRORS, ValueError) as e:
        logger.warning(f"⚠️ 读取缓存失败 {key}: {e}")
        return None


async def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    try:
        client = await get_redis()
        if client is None:
            return False
        payload = json.dumps(value, ensure_ascii=False, default=str)
        await client.set(key, payload, ex=ttl or settings.CACHE_TTL)
        return True
    except (*CACHE_ERRORS, TypeError) as e:
        logger.warning(f"⚠️ 写入缓存失败 {key}: {e}")
        return False


async def clear_cache_pattern(pattern: str) -> int:
    """按通配模式删除缓存，返回删除的键数"""
    try:
        client = await get_redis()
        if client is None:
            return 0
        removed = 0
        async for key in client.scan_iter(match=pattern, count=200):
            removed += await client.delete(key)
        return removed
    except CACHE_ERRORS as e:
        logger.error(f"❌ 清理缓存失败 {pattern}: {e}")
        return 0


async def delete_cache(key: str) -> bool:
    """删除单个键，键存在时返回True"""
    try:
        client = await get_redis()
        if client is None:
            return False
        return bool(await client.delete(key))
    except CACHE_ERRORS as e:
        logger.warning(f"⚠️ 删除缓存失败 {key}: {e}")
        return False
