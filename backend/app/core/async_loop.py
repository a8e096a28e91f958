"""
Celery 任务中执行协程的工具
"""

import asyncio
from typing import Any, Awaitable

from app.core.database import dispose_loop_engine


def run_coro(coro: Awaitable[Any]) -> Any:
    """在独立事件循环中运行协程，结束后释放该循环上的数据库引擎"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(dispose_loop_engine())
        asyncio.set_event_loop(None)
        loop.close()
