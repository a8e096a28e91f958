#!/usr/bin/env python3
"""
按套餐分类枚举写入默认分类（可重复执行，已存在的slug跳过）

使用：
    python scripts/seed_categories.py
"""
import asyncio
import os
import sys
from loguru import logger

backend_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_root not in sys.path:
    sys.path.append(backend_root)

from app.core.database import async_session, create_default_categories, create_tables_if_not_exists


async def main():
    await create_tables_if_not_exists()
    async with async_session() as session:
        created = await create_default_categories(session)
    logger.info(f"✅ 分类种子完成，新增 {created} 个")


if __name__ == "__main__":
    asyncio.run(main())
