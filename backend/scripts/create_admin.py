#!/usr/bin/env python3
"""
创建或提升管理员账号

Usage:
  python scripts/create_admin.py --email admin@trippat.com --password "Admin@123" --name "Trippat Admin"

邮箱已存在时将该账号提升为管理员并重置密码。
"""
import asyncio
import argparse
import os
import sys
from sqlalchemy import select
from loguru import logger

# Ensure backend root on sys.path
backend_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_root not in sys.path:
    sys.path.append(backend_root)

from app.core.database import async_session, create_tables_if_not_exists
from app.core.security import get_password_hash
from app.models.user import User


async def create_admin(email: str, password: str, name: str) -> None:
    await create_tables_if_not_exists()
    email = email.strip().lower()

    async with async_session() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user:
            user.role = "admin"
            user.is_active = True
            user.hashed_password = get_password_hash(password)
            logger.info(f"✅ 已将 {email} 提升为管理员")
        else:
            session.add(User(
                name=name,
                email=email,
                hashed_password=get_password_hash(password),
                role="admin",
                is_active=True,
                is_email_verified=True,
            ))
            logger.info(f"👤 已创建管理员: {email}")


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", type=str, required=True)
    parser.add_argument("--password", type=str, required=True)
    parser.add_argument("--name", type=str, default="Trippat Admin")
    args = parser.parse_args()
    if len(args.password) < 6:
        parser.error("password must be at least 6 characters")
    await create_admin(args.email, args.password, args.name)

if __name__ == "__main__":
    asyncio.run(main())
