"""
数据库连接管理
uvicorn与Celery任务各有事件循环，引擎和会话工厂按事件循环分别缓存
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Tuple
from urllib.parse import urlparse

from loguru import logger
from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.models.base import Base

_by_loop: Dict[int, Tuple[AsyncEngine, async_sessionmaker]] = {}


def _database_url() -> str:
    url = settings.DATABASE_URL
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


def _loop_id() -> int:
    try:
        return id(asyncio.get_running_loop())
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return id(loop)


def _bound() -> Tuple[AsyncEngine, async_sessionmaker]:
    key = _loop_id()
    if key not in _by_loop:
        engine = create_async_engine(
            _database_url(),
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            pool_recycle=300,
        )
        _by_loop[key] = (engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    return _by_loop[key]


def get_async_engine() -> AsyncEngine:
    return _bound()[0]


def get_async_session_local() -> async_sessionmaker:
    return _bound()[1]


async def get_async_db():
    """FastAPI依赖：请求级会话，异常时回滚"""
    async with get_async_session_local()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def async_session():
    """Celery任务与脚本使用：正常退出提交，异常回滚"""
    session = get_async_session_local()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def _ensure_postgres_database():
    """目标库不存在时连到 postgres 库创建"""
    import asyncpg

    parsed = urlparse(settings.DATABASE_URL)
    name = parsed.path.lstrip("/")
    try:
        conn = await asyncpg.connect(
            host=parsed.hostname, port=parsed.port or 5432,
            user=parsed.username, password=parsed.password, database="postgres",
        )
    except (OSError, asyncpg.PostgresError) as e:
        logger.warning(f"⚠️ 无法检查数据库 {name} 是否存在: {e}")
        return
    try:
        if not await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", name):
            await conn.execute(f'CREATE DATABASE "{name}"')
            logger.info(f"✅ 已创建数据库 {name}")
    finally:
        await conn.close()


async def create_tables_if_not_exists():
    """只补建缺失的表，不改动已有表结构"""
    import app.models  # noqa: F401

    async with get_async_engine().begin() as conn:
        existing = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))
        missing = sorted(set(Base.metadata.tables) - existing)
        if missing:
            await conn.run_sync(Base.metadata.create_all)
            logger.info(f"✅ 新建数据表: {', '.join(missing)}")


async def create_default_admin(session: AsyncSession) -> bool:
    from app.core.db_seed_data import DEFAULT_ADMIN
    from app.core.security import get_password_hash
    from app.models.user import User

    email = settings.DEFAULT_ADMIN_EMAIL.lower()
    if (await session.execute(select(User.id).where(User.email == email))).scalar_one_or_none():
        return False
    session.add(User(**DEFAULT_ADMIN, email=email,
                     hashed_password=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD)))
    logger.info(f"👤 创建默认管理员: {email}")
    return True


async def create_default_categories(session: AsyncSession) -> int:
    """按套餐分类枚举写入默认分类，已有slug跳过"""
    from app.core.db_seed_data import DEFAULT_CATEGORIES
    from app.models.category import Category

    existing = set((await session.execute(select(Category.slug))).scalars().all())
    fresh = [Category(**data) for data in DEFAULT_CATEGORIES if data["slug"] not in existing]
    session.add_all(fresh)
    if fresh:
        logger.info(f"✅ 创建了 {len(fresh)} 个默认分类")
    return len(fresh)


async def init_db(seed: bool = None):
    try:
        if _database_url().startswith("postgresql"):
            await _ensure_postgres_database()
        await create_tables_if_not_exists()
        if settings.SEED_DEFAULT_DATA if seed is None else seed:
            async with async_session() as session:
                await create_default_admin(session)
                await create_default_categories(session)
        logger.info("✅ 数据库初始化完成")
    except Exception as e:
        logger.error(f"❌ 数据库初始化失败: {e}")
        raise


async def ping_database() -> float:
    """SELECT 1 往返耗时（毫秒）"""
    loop = asyncio.get_running_loop()
    started = loop.time()
    async with get_async_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    return (loop.time() - started) * 1000


async def dispose_loop_engine():
    """只释放当前事件循环上的引擎（Celery任务结束时调用）"""
    bound = _by_loop.pop(_loop_id(), None)
    if bound is not None:
        await bound[0].dispose()


async def close_db():
    for engine, _ in _by_loop.values():
        await engine.dispose()
    _by_loop.clear()
    logger.info("✅ 数据库连接已关闭")
