"""
测试公共夹具
每个测试使用独立的SQLite文件库；Redis/限流/文件日志均关闭
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta

_TMP_DIR = tempfile.mkdtemp(prefix="trippat-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["SEED_DEFAULT_DATA"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")

backend_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_root not in sys.path:
    sys.path.insert(0, backend_root)

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from main import app
from app.core.database import close_db, get_async_engine, get_async_session_local
from app.core.security import create_user_token, get_password_hash
from app.core.stats_cache import stats_cache
from app.models import Base
from app.models.hotel import Hotel
from app.models.package import Package
from app.models.user import User
from app.services.tbo_service import TBOService, get_tbo_service

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
async def database():
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    stats_cache.clear()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    app.dependency_overrides.clear()
    await close_db()


@pytest.fixture
async def db():
    async with get_async_session_local()() as session:
        yield session


@pytest.fixture
async def client():
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_user(db, role="customer", email=None, name="Test User", is_active=True) -> User:
    user = User(
        name=name,
        email=email or f"{role}-{datetime.utcnow().timestamp()}@example.com",
        hashed_password=get_password_hash(DEFAULT_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user)}"}


async def create_package(db, created_by=None, **overrides) -> Package:
    values = {
        "title": "Riyadh Heritage Tour",
        "description": "Explore the old quarters of Riyadh with a local guide.",
        "destination": "Riyadh",
        "duration": 3,
        "total_nights": 2,
        "price": 1000.0,
        "price_adult": 1000.0,
        "currency": "SAR",
        "categories": ["cultural"],
        "tour_status": "published",
        "availability": True,
        "max_travelers": 10,
    }
    values.update(overrides)
    package = Package(**values, created_by_id=created_by.id if created_by else None)
    db.add(package)
    await db.commit()
    await db.refresh(package)
    return package


async def create_hotel(db, **overrides) -> Hotel:
    values = {
        "name": "Desert Rose Hotel",
        "description": "Boutique hotel near the old souq.",
        "base_price": 400.0,
        "location": {"address": "King Fahd Rd", "city": "Riyadh", "country": "Saudi Arabia"},
        "city": "Riyadh",
        "total_rooms": 5,
        "star_rating": 4,
    }
    values.update(overrides)
    hotel = Hotel(**values)
    db.add(hotel)
    await db.commit()
    await db.refresh(hotel)
    return hotel


def future(days: int) -> str:
    return (datetime.utcnow() + timedelta(days=days)).strftime("%Y-%m-%d")


@pytest.fixture
async def customer(db):
    return await create_user(db, "customer", email="customer@example.com", name="Customer")


@pytest.fixture
async def expert(db):
    return await create_user(db, "expert", email="expert@example.com", name="Expert")


@pytest.fixture
async def admin(db):
    return await create_user(db, "admin", email="admin@example.com", name="Admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def expert_headers(expert):
    return auth_headers(expert)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def tbo_mock():
    """
    以 httpx.MockTransport 替换TBO上游
    routes: {"/Search": callable(request) -> httpx.Response 或 dict}
    """
    routes = {}
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.rsplit("/", 1)[-1]
        calls.append(path)
        route = routes.get(f"/{path}")
        if route is None:
            return httpx.Response(404, json={"Status": {"Code": 404, "Description": "Not found"}})
        result = route(request) if callable(route) else route
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    service = TBOService(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_tbo_service] = lambda: service
    service.routes = routes
    service.calls = calls
    return service
