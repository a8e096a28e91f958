"""
目的地API端点
国家及其城市，读取公开，写操作仅限管理员
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.responses import build_pagination, success_response
from app.core.security import require_roles
from app.models.user import User
from app.schemas.destination import CityCreate, CityUpdate, DestinationCreate, DestinationUpdate
from app.services.destination_service import DestinationService, present_destination

router = APIRouter()

ADMIN_ONLY = require_roles("admin", message="Access denied. Admin role required")


@router.get("/")
async def get_destinations(
    continent: Optional[str] = None,
    country: Optional[str] = None,
    search: Optional[str] = None,
    active_only: bool = Query(True, alias="activeOnly"),
    include_inactive_cities: bool = Query(False, alias="includeInactiveCities"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """
    获取目的地列表
    按英文国家名排序，search 同时匹配国家名、国家代码与城市名
    """
    filters = {
        "continent": continent,
        "country": country,
        "search": search,
        "active_only": active_only,
        "include_inactive_cities": include_inactive_cities,
    }
    destinations, total = await DestinationService(db).list_destinations(filters, page, limit)
    return success_response({
        "destinations": destinations,
        "pagination": build_pagination(page, limit, total, "totalDestinations"),
    }, "Destinations retrieved successfully")


@router.get("/cities")
async def get_all_cities(search: Optional[str] = None, db: AsyncSession = Depends(get_async_db)):
    cities = await DestinationService(db).list_cities(search)
    return success_response({"cities": cities, "total": len(cities)}, "Cities retrieved successfully")


@router.get("/{destination_id}")
async def get_destination(destination_id: int, db: AsyncSession = Depends(get_async_db)):
    destination = await DestinationService(db).get_destination(destination_id)
    return success_response({"destination": present_destination(destination)}, "Destination retrieved successfully")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_destination(
    data: DestinationCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    destination = await DestinationService(db).create_destination(data, current_user)
    return success_response({"destination": present_destination(destination)}, "Destination created successfully")


@router.put("/{destination_id}")
async def update_destination(
    destination_id: int,
    data: DestinationUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    destination = await DestinationService(db).update_destination(destination_id, data)
    return success_response({"destination": present_destination(destination)}, "Destination updated successfully")


@router.delete("/{destination_id}")
async def delete_destination(
    destination_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    await DestinationService(db).delete_destination(destination_id)
    return success_response(message="Destination deleted successfully")


@router.post("/{destination_id}/cities", status_code=status.HTTP_201_CREATED)
async def add_city(
    destination_id: int,
    data: CityCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    destination = await DestinationService(db).add_city(destination_id, data)
    return success_response({"destination": present_destination(destination)}, "City added successfully")


@router.put("/{destination_id}/cities/{city_id}")
async def update_city(
    destination_id: int,
    city_id: int,
    data: CityUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    destination = await DestinationService(db).update_city(destination_id, city_id, data)
    return success_response({"destination": present_destination(destination)}, "City updated successfully")


@router.delete("/{destination_id}/cities/{city_id}")
async def delete_city(
    destination_id: int,
    city_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(ADMIN_ONLY),
):
    destination = await DestinationService(db).delete_city(destination_id, city_id)
    return success_response({"destination": present_destination(destination)}, "City deleted successfully")
