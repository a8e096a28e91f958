"""
目的地与城市服务
"""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ServiceError
from app.models.destination import CONTINENTS, City, Destination
from app.models.user import User
from app.schemas.common import serialize
from app.schemas.destination import CityCreate, CityOut, CityUpdate, DestinationCreate, DestinationOut, DestinationUpdate
from app.utils.slug import slugify


def present_destination(destination: Destination, include_inactive_cities: bool = True) -> Dict[str, Any]:
    data = serialize(DestinationOut, destination)
    if not include_inactive_cities:
        data["cities"] = [c for c in data["cities"] if c["isActive"]]
    return data


class DestinationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_destination(self, destination_id: int) -> Destination:
        result = await self.db.execute(
            select(Destination)
            .options(selectinload(Destination.cities))
            .where(Destination.id == destination_id)
            .execution_options(populate_existing=True)
        )
        destination = result.scalar_one_or_none()
        if not destination:
            raise NotFoundError("Destination not found")
        return destination

    async def _code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Destination.id).where(func.upper(Destination.country_code) == code.upper())
        if exclude_id is not None:
            query = query.where(Destination.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def list_destinations(self, filters: Dict[str, Any], page: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        query = select(Destination).options(selectinload(Destination.cities))
        if filters.get("active_only", True):
            query = query.where(Destination.is_active.is_(True))
        if filters.get("continent"):
            query = query.where(Destination.continent == filters["continent"])
        if filters.get("country"):
            pattern = f"%{filters['country']}%"
            query = query.where(or_(Destination.country_en.ilike(pattern), Destination.country_ar.ilike(pattern)))
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            city_match = select(City.destination_id).where(
                or_(City.name_en.ilike(pattern), City.name_ar.ilike(pattern))
            )
            query = query.where(or_(
                Destination.country_en.ilike(pattern),
                Destination.country_ar.ilike(pattern),
                Destination.country_code.ilike(pattern),
                Destination.id.in_(city_match),
            ))

        total = (await self.db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
        result = await self.db.execute(
            query.order_by(Destination.country_en).offset((page - 1) * limit).limit(limit)
        )
        include_inactive = bool(filters.get("include_inactive_cities"))
        return [present_destination(d, include_inactive) for d in result.scalars().all()], total

    async def list_cities(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        query = (
            select(City, Destination)
            .join(Destination, City.destination_id == Destination.id)
            .where(Destination.is_active.is_(True), City.is_active.is_(True))
        )
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                City.name_en.ilike(pattern),
                City.name_ar.ilike(pattern),
                Destination.country_en.ilike(pattern),
                Destination.country_ar.ilike(pattern),
            ))
        result = await self.db.execute(query.order_by(Destination.country_en, City.name_en))
        return [
            {
                **serialize(CityOut, city),
                "cityId": city.id,
                "country": {"en": destination.country_en, "ar": destination.country_ar},
                "countryCode": destination.country_code,
                "continent": destination.continent,
                "destinationId": destination.id,
            }
            for city, destination in result.all()
        ]

    async def create_destination(self, data: DestinationCreate, user: User) -> Destination:
        if not data.country_en or not data.country_ar or not data.country_code or not data.continent:
            raise ServiceError("Country names (English & Arabic), country code, and continent are required")
        if not 2 <= len(data.country_code) <= 3:
            raise ServiceError("Country code must be 2-3 characters")
        if data.continent not in CONTINENTS:
            raise ServiceError(f"Invalid continent. Must be one of: {', '.join(CONTINENTS)}")
        if await self._code_taken(data.country_code):
            raise ServiceError("Country with this code already exists")

        destination = Destination(
            country_en=data.country_en.strip(),
            country_ar=data.country_ar.strip(),
            country_code=data.country_code,
            continent=data.continent,
            is_active=data.is_active,
            created_by_id=user.id,
            cities=[
                City(name_en=c.name_en.strip(), name_ar=c.name_ar.strip(), slug=slugify(c.name_en), is_active=c.is_active)
                for c in data.cities if c.name_en and c.name_ar
            ],
        )
        self.db.add(destination)
        await self.db.commit()
        logger.info(f"🌍 目的地已创建: {destination.country_code}")
        return await self.get_destination(destination.id)

    async def update_destination(self, destination_id: int, data: DestinationUpdate) -> Destination:
        destination = await self.get_destination(destination_id)
        payload = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        if "country_code" in payload:
            if not 2 <= len(payload["country_code"]) <= 3:
                raise ServiceError("Country code must be 2-3 characters")
            if await self._code_taken(payload["country_code"], destination.id):
                raise ServiceError("Country with this code already exists")
        if "continent" in payload and payload["continent"] not in CONTINENTS:
            raise ServiceError(f"Invalid continent. Must be one of: {', '.join(CONTINENTS)}")

        for field, value in payload.items():
            setattr(destination, field, value)
        await self.db.commit()
        return await self.get_destination(destination.id)

    async def delete_destination(self, destination_id: int) -> None:
        destination = await self.get_destination(destination_id)
        await self.db.delete(destination)
        await self.db.commit()
        logger.info(f"🗑️ 目的地已删除: {destination_id}")

    async def add_city(self, destination_id: int, data: CityCreate) -> Destination:
        if not (data.name_en or "").strip() or not (data.name_ar or "").strip():
            raise ServiceError("City name in both English and Arabic is required")

        destination = await self.get_destination(destination_id)
        name_en = data.name_en.strip()
        if any(c.name_en.lower() == name_en.lower() for c in destination.cities):
            raise ServiceError("City already exists in this destination")

        destination.cities.append(City(
            name_en=name_en,
            name_ar=data.name_ar.strip(),
            slug=slugify(name_en),
            is_active=data.is_active,
        ))
        await self.db.commit()
        return await self.get_destination(destination.id)

    def _find_city(self, destination: Destination, city_id: int) -> City:
        for city in destination.cities:
            if city.id == city_id:
                return city
        raise NotFoundError("City not found")

    async def update_city(self, destination_id: int, city_id: int, data: CityUpdate) -> Destination:
        destination = await self.get_destination(destination_id)
        city = self._find_city(destination, city_id)

        if data.name_en:
            city.name_en = data.name_en.strip()
            city.slug = slugify(city.name_en)
        if data.name_ar:
            city.name_ar = data.name_ar.strip()
        if data.is_active is not None:
            city.is_active = data.is_active

        await self.db.commit()
        return await self.get_destination(destination.id)

    async def delete_city(self, destination_id: int, city_id: int) -> Destination:
        destination = await self.get_destination(destination_id)
        city = self._find_city(destination, city_id)
        destination.cities.remove(city)
        await self.db.commit()
        return await self.get_destination(destination.id)
