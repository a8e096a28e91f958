"""
目的地数据模式
"""

from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from app.schemas.common import CamelModel


class CityCreate(CamelModel):
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    is_active: bool = True


class CityUpdate(CamelModel):
    name_en: Optional[str] = None
    name_ar: Optional[str] = None
    is_active: Optional[bool] = None


class DestinationCreate(CamelModel):
    country_en: Optional[str] = None
    country_ar: Optional[str] = None
    country_code: Optional[str] = None
    continent: Optional[str] = None
    is_active: bool = True
    cities: List[CityCreate] = []

    @field_validator("country_code")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if v else v


class DestinationUpdate(CamelModel):
    country_en: Optional[str] = None
    country_ar: Optional[str] = None
    country_code: Optional[str] = None
    continent: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("country_code")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if v else v


class CityOut(CamelModel):
    id: int
    name_en: str
    name_ar: str
    slug: Optional[str] = None
    is_active: bool


class DestinationOut(CamelModel):
    id: int
    country_en: str
    country_ar: str
    country_code: str
    continent: str
    is_active: bool
    cities: List[CityOut] = []
    active_cities_count: int
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
