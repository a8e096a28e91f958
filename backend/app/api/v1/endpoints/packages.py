"""
旅行套餐API端点
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_db
from app.core.exceptions import ServiceError
from app.core.responses import build_pagination, success_response
from app.core.security import get_current_user, get_current_user_optional, require_roles
from app.models.user import User
from app.schemas.auth import UserOut
from app.schemas.common import serialize
from app.schemas.package import PackageCreate, PackageOut, PackageTranslationUpdate, PackageUpdate
from app.services.package_pricing_service import PackagePricingService
from app.services.package_service import PackageService, present_package
from app.services.tbo_service import TBOService, get_tbo_service

router = APIRouter()


async def _present_all(packages, language: str, currency: Optional[str]):
    return [await present_package(p, language, currency) for p in packages]


@router.get("/")
async def list_packages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    destination: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    min_duration: Optional[int] = Query(None, alias="minDuration"),
    max_duration: Optional[int] = Query(None, alias="maxDuration"),
    difficulty: Optional[str] = None,
    availability: Optional[bool] = None,
    featured: Optional[bool] = None,
    tour_status: Optional[str] = Query(None, alias="tourStatus"),
    booking_status: Optional[str] = Query(None, alias="bookingStatus"),
    search: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    language: str = "en",
    currency: Optional[str] = Query(None, pattern="^(SAR|USD)$"),
    db: AsyncSession = Depends(get_async_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """套餐列表；非管理员仅可见已发布且可售的套餐"""
    filters = {
        "destination": destination,
        "category": category,
        "min_price": min_price,
        "max_price": max_price,
        "min_duration": min_duration,
        "max_duration": max_duration,
        "difficulty": difficulty,
        "availability": availability,
        "featured": featured,
        "tour_status": tour_status,
        "booking_status": booking_status,
        "search": search,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    packages, total = await PackageService(db).list_packages(filters, current_user, page, limit)
    return success_response({
        "packages": await _present_all(packages, language, currency),
        "pagination": build_pagination(page, limit, total, "totalPackages"),
    }, "Packages retrieved successfully")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_package(
    data: PackageCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    package = await PackageService(db).create_package(data, current_user)
    return success_response({"package": serialize(PackageOut, package)}, "Package created successfully")


@router.get("/search")
async def search_packages(
    q: Optional[str] = None,
    tags: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    language: str = "en",
    currency: Optional[str] = Query(None, pattern="^(SAR|USD)$"),
    db: AsyncSession = Depends(get_async_db),
):
    packages, total = await PackageService(db).search_packages(q, tags, page, limit, sort_by, sort_order)
    return success_response({
        "packages": await _present_all(packages, language, currency),
        "pagination": build_pagination(page, limit, total, "totalPackages"),
        "searchQuery": {"q": q, "tags": tags},
    }, "Search results retrieved successfully")


@router.get("/expert/{expert_id}")
async def get_expert_packages(
    expert_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    language: str = "en",
    currency: Optional[str] = Query(None, pattern="^(SAR|USD)$"),
    db: AsyncSession = Depends(get_async_db),
):
    expert, packages, total = await PackageService(db).get_expert_packages(expert_id, page, limit, sort_by, sort_order)
    return success_response({
        "expert": serialize(UserOut, expert),
        "packages": await _present_all(packages, language, currency),
        "pagination": build_pagination(page, limit, total, "totalPackages"),
    }, "Expert packages retrieved successfully")


@router.get("/admin/translation-stats")
async def get_translation_stats(
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(require_roles("admin", message="Access denied. Admin role required")),
):
    stats = await PackageService(db).get_translation_stats()
    return success_response(stats, "Translation statistics retrieved successfully")


@router.get("/{package_id}")
async def get_package(
    package_id: int,
    language: str = "en",
    currency: Optional[str] = Query(None, pattern="^(SAR|USD)$"),
    db: AsyncSession = Depends(get_async_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    package = await PackageService(db).get_visible_package(package_id, current_user)
    return success_response(
        {"package": await present_package(package, language, currency)},
        "Package retrieved successfully",
    )


@router.put("/{package_id}")
async def update_package(
    package_id: int,
    data: PackageUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    package = await PackageService(db).update_package(package_id, data, current_user)
    return success_response({"package": serialize(PackageOut, package)}, "Package updated successfully")


@router.delete("/{package_id}")
async def delete_package(
    package_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    await PackageService(db).delete_package(package_id, current_user)
    return success_response(message="Package deleted successfully")


@router.patch("/{package_id}/availability")
async def toggle_availability(
    package_id: int,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    package = await PackageService(db).toggle_availability(package_id, current_user)
    state = "enabled" if package.availability else "disabled"
    return success_response({"package": serialize(PackageOut, package)}, f"Package {state} successfully")


@router.put("/{package_id}/translations")
async def update_translations(
    package_id: int,
    body: PackageTranslationUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    package = await PackageService(db).update_translation(package_id, body, current_user)
    return success_response({
        "package": serialize(PackageOut, package),
        "translationStatus": package.arabic_translation_status,
    }, "Package translations updated successfully")


@router.get("/{package_id}/translations")
async def get_translations(package_id: int, db: AsyncSession = Depends(get_async_db)):
    translations = await PackageService(db).get_translations(package_id)
    return success_response(translations, "Package translations retrieved successfully")


def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ServiceError("Invalid date format. Use YYYY-MM-DD format")


@router.get("/{package_id}/pricing")
async def get_package_pricing(
    package_id: int,
    adults: int = Query(2, ge=1),
    children: int = Query(0, ge=0),
    infants: int = Query(0, ge=0),
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    currency: str = Query("SAR", pattern="^(SAR|USD)$"),
    db: AsyncSession = Depends(get_async_db),
    tbo_service: TBOService = Depends(get_tbo_service),
):
    start, end = _parse_day(check_in), _parse_day(check_out)
    if start and end and end <= start:
        raise ServiceError("Check-out date must be after check-in date")

    package = await PackageService(db).get_package(package_id)
    pricing = await PackagePricingService(db, tbo_service).calculate_package_pricing(package, {
        "travelers": {"adults": adults, "children": children, "infants": infants},
        "dateRange": {"startDate": start, "endDate": end},
        "currency": currency,
    })
    return success_response(pricing, "Package pricing calculated successfully")
