"""
API v1 路由汇总
"""

from fastapi import APIRouter
from app.api.v1.endpoints import (
    activity_categories,
    admin,
    auth,
    bookings,
    categories,
    coupons,
    destinations,
    hotels,
    media,
    packages,
    tbo,
    translations,
)

api_router = APIRouter()

# 注册各个端点路由
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"]
)

api_router.include_router(
    packages.router,
    prefix="/packages",
    tags=["packages"]
)

api_router.include_router(
    bookings.router,
    prefix="/bookings",
    tags=["bookings"]
)

api_router.include_router(
    hotels.router,
    prefix="/hotels",
    tags=["hotels"]
)

api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["categories"]
)

api_router.include_router(
    coupons.router,
    prefix="/coupons",
    tags=["coupons"]
)

api_router.include_router(
    translations.router,
    prefix="/translations",
    tags=["translations"]
)

api_router.include_router(
    media.router,
    prefix="/media",
    tags=["media"]
)

api_router.include_router(
    destinations.router,
    prefix="/destinations",
    tags=["destinations"]
)

api_router.include_router(
    activity_categories.router,
    prefix="/activity-categories",
    tags=["activity-categories"]
)

api_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["admin"]
)

api_router.include_router(
    tbo.router,
    prefix="/tbo",
    tags=["tbo"]
)
