"""
数据模型包
"""

from .base import Base
from .user import User
from .package import Package
from .booking import Booking
from .hotel import Hotel
from .category import Category
from .coupon import Coupon
from .translation import Translation
from .media import Media
from .destination import Destination, City
from .activity_category import ActivityCategory

__all__ = [
    "Base",
    "User",
    "Package",
    "Booking",
    "Hotel",
    "Category",
    "Coupon",
    "Translation",
    "Media",
    "Destination",
    "City",
    "ActivityCategory",
]
