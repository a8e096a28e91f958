"""
旅行套餐模型
"""

from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON, Boolean
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

PACKAGE_CATEGORIES = (
    "adventure", "luxury", "family", "cultural", "nature", "business",
    "wellness", "food", "photography", "budget", "religious", "educational",
    "sports", "cruise", "safari", "regular", "group",
)
DIFFICULTY_LEVELS = ("easy", "moderate", "challenging", "expert")
DISCOUNT_TYPES = ("percentage", "fixed_amount", "early_bird", "group_discount", "none")
BOOKING_STATUSES = ("active", "inactive", "sold_out", "cancelled", "draft")
TOUR_STATUSES = ("draft", "published", "archived", "deleted")
PACKAGE_CURRENCIES = ("SAR", "USD")


def _filled(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


class Package(BaseModel):
    """旅行套餐模型（中英/阿语双语字段并存）"""
    __tablename__ = "packages"

    # 基本信息
    title = Column(String(200), nullable=False, index=True)
    title_ar = Column(String(200), nullable=True)
    description = Column(Text, nullable=False)
    description_ar = Column(Text, nullable=True)
    slug = Column(String(220), nullable=True, index=True)

    # 目的地
    destination = Column(String(200), nullable=False, index=True)
    destination_ar = Column(String(200), nullable=True)
    main_destination = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)

    # 行程长度
    duration = Column(Integer, nullable=False)
    total_nights = Column(Integer, nullable=True)

    # 价格
    price = Column(Float, nullable=False, default=0.0)
    price_sar = Column(Float, nullable=True)
    price_adult = Column(Float, nullable=True)
    price_child = Column(Float, nullable=True)
    price_infant = Column(Float, nullable=True)
    currency = Column(String(3), nullable=False, default="SAR")
    discount_type = Column(String(20), nullable=False, default="none")
    discount_value = Column(Float, nullable=False, default=0.0)

    # 容量
    max_travelers = Column(Integer, nullable=False, default=20)
    min_people = Column(Integer, nullable=False, default=1)
    current_bookings = Column(Integer, nullable=False, default=0)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)

    # 分类与标签
    categories = Column(JSON, nullable=False, default=list)
    tour_type = Column(String(50), nullable=True)
    difficulty = Column(String(20), nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    # 内容清单（阿语版本独立存储）
    inclusions = Column(JSON, nullable=False, default=list)
    inclusions_ar = Column(JSON, nullable=False, default=list)
    exclusions = Column(JSON, nullable=False, default=list)
    exclusions_ar = Column(JSON, nullable=False, default=list)
    highlights = Column(JSON, nullable=False, default=list)
    highlights_ar = Column(JSON, nullable=False, default=list)
    itinerary = Column(JSON, nullable=False, default=list)  # [{day, title, title_ar, description, description_ar, activities, activities_ar}]
    images = Column(JSON, nullable=False, default=list)  # [{path, title, altText, order, isFeatured}]

    # 状态
    is_featured = Column(Boolean, nullable=False, default=False)
    availability = Column(Boolean, nullable=False, default=True)
    booking_status = Column(String(20), nullable=False, default="active")
    tour_status = Column(String(20), nullable=False, default="draft", index=True)
    sale_start_date = Column(DateTime, nullable=True)
    sale_end_date = Column(DateTime, nullable=True)

    # 关联酒店 [{hotelId, nights, pricePerNight}]
    hotel_packages = Column(JSON, nullable=False, default=list)

    # SEO
    meta_title = Column(String(200), nullable=True)
    meta_description = Column(String(500), nullable=True)

    # 关联关系
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_by = relationship("User", back_populates="packages")
    bookings = relationship("Booking", back_populates="package")
    media = relationship("Media", back_populates="package", cascade="all, delete-orphan")

    @property
    def available_spots(self) -> int:
        return max(0, (self.max_travelers or 0) - (self.current_bookings or 0))

    @property
    def price_range(self):
        prices = [
            p for p in (self.price, self.price_adult, self.price_child, self.price_infant)
            if p is not None and p > 0
        ]
        if not prices:
            return {"min": 0, "max": 0}
        return {"min": min(prices), "max": max(prices)}

    @property
    def arabic_translation_status(self):
        """阿语翻译完成度：基础字段 + 非空清单 + 每日行程（标题与描述均有才算完成）"""
        total = 0
        completed = 0

        for field in ("title_ar", "description_ar", "destination_ar"):
            total += 1
            if _filled(getattr(self, field)):
                completed += 1

        for field in ("inclusions_ar", "exclusions_ar", "highlights_ar"):
            total += 1
            if any(_filled(item) for item in getattr(self, field) or []):
                completed += 1

        for day in self.itinerary or []:
            total += 1
            if _filled(day.get("title_ar")) and _filled(day.get("description_ar")):
                completed += 1

        # 四舍五入（.5 向上）
        percentage = int(completed * 100 / total + 0.5) if total else 0
        if percentage == 100:
            status = "complete"
        elif percentage > 0:
            status = "partial"
        else:
            status = "missing"

        return {
            "status": status,
            "percentage": percentage,
            "completedFields": completed,
            "totalFields": total,
        }

    def linked_hotel_ids(self):
        ids = []
        for entry in self.hotel_packages or []:
            hotel_id = entry.get("hotelId") or entry.get("hotel")
            if hotel_id is not None:
                ids.append(int(hotel_id))
        return ids

    def __repr__(self):
        try:
            obj_id = getattr(self, 'id', 'N/A')
            return f"<Package(id={obj_id})>"
        except Exception:
            return f"<Package(instance)>"
