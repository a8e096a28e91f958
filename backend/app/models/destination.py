"""
目的地相关模型
"""

from sqlalchemy import Column, String, Integer, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

CONTINENTS = ("Asia", "Europe", "Africa", "North America", "South America", "Australia", "Antarctica")


class Destination(BaseModel):
    """目的地（国家级）"""
    __tablename__ = "destinations"

    country_en = Column(String(100), nullable=False, index=True)
    country_ar = Column(String(100), nullable=False)
    country_code = Column(String(3), unique=True, index=True, nullable=False)
    continent = Column(String(20), nullable=False, index=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    cities = relationship(
        "City",
        back_populates="destination",
        cascade="all, delete-orphan",
        order_by="City.name_en",
    )

    @property
    def active_cities_count(self) -> int:
        return sum(1 for city in self.cities if city.is_active)

    def __repr__(self):
        return f"<Destination(country_code={self.country_code})>"


class City(BaseModel):
    """目的地下属城市"""
    __tablename__ = "destination_cities"

    destination_id = Column(Integer, ForeignKey("destinations.id", ondelete="CASCADE"), nullable=False, index=True)
    name_en = Column(String(100), nullable=False)
    name_ar = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=True, index=True)

    destination = relationship("Destination", back_populates="cities")

    # 城市启用标记沿用 BaseModel.is_active

    def __repr__(self):
        return f"<City(name={self.name_en})>"
