"""
预订模型
"""

from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
TBO_BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "modified", "failed")


class Booking(BaseModel):
    """预订模型"""
    __tablename__ = "bookings"

    booking_reference = Column(String(32), unique=True, index=True, nullable=False)  # TRP-YYYYMMDD-NNNN

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True, index=True)  # 套餐删除后保留历史预订

    # 出行人数
    adults = Column(Integer, nullable=False, default=1)
    children = Column(Integer, nullable=False, default=0)
    infants = Column(Integer, nullable=False, default=0)

    # 出行日期
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)

    # 联系方式
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(30), nullable=False)

    total_price = Column(Float, nullable=False, default=0.0)
    booking_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)
    special_requests = Column(Text, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # TBO 酒店预订记录（未关联时为空）
    tbo_booking = Column(JSON, nullable=True)

    user = relationship("User", back_populates="bookings")
    package = relationship("Package", back_populates="bookings")

    @property
    def total_travelers(self) -> int:
        return (self.adults or 0) + (self.children or 0) + (self.infants or 0)

    @property
    def is_tbo_linked(self) -> bool:
        return bool(self.tbo_booking and self.tbo_booking.get("isLinked"))

    def __repr__(self):
        try:
            ref = getattr(self, 'booking_reference', 'N/A')
            return f"<Booking(reference={ref})>"
        except Exception:
            return f"<Booking(instance)>"
