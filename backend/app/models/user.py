"""
用户模型
"""

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

USER_ROLES = ("customer", "expert", "admin")
USER_LANGUAGES = ("en", "ar")
USER_CURRENCIES = ("USD", "SAR")


class User(BaseModel):
    """用户模型"""
    __tablename__ = "users"

    # 基本信息
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=True)

    # 认证信息
    hashed_password = Column(String(255), nullable=False)

    # 角色权限
    role = Column(String(20), nullable=False, default="customer")  # customer, expert, admin

    # 用户偏好
    language = Column(String(5), nullable=False, default="en")
    country = Column(String(100), nullable=True)
    timezone = Column(String(64), nullable=True, default="Asia/Riyadh")
    currency = Column(String(3), nullable=False, default="SAR")
    profile_picture = Column(String(500), nullable=True)

    # 邮箱验证与密码重置
    is_email_verified = Column(Boolean, default=False, nullable=False)
    email_verification_token = Column(String(128), nullable=True, index=True)
    email_verification_expires = Column(DateTime, nullable=True)
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    last_login = Column(DateTime, nullable=True)

    # 关联关系
    bookings = relationship("Booking", back_populates="user", cascade="all, delete-orphan")
    packages = relationship("Package", back_populates="created_by")

    def __repr__(self):
        try:
            # 安全地获取属性，避免触发懒加载
            obj_id = getattr(self, 'id', 'N/A')
            return f"<User(id={obj_id})>"
        except Exception:
            return f"<User(instance)>"
