"""
认证相关的Pydantic模式
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel


class UserRegister(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: Optional[str] = None
    language: Literal["en", "ar"] = "en"
    country: Optional[str] = None
    currency: Literal["USD", "SAR"] = "SAR"

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class UserLogin(CamelModel):
    email: str
    password: str


class UserOut(CamelModel):
    """用户信息（不包含密码与令牌）"""
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    language: str
    country: Optional[str] = None
    timezone: Optional[str] = None
    currency: str
    profile_picture: Optional[str] = None
    is_email_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserUpdate(CamelModel):
    """用户资料更新请求体"""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    language: Optional[Literal["en", "ar"]] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    currency: Optional[Literal["USD", "SAR"]] = None


class ChangePassword(CamelModel):
    """用户修改密码请求体"""
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


class ForgotPassword(CamelModel):
    email: str


class ResetPassword(CamelModel):
    token: str
    password: str = Field(..., min_length=6, max_length=128)


class VerifyEmail(CamelModel):
    token: str
