"""
优惠券数据模式
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from app.schemas.common import CamelModel, parse_datetime


class CouponBase(CamelModel):
    name_ar: Optional[str] = None
    description: Optional[str] = None
    minimum_amount: Optional[float] = Field(None, ge=0)
    maximum_discount: Optional[float] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    user_usage_limit: Optional[int] = Field(None, ge=1)
    applicable_packages: Optional[List[int]] = None
    applicable_categories: Optional[List[str]] = None
    excluded_packages: Optional[List[int]] = None
    is_active: Optional[bool] = None

    @field_validator("valid_from", "valid_until", mode="before", check_fields=False)
    @classmethod
    def parse_dates(cls, v):
        return parse_datetime(v)

    @field_validator("code", check_fields=False)
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if v else v

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == "percentage" and self.discount_value is not None and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponCreate(CouponBase):
    code: str = Field(..., min_length=3, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    discount_type: Literal["percentage", "fixed"]
    discount_value: float = Field(..., ge=0)
    valid_from: datetime
    valid_until: datetime


class CouponUpdate(CouponBase):
    code: Optional[str] = Field(None, min_length=3, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_value: Optional[float] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None


class CouponValidate(CamelModel):
    code: Optional[str] = None
    package_id: Optional[int] = None
    amount: Optional[float] = None


class CouponOut(CamelModel):
    id: int
    code: str
    name: str
    name_ar: Optional[str] = None
    description: Optional[str] = None
    discount_type: str
    discount_value: float
    minimum_amount: float
    maximum_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    usage_count: int
    user_usage_limit: int
    valid_from: datetime
    valid_until: datetime
    applicable_packages: List[int] = []
    applicable_categories: List[str] = []
    excluded_packages: List[int] = []
    is_active: bool
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
