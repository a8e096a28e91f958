"""
管理后台数据模式
"""

from typing import Any

from app.schemas.common import CamelModel


class UserStatusUpdate(CamelModel):
    # 显式校验布尔类型，返回统一文案
    is_active: Any = None


class UserRoleUpdate(CamelModel):
    role: Any = None
