"""
响应封装 {success, message, data}
"""

import math
from typing import Any


def success_response(data: Any = None, message: str = "Success") -> dict:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def build_pagination(page: int, limit: int, total: int, total_key: str) -> dict:
    """分页信息；total_key 如 totalPackages、totalBookings"""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
