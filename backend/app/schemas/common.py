"""
通用模式：驼峰别名基类、日期解析、ORM对象序列化
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Type

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """请求/响应统一使用驼峰字段名，同时接受下划线写法"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """带时区的时间统一转换为无时区UTC"""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Any) -> Any:
    """解析日期时间，确保无时区信息"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            # 如果解析失败，尝试其他格式
            from dateutil import parser
            dt = parser.parse(value)
        return to_naive_utc(dt)
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return value


def serialize(schema: Type[BaseModel], obj: Any) -> dict:
    """ORM对象 -> 驼峰字典"""
    return schema.model_validate(obj).model_dump(by_alias=True)


def serialize_list(schema: Type[BaseModel], objs: List[Any]) -> List[dict]:
    return [serialize(schema, obj) for obj in objs]
