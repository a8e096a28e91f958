"""
基础模型
"""

from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, Boolean
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BaseModel(Base):
    """所有业务表共享的主键、时间戳与启用标记"""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        try:
            obj_id = getattr(self, 'id', 'N/A')
            return f"<{self.__class__.__name__}(id={obj_id})>"
        except Exception:
            return f"<{self.__class__.__name__}(instance)>"
