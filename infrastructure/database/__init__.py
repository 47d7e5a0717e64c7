"""
数据库基础设施模块
"""

from .database_factory import Base, DatabaseFactory

__all__ = [
    "Base",
    "DatabaseFactory",
]
