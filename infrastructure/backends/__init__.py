"""
邮件后端基础设施模块
"""

from .null_backend import NullBackend, NullSession
from .registry import BackendRegistry

__all__ = [
    "NullBackend",
    "NullSession",
    "BackendRegistry",
]
