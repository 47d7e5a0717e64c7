"""
日志基础设施模块
"""

from .setup import LOG_FILE_NAME, setup_logging

__all__ = ["LOG_FILE_NAME", "setup_logging"]
