"""
API 接口层

提供 FastAPI 控制接口。

用法：
    from interfaces.api import create_app
    from interfaces.api.dependencies import set_observer_getter

    app = create_app()
    set_observer_getter(container.observer)
"""

from interfaces.api.app import create_app

__all__ = [
    "create_app",
]
