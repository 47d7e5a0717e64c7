"""
REST API 路由

定义 REST API 端点。
"""

from interfaces.api.routes.accounts import router as accounts_router
from interfaces.api.routes.credentials import router as credentials_router
from interfaces.api.routes.reload import router as reload_router

__all__ = ["accounts_router", "credentials_router", "reload_router"]
