"""FastAPI 应用工厂"""

from fastapi import FastAPI

from interfaces.api.routes import accounts_router, credentials_router, reload_router


def create_app(title: str = "Mail Observer", version: str = "1.0.0") -> FastAPI:
    """
    创建控制接口应用

    路由依赖通过 interfaces.api.dependencies 中的 set_*() 连接到 DI 容器。
    """
    app = FastAPI(
        title=title,
        version=version,
        description="邮箱监视服务控制接口 - 账号状态、凭据提交、配置重新加载",
    )

    app.include_router(accounts_router, prefix="/api/v1")
    app.include_router(credentials_router, prefix="/api/v1")
    app.include_router(reload_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        """健康检查"""
        return {"status": "healthy"}

    return app
