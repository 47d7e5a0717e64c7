"""
依赖注入容器

bootstrap() 组装 ConfigContainer → InfraContainer → AppContainer。

使用示例：
    from infrastructure.containers import bootstrap

    boot = bootstrap(settings)
    observer = boot.app.observer()
"""

from dataclasses import dataclass
from typing import Optional

from dependency_injector import providers

from infrastructure.config.settings import Settings
from .application import AppContainer
from .config import ConfigContainer
from .infrastructure import InfraContainer


@dataclass
class Bootstrap:
    """已组装的容器集合"""

    config: ConfigContainer
    infra: InfraContainer
    app: AppContainer


def bootstrap(settings: Optional[Settings] = None, init_schema: bool = True) -> Bootstrap:
    """
    组装所有容器

    Args:
        settings: 使用的配置（None 时从默认配置文件加载）
        init_schema: 是否创建数据库表

    Returns:
        Bootstrap
    """
    config = ConfigContainer()
    if settings is not None:
        config.settings.override(providers.Object(settings))

    infra = InfraContainer(config=config)
    app = AppContainer(config=config, infra=infra)

    if init_schema:
        infra.database_factory().init_schema()

    return Bootstrap(config=config, infra=infra, app=app)


__all__ = [
    "AppContainer",
    "Bootstrap",
    "ConfigContainer",
    "InfraContainer",
    "bootstrap",
]
