"""API 依赖注入

全局 getter 由入口在启动时设置，连接 DI 容器和路由。
"""

from typing import Callable, Optional

from fastapi import HTTPException, status

from application.account.services.credential_broker import CredentialBroker
from application.observer.observer_config import ObserverConfig
from application.observer.services.observer import Observer

# 全局 getter，由 DI 容器在启动时设置
_observer_getter: Optional[Callable[[], Observer]] = None
_broker_getter: Optional[Callable[[], CredentialBroker]] = None
_config_loader: Optional[Callable[[], ObserverConfig]] = None


def set_observer_getter(getter: Optional[Callable[[], Observer]]) -> None:
    """设置 Observer 获取器"""
    global _observer_getter
    _observer_getter = getter


def set_broker_getter(getter: Optional[Callable[[], CredentialBroker]]) -> None:
    """设置 CredentialBroker 获取器"""
    global _broker_getter
    _broker_getter = getter


def set_config_loader(loader: Optional[Callable[[], ObserverConfig]]) -> None:
    """设置配置加载器（重新读取配置文件并生成快照）"""
    global _config_loader
    _config_loader = loader


def _not_configured(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{name} not configured. Please configure dependency injection.",
    )


def get_observer() -> Observer:
    if _observer_getter is None:
        raise _not_configured("Observer")
    return _observer_getter()


def get_broker() -> CredentialBroker:
    if _broker_getter is None:
        raise _not_configured("Credential broker")
    return _broker_getter()


def get_config_loader() -> Callable[[], ObserverConfig]:
    if _config_loader is None:
        raise _not_configured("Config loader")
    return _config_loader
