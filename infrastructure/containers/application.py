"""
应用容器（AppContainer）

管理应用层组件：通知总线、凭据经纪人、Observer。
依赖 InfraContainer 获取基础设施。
"""

from dependency_injector import containers, providers

from application.account.services.credential_broker import CredentialBroker
from application.notification.services.notifier_bus import NotifierBus
from application.observer.services.observer import Observer


class AppContainer(containers.DeclarativeContainer):
    """应用容器 - 管理应用层服务"""

    # 依赖配置容器
    config = providers.DependenciesContainer()

    # 依赖基础设施容器
    infra = providers.DependenciesContainer()

    # ============ 通知 ============

    notifier_bus = providers.Singleton(
        NotifierBus,
        sinks=infra.notifiers,
    )

    # ============ 凭据 ============

    credential_broker = providers.Singleton(CredentialBroker)

    # ============ Observer ============

    # 配置快照（每次调用重新生成）
    observer_config = providers.Factory(
        lambda settings: settings.to_observer_config(),
        settings=config.settings,
    )

    # Observer（单例，整个进程只需一个实例）
    observer = providers.Singleton(
        Observer,
        config=observer_config,
        backends=infra.backend_registry,
        secret_store=infra.secret_store,
        notifier_bus=notifier_bus,
        credential_broker=credential_broker,
    )
