"""
基础设施容器（InfraContainer）

管理所有基础设施组件：数据库、密钥存储、邮件后端、通知渠道等。
依赖 ConfigContainer 获取配置。
"""

from dependency_injector import containers, providers
from sqlalchemy.orm import sessionmaker

from infrastructure.backends.null_backend import NullBackend
from infrastructure.backends.registry import BackendRegistry
from infrastructure.database.database_factory import DatabaseFactory
from infrastructure.notifiers.factory import new_notifiers
from infrastructure.secrets.fernet_secret_store import FernetSecretStore
from infrastructure.secrets.keyring_key_provider import KeyringKeyProvider
from infrastructure.secrets.plain_key_provider import PlainKeyProvider
from infrastructure.secrets.repositories.sqlalchemy_secret_blob_repository import (
    SqlAlchemySecretBlobRepository,
)


class InfraContainer(containers.DeclarativeContainer):
    """基础设施容器 - 管理技术实现"""

    # 依赖配置容器
    config = providers.DependenciesContainer()

    # ============ 数据库 ============

    # 数据库工厂（单例，配置目录下的 SQLite 文件）
    database_factory = providers.Singleton(
        DatabaseFactory,
        path=config.settings.provided.database_path,
    )

    # Session 工厂（单例）
    db_session_factory: providers.Provider[sessionmaker] = providers.Singleton(
        lambda factory: factory.get_session_factory(),
        factory=database_factory,
    )

    # ============ 密钥存储 ============

    # 密文仓储（每次操作创建独立 Session，可跨线程使用）
    secret_blob_repository = providers.Singleton(
        SqlAlchemySecretBlobRepository,
        session_factory=db_session_factory,
    )

    # 主密钥提供者（按配置选择）
    key_provider = providers.Selector(
        config.settings.provided.secrets,
        plain=providers.Singleton(
            PlainKeyProvider,
            config_dir=config.settings.provided.config_dir,
            accept_insecure=config.settings.provided.accept_plain_secrets_insecure,
        ),
        keyring=providers.Singleton(KeyringKeyProvider),
    )

    # 密钥存储（单例，内部加锁）
    secret_store = providers.Singleton(
        FernetSecretStore,
        key_provider=key_provider,
        repository=secret_blob_repository,
    )

    # ============ 邮件后端 ============

    backend_registry = providers.Singleton(
        BackendRegistry,
        backends=providers.List(
            providers.Singleton(NullBackend),
        ),
    )

    # ============ 通知渠道 ============

    notifiers = providers.Singleton(
        new_notifiers,
        configs=config.settings.provided.notifiers,
    )
