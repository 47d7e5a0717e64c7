"""依赖注入容器测试"""

from pathlib import Path

import pytest

from application.observer.services.observer import Observer
from infrastructure.config.settings import AccountSettings, NotifierSettings, Settings
from infrastructure.containers import bootstrap
from infrastructure.notifiers.stdout_notifier import StdoutNotifier
from infrastructure.secrets.keyring_key_provider import KeyringKeyProvider
from infrastructure.secrets.plain_key_provider import PlainKeyProvider


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        config_dir=tmp_path,
        log_dir=tmp_path / "logs",
        secrets="plain",
        accept_plain_secrets_insecure=True,
        notifiers=[NotifierSettings(kind="stdout")],
        accounts=[AccountSettings(email="alice@example.com", backend="Null")],
    )


class TestBootstrap:
    """容器组装测试"""

    def test_creates_database_in_config_dir(self, settings: Settings):
        """测试数据库文件位于配置目录"""
        boot = bootstrap(settings)

        assert settings.database_path.exists()
        assert boot.infra.secret_blob_repository().list_all() == []

    def test_selects_plain_key_provider(self, settings: Settings):
        boot = bootstrap(settings)

        provider = boot.infra.key_provider()

        assert isinstance(provider, PlainKeyProvider)
        assert provider.key_path == settings.config_dir / "encryption_key"

    def test_selects_keyring_key_provider(self, settings: Settings):
        boot = bootstrap(settings.model_copy(update={"secrets": "keyring"}))

        assert isinstance(boot.infra.key_provider(), KeyringKeyProvider)

    def test_observer_is_wired(self, settings: Settings):
        """测试 Observer 及其依赖"""
        boot = bootstrap(settings)

        observer = boot.app.observer()

        assert isinstance(observer, Observer)
        assert observer is boot.app.observer()
        assert [account.email for account in observer.accounts()] == ["alice@example.com"]
        assert observer.poll_interval == settings.poll_interval
        assert isinstance(boot.infra.notifiers()[0], StdoutNotifier)

    def test_secret_store_round_trip(self, settings: Settings):
        boot = bootstrap(settings)
        store = boot.infra.secret_store()

        store.unlock()
        blob = store.seal("alice@example.com", b"session")

        assert store.open(blob) == b"session"
        assert (settings.config_dir / "encryption_key").exists()
