"""SqlAlchemySecretBlobRepository 集成测试

使用 SQLite 内存数据库测试仓储的实际行为。
"""

import pytest

from domain.common.exceptions import SecretIoError
from domain.secrets.value_objects.secret_blob import SecretBlob
from infrastructure.database.database_factory import DatabaseFactory
from infrastructure.secrets.repositories.sqlalchemy_secret_blob_repository import (
    SqlAlchemySecretBlobRepository,
)


@pytest.fixture
def database():
    """创建内存数据库"""
    factory = DatabaseFactory(None)
    factory.init_schema()
    yield factory
    factory.dispose()


@pytest.fixture
def repository(database: DatabaseFactory) -> SqlAlchemySecretBlobRepository:
    return SqlAlchemySecretBlobRepository(database.get_session_factory())


def make_blob(email: str = "alice@example.com", ciphertext: bytes = b"cipher-1") -> SecretBlob:
    return SecretBlob(account_email=email, scheme="fernet", key_id="k1", ciphertext=ciphertext)


class TestSqlAlchemySecretBlobRepository:
    """密文仓储测试"""

    def test_save_and_get(self, repository: SqlAlchemySecretBlobRepository):
        """测试保存和读取"""
        repository.save(make_blob())

        blob = repository.get("alice@example.com")

        assert blob == make_blob()

    def test_get_missing_returns_none(self, repository: SqlAlchemySecretBlobRepository):
        assert repository.get("nobody@example.com") is None

    def test_save_overwrites(self, repository: SqlAlchemySecretBlobRepository):
        """测试同一账号只保留最新的密文"""
        repository.save(make_blob(ciphertext=b"cipher-1"))
        repository.save(make_blob(ciphertext=b"cipher-2"))

        assert repository.get("alice@example.com").ciphertext == b"cipher-2"
        assert len(repository.list_all()) == 1

    def test_remove(self, repository: SqlAlchemySecretBlobRepository):
        """测试删除"""
        repository.save(make_blob())

        assert repository.remove("alice@example.com")
        assert not repository.remove("alice@example.com")
        assert repository.get("alice@example.com") is None

    def test_list_all_is_ordered(self, repository: SqlAlchemySecretBlobRepository):
        repository.save(make_blob("carol@example.com"))
        repository.save(make_blob("bob@example.com"))

        emails = [blob.account_email for blob in repository.list_all()]

        assert emails == ["bob@example.com", "carol@example.com"]

    def test_database_errors_become_secret_io_errors(self):
        """测试数据库错误转换为 SecretIoError"""
        factory = DatabaseFactory(None)
        repository = SqlAlchemySecretBlobRepository(factory.get_session_factory())

        # 未建表
        with pytest.raises(SecretIoError):
            repository.get("alice@example.com")
