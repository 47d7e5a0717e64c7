"""DatabaseFactory 测试"""

from pathlib import Path

from sqlalchemy import inspect

from infrastructure.database.database_factory import DatabaseFactory


class TestDatabaseFactory:
    """数据库工厂测试"""

    def test_memory_database(self):
        factory = DatabaseFactory(None)

        assert factory.url == "sqlite:///:memory:"
        assert factory.get_engine() is factory.get_engine()

    def test_file_database_creates_parent_directory(self, tmp_path: Path):
        """测试文件数据库自动创建目录并建表"""
        path = tmp_path / "nested" / "secrets.db"
        factory = DatabaseFactory(path)

        factory.init_schema()

        assert path.exists()
        assert "secret_blobs" in inspect(factory.get_engine()).get_table_names()
        factory.dispose()

    def test_init_schema_is_idempotent(self):
        factory = DatabaseFactory(None)

        factory.init_schema()
        factory.init_schema()

        assert "secret_blobs" in inspect(factory.get_engine()).get_table_names()
