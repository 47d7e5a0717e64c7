"""数据库引擎与会话工厂"""

import logging
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """SQLAlchemy 声明式基类"""
    pass


class DatabaseFactory:
    """
    数据库工厂

    默认使用配置目录下的 SQLite 文件；传入 None 时使用内存数据库（测试用）。
    会话在多个工作线程中使用，因此关闭 SQLite 的同线程检查，
    每次操作创建独立会话。
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        echo: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self._path = Path(path) if path is not None else None
        self._echo = echo
        self._logger = logger or logging.getLogger(__name__)
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def url(self) -> str:
        if self._path is None:
            return "sqlite:///:memory:"
        return f"sqlite:///{self._path}"

    def get_engine(self) -> Engine:
        """获取（惰性创建）数据库引擎"""
        if self._engine is None:
            if self._path is None:
                # 内存数据库在所有连接间共享同一个连接
                self._engine = create_engine(
                    self.url,
                    echo=self._echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
            else:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._engine = create_engine(
                    self.url,
                    echo=self._echo,
                    connect_args={"check_same_thread": False},
                )
            self._logger.debug(f"Database engine created: {self.url}")
        return self._engine

    def get_session_factory(self) -> sessionmaker:
        """获取会话工厂"""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.get_engine(),
                expire_on_commit=False,
            )
        return self._session_factory

    def init_schema(self) -> None:
        """创建所有表（已存在的表不变）"""
        # 导入模型以注册到 Base.metadata
        import infrastructure.secrets.models.secret_blob_model  # noqa: F401

        Base.metadata.create_all(self.get_engine())
        self._logger.info(f"Database schema initialized: {self.url}")

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
