"""密文 SQLAlchemy 仓储实现"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.common.exceptions import SecretIoError
from domain.secrets.repositories.secret_blob_repository import SecretBlobRepository
from domain.secrets.value_objects.secret_blob import SecretBlob
from infrastructure.secrets.models.secret_blob_model import SecretBlobModel


class SqlAlchemySecretBlobRepository(SecretBlobRepository):
    """
    密文 SQLAlchemy 仓储实现

    SecretStore 会在多个工作线程中调用仓储，因此每次操作从工厂创建独立会话。
    数据库错误统一转换为 SecretIoError。
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        初始化仓储

        Args:
            session_factory: SQLAlchemy Session 工厂
        """
        self._session_factory = session_factory

    def get(self, account_email: str) -> Optional[SecretBlob]:
        """根据账号获取密文"""
        try:
            with self._session_factory() as session:
                model = session.get(SecretBlobModel, account_email)
                if model is None:
                    return None
                return self._to_value_object(model)
        except SQLAlchemyError as e:
            raise SecretIoError(f"Failed to read secret for {account_email}: {e}") from e

    def save(self, blob: SecretBlob) -> None:
        """保存密文（覆盖已有记录）"""
        try:
            with self._session_factory() as session:
                model = session.get(SecretBlobModel, blob.account_email)
                if model is None:
                    model = SecretBlobModel(account_email=blob.account_email)
                    session.add(model)
                model.scheme = blob.scheme
                model.key_id = blob.key_id
                model.ciphertext = blob.ciphertext
                model.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
                session.commit()
        except SQLAlchemyError as e:
            raise SecretIoError(f"Failed to write secret for {blob.account_email}: {e}") from e

    def remove(self, account_email: str) -> bool:
        """删除账号的密文"""
        try:
            with self._session_factory() as session:
                model = session.get(SecretBlobModel, account_email)
                if model is None:
                    return False
                session.delete(model)
                session.commit()
                return True
        except SQLAlchemyError as e:
            raise SecretIoError(f"Failed to delete secret for {account_email}: {e}") from e

    def list_all(self) -> List[SecretBlob]:
        """获取所有密文"""
        try:
            with self._session_factory() as session:
                models = session.query(SecretBlobModel).order_by(SecretBlobModel.account_email).all()
                return [self._to_value_object(model) for model in models]
        except SQLAlchemyError as e:
            raise SecretIoError(f"Failed to list secrets: {e}") from e

    def _to_value_object(self, model: SecretBlobModel) -> SecretBlob:
        """将数据库模型转换为值对象"""
        return SecretBlob(
            account_email=model.account_email,
            scheme=model.scheme,
            key_id=model.key_id,
            ciphertext=model.ciphertext,
        )
