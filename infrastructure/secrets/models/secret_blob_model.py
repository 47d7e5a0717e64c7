"""密文 SQLAlchemy 数据模型"""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.database_factory import Base


class SecretBlobModel(Base):
    """
    密文数据库模型

    对应领域层的 SecretBlob 值对象，每个账号一行
    """

    __tablename__ = "secret_blobs"

    account_email: Mapped[str] = mapped_column(String(255), primary_key=True)
    scheme: Mapped[str] = mapped_column(String(32), nullable=False)
    key_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ciphertext: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<SecretBlobModel(account_email={self.account_email}, key_id={self.key_id})>"
