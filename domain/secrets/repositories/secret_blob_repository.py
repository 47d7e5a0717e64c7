"""密文仓储接口"""

from abc import ABC, abstractmethod
from typing import List, Optional

from domain.secrets.value_objects.secret_blob import SecretBlob


class SecretBlobRepository(ABC):
    """
    密文仓储接口

    每个账号最多保存一份密文。具体实现在基础设施层。
    """

    @abstractmethod
    def get(self, account_email: str) -> Optional[SecretBlob]:
        """
        根据账号获取密文

        Args:
            account_email: 账号邮箱

        Returns:
            SecretBlob，不存在返回 None
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, blob: SecretBlob) -> None:
        """
        保存密文（同一账号已有密文时覆盖）

        Args:
            blob: 密文
        """
        raise NotImplementedError

    @abstractmethod
    def remove(self, account_email: str) -> bool:
        """
        删除账号的密文

        Returns:
            True 如果删除了记录
        """
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[SecretBlob]:
        """
        获取所有密文

        Returns:
            密文列表
        """
        raise NotImplementedError
