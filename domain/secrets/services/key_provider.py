"""主密钥提供者接口"""

from abc import ABC, abstractmethod
from typing import Optional

from domain.secrets.value_objects.master_key import MasterKey


class KeyProvider(ABC):
    """
    主密钥提供者接口

    决定主密钥保存在哪里（磁盘文件、系统密钥链等）。
    具体实现在基础设施层，由配置选择，可互相替换。
    """

    name: str = "key-provider"

    @abstractmethod
    def load(self) -> Optional[MasterKey]:
        """
        读取主密钥

        Returns:
            主密钥，尚未保存过时返回 None

        Raises:
            SecretStoreError: 密钥存在但无法读取或格式错误
        """
        raise NotImplementedError

    @abstractmethod
    def store(self, key: MasterKey) -> None:
        """
        保存主密钥（覆盖已有密钥）

        Args:
            key: 主密钥

        Raises:
            SecretStoreError: 保存失败
        """
        raise NotImplementedError
