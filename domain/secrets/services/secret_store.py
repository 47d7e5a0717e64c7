"""密钥存储能力接口"""

from abc import ABC, abstractmethod
from typing import Optional

from domain.secrets.value_objects.master_key import MasterKey
from domain.secrets.value_objects.secret_blob import SecretBlob


class SecretStore(ABC):
    """
    密钥存储接口

    负责使用主密钥对每个账号的会话材料做认证加密。
    SecretBlob 只在本接口内部解密，调用方拿到的明文只存在于调用栈上。

    实现必须支持多个账号的执行单元并发调用；主密钥只读为主，
    轮换等写操作需要加锁保护。
    """

    @abstractmethod
    def unlock(self) -> MasterKey:
        """
        获取主密钥（首次运行时生成并保存）

        Raises:
            SecretIoError: 密钥文件不可读
            InsecureSecretStorageError: 明文存储未获明确同意
            KeychainUnavailableError: 系统密钥链不可用
            KeychainDeniedError: 系统密钥链拒绝访问
        """
        raise NotImplementedError

    @abstractmethod
    def seal(self, account_email: str, plaintext: bytes) -> SecretBlob:
        """
        加密并保存账号的会话材料（替换该账号之前的密文）

        Args:
            account_email: 所属账号
            plaintext: 明文会话材料

        Returns:
            新的 SecretBlob
        """
        raise NotImplementedError

    @abstractmethod
    def open(self, blob: SecretBlob) -> bytes:
        """
        解密 SecretBlob

        Args:
            blob: 密文

        Returns:
            明文会话材料

        Raises:
            SecretNotFoundError: 密文已被清除
            WrongKeyError: 密文由其他主密钥加密（密钥已轮换）
            CorruptSecretError: 认证标签不匹配
        """
        raise NotImplementedError

    @abstractmethod
    def load(self, account_email: str) -> Optional[SecretBlob]:
        """
        读取账号当前的密文

        Returns:
            SecretBlob，不存在返回 None
        """
        raise NotImplementedError

    @abstractmethod
    def purge(self, account_email: str) -> bool:
        """
        删除账号的密文

        Returns:
            True 如果删除了密文，False 如果本来就不存在
        """
        raise NotImplementedError

    @abstractmethod
    def rotate_key(self) -> MasterKey:
        """
        轮换主密钥：生成新密钥，重新加密所有密文，保存新密钥

        Returns:
            新的主密钥
        """
        raise NotImplementedError
