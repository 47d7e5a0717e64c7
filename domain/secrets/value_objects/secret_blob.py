"""加密会话材料值对象"""

from dataclasses import dataclass, field

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException


@dataclass(frozen=True)
class SecretBlob(BaseValueObject):
    """
    加密会话材料

    某个账号的会话/凭据材料在静态存储时的密文形式，只能通过 SecretStore
    读写。字符串表示不暴露密文。

    Attributes:
        account_email: 所属账号
        scheme: 加密方案标识（如 "fernet"）
        key_id: 加密时所用主密钥的指纹
        ciphertext: 密文字节
    """

    account_email: str
    scheme: str
    key_id: str
    ciphertext: bytes = field(repr=False)

    def validate(self) -> None:
        """校验密文元数据"""
        if not self.account_email:
            raise InvalidValueObjectException(
                value_object_type="SecretBlob",
                value=None,
                reason="Owning account cannot be empty",
            )
        if not self.ciphertext:
            raise InvalidValueObjectException(
                value_object_type="SecretBlob",
                value="[ENCRYPTED]",
                reason="Ciphertext cannot be empty",
            )

    def __repr__(self) -> str:
        """安全的字符串表示，不暴露密文"""
        return (
            f"SecretBlob(account_email={self.account_email!r}, "
            f"scheme={self.scheme!r}, key_id={self.key_id!r}, [ENCRYPTED])"
        )

    def __str__(self) -> str:
        return "[ENCRYPTED]"
