"""主密钥值对象"""

import hashlib
from dataclasses import dataclass, field

from cryptography.fernet import Fernet

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException


@dataclass(frozen=True)
class MasterKey(BaseValueObject):
    """
    主密钥

    用于加密所有账号会话材料的 Fernet 密钥（32 字节 url-safe base64 编码）。

    Attributes:
        material: Fernet 密钥字节
    """

    material: bytes = field(repr=False)

    def validate(self) -> None:
        """校验密钥格式"""
        try:
            Fernet(self.material)
        except (ValueError, TypeError) as e:
            raise InvalidValueObjectException(
                value_object_type="MasterKey",
                value="[REDACTED]",
                reason=f"Invalid encryption key: {e}",
            )

    @classmethod
    def generate(cls) -> "MasterKey":
        """生成新的随机主密钥"""
        return cls(material=Fernet.generate_key())

    @property
    def key_id(self) -> str:
        """密钥指纹（SHA-256 前 16 位十六进制），可安全记录"""
        return hashlib.sha256(self.material).hexdigest()[:16]

    def __repr__(self) -> str:
        return f"MasterKey(key_id={self.key_id!r})"

    def __str__(self) -> str:
        return "[REDACTED]"
