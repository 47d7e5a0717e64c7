"""账号实体"""

from dataclasses import dataclass

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException


@dataclass(frozen=True)
class Account(BaseValueObject):
    """
    被监视的邮箱账号

    账号由邮箱地址唯一标识，backend 指定使用哪个邮件后端进行认证和轮询。
    同一邮箱地址在一次配置快照中只能出现一次。

    Attributes:
        email: 邮箱地址
        backend: 后端名称（在 BackendRegistry 中注册的名称）
    """

    email: str
    backend: str

    def validate(self) -> None:
        """校验账号标识"""
        if not self.email or not self.email.strip():
            raise InvalidValueObjectException(
                value_object_type="Account",
                value=self.email,
                reason="Email cannot be empty",
            )
        if not self.backend or not self.backend.strip():
            raise InvalidValueObjectException(
                value_object_type="Account",
                value=self.backend,
                reason=f"Backend cannot be empty for account {self.email}",
            )

    def __str__(self) -> str:
        return f"{self.email} ({self.backend})"
