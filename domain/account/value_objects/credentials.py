"""凭据值对象"""

from dataclasses import dataclass, field
from typing import Optional

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException


@dataclass(frozen=True)
class Credentials(BaseValueObject):
    """
    交互式凭据

    由外部凭据协作者（运维人员）提供，仅在认证调用期间存在，
    认证成功后由后端导出的会话材料加密保存，凭据本身不落盘。

    Attributes:
        password: 密码
        second_factor: 可选的二次验证码（TOTP 等）
    """

    password: str = field(repr=False)
    second_factor: Optional[str] = field(default=None, repr=False)

    def validate(self) -> None:
        """密码不能为空"""
        if not self.password:
            raise InvalidValueObjectException(
                value_object_type="Credentials",
                value="[REDACTED]",
                reason="Password can't be empty",
            )
        if self.second_factor is not None and not self.second_factor.strip():
            raise InvalidValueObjectException(
                value_object_type="Credentials",
                value="[REDACTED]",
                reason="Second factor code can't be blank",
            )

    def __repr__(self) -> str:
        """安全的字符串表示，不暴露密码"""
        return "Credentials([REDACTED])"

    def __str__(self) -> str:
        return "[REDACTED]"
