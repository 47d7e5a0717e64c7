"""轮询结果值对象"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

from domain.common.base_value_object import BaseValueObject
from domain.common.exceptions import InvalidValueObjectException


@dataclass(frozen=True)
class NewMessage(BaseValueObject):
    """
    新邮件摘要

    后端只提供标识和可选的元数据，核心不解析任何协议内容。

    Attributes:
        message_id: 邮件唯一标识
        sender: 发件人（可选）
        subject: 邮件主题（可选）
    """

    message_id: str
    sender: Optional[str] = None
    subject: Optional[str] = None

    def validate(self) -> None:
        if not self.message_id:
            raise InvalidValueObjectException(
                value_object_type="NewMessage",
                value=self.message_id,
                reason="Message id cannot be empty",
            )


class PollFailureKind(str, Enum):
    """轮询失败类型"""

    TRANSIENT = "transient"
    """临时错误（网络、超时），按退避策略重试"""

    AUTH_EXPIRED = "auth_expired"
    """会话过期，需要重新提供凭据"""

    FATAL = "fatal"
    """致命错误，禁用账号"""


@dataclass(frozen=True)
class PollFailure(BaseValueObject):
    """
    类型化的轮询失败

    Attributes:
        kind: 失败类型
        reason: 失败原因
    """

    kind: PollFailureKind
    reason: str = ""


@dataclass(frozen=True)
class PollResult(BaseValueObject):
    """
    一次轮询的结果

    要么是一组新邮件（可以为空），要么是一个类型化的失败，二者互斥。

    Attributes:
        messages: 新邮件列表
        failure: 失败信息（成功时为 None）
    """

    messages: Tuple[NewMessage, ...] = field(default_factory=tuple)
    failure: Optional[PollFailure] = None

    def validate(self) -> None:
        if self.failure is not None and self.messages:
            raise InvalidValueObjectException(
                value_object_type="PollResult",
                value=self.failure.kind.value,
                reason="A failed poll cannot carry messages",
            )

    @classmethod
    def ok(cls, messages: Iterable[NewMessage] = ()) -> "PollResult":
        """成功结果"""
        return cls(messages=tuple(messages))

    @classmethod
    def transient(cls, reason: str = "") -> "PollResult":
        """临时失败"""
        return cls(failure=PollFailure(PollFailureKind.TRANSIENT, reason))

    @classmethod
    def auth_expired(cls, reason: str = "") -> "PollResult":
        """认证过期"""
        return cls(failure=PollFailure(PollFailureKind.AUTH_EXPIRED, reason))

    @classmethod
    def fatal(cls, reason: str = "") -> "PollResult":
        """致命失败"""
        return cls(failure=PollFailure(PollFailureKind.FATAL, reason))

    @property
    def is_success(self) -> bool:
        """是否成功"""
        return self.failure is None

    @property
    def has_new_messages(self) -> bool:
        """是否有新邮件"""
        return bool(self.messages)
