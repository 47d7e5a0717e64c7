"""通知事件

这些事件由 AccountSupervisor / Observer 在适当时机发布到 NotifierBus，
同一个事件实例会被所有通知渠道只读共享，因此全部是不可变的。

使用示例（应用层）:
    from domain.notification.events.notification_events import NewMailEvent

    bus.publish(NewMailEvent(account=account, messages=result.messages))
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from domain.account.entities.account import Account
from domain.common.base_event import DomainEvent
from domain.mail.value_objects.poll_result import NewMessage


@dataclass(frozen=True)
class NotificationEvent(DomainEvent):
    """
    通知事件基类

    Attributes:
        account: 关联账号（配置级事件为 None）
    """

    account: Optional[Account] = None

    @property
    def is_error(self) -> bool:
        """是否为错误类通知（推送渠道据此打标签）"""
        return False


@dataclass(frozen=True)
class NewMailEvent(NotificationEvent):
    """
    新邮件事件

    一次成功轮询返回新邮件时发布。

    Attributes:
        messages: 新邮件摘要
    """

    messages: Tuple[NewMessage, ...] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        """新邮件数量"""
        return len(self.messages)


@dataclass(frozen=True)
class AccountLoggedOutEvent(NotificationEvent):
    """
    账号注销/会话过期事件

    账号进入 REAUTH_REQUIRED 状态并已向凭据协作者请求新凭据时发布。

    Attributes:
        reason: 过期原因
    """

    reason: str = ""


@dataclass(frozen=True)
class AccountDegradedEvent(NotificationEvent):
    """
    账号降级事件

    连续临时失败达到阈值时发布（每轮连续失败只发布一次），监督继续进行。

    Attributes:
        consecutive_failures: 连续失败次数
        retry_in: 下次重试前的等待秒数
        reason: 最近一次失败原因
    """

    consecutive_failures: int = 0
    retry_in: float = 0.0
    reason: str = ""

    @property
    def is_error(self) -> bool:
        return True


@dataclass(frozen=True)
class AccountDisabledEvent(NotificationEvent):
    """
    账号禁用事件

    后端返回致命错误，账号在重新加载配置之前不再被调度。

    Attributes:
        reason: 禁用原因
    """

    reason: str = ""

    @property
    def is_error(self) -> bool:
        return True


@dataclass(frozen=True)
class AccountErrorEvent(NotificationEvent):
    """
    账号错误事件

    认证被拒绝、密钥存储失败等需要运维人员关注的错误。

    Attributes:
        error: 错误描述
    """

    error: str = ""

    @property
    def is_error(self) -> bool:
        return True


@dataclass(frozen=True)
class ConfigErrorEvent(NotificationEvent):
    """
    配置错误事件

    重新加载配置失败时发布。

    Attributes:
        error: 错误描述
    """

    error: str = ""

    @property
    def is_error(self) -> bool:
        return True
