"""
通知界限上下文

提供通知事件模型和通知渠道接口：
- NotificationEvent 及其子类（新邮件、注销、降级、禁用、错误）
- NotifierSink 通知渠道接口
"""

from domain.notification.events.notification_events import (
    AccountDegradedEvent,
    AccountDisabledEvent,
    AccountErrorEvent,
    AccountLoggedOutEvent,
    ConfigErrorEvent,
    NewMailEvent,
    NotificationEvent,
)
from domain.notification.services.notifier_sink import NotifierSink

__all__ = [
    "AccountDegradedEvent",
    "AccountDisabledEvent",
    "AccountErrorEvent",
    "AccountLoggedOutEvent",
    "ConfigErrorEvent",
    "NewMailEvent",
    "NotificationEvent",
    "NotifierSink",
]
