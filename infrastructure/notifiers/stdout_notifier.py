"""标准输出通知渠道"""

import sys
from typing import List, Optional, TextIO

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


class StdoutNotifier(NotifierSink):
    """把通知逐行打印到标准输出"""

    name = "stdout"

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def deliver(self, event: NotificationEvent) -> None:
        stream = self._stream or sys.stdout
        for line in self.format(event):
            print(line, file=stream, flush=True)

    @staticmethod
    def format(event: NotificationEvent) -> List[str]:
        """
        把事件格式化为输出行

        Returns:
            输出行列表（不认识的事件返回空列表）
        """
        account = event.account.email if event.account else "<unknown>"
        backend = event.account.backend if event.account else "<unknown>"

        if isinstance(event, NewMailEvent):
            lines = [f"Account {account} ({backend}) received {event.count} new email(s)"]
            for message in event.messages:
                lines.append(f"    Sender={message.sender or ''} Subject={message.subject or ''}")
            return lines
        if isinstance(event, AccountLoggedOutEvent):
            return [f"Account {account} Logged out or Session Expired"]
        if isinstance(event, AccountErrorEvent):
            return [f"Account {account} ran into an error: {event.error}"]
        if isinstance(event, AccountDegradedEvent):
            return [
                f"Account {account} failed {event.consecutive_failures} times in a row, "
                f"retrying in {event.retry_in:.0f}s: {event.reason}"
            ]
        if isinstance(event, AccountDisabledEvent):
            return [f"Account {account} was disabled: {event.reason}"]
        if isinstance(event, ConfigErrorEvent):
            return [f"Configuration error: {event.error}"]
        return []
