"""StdoutNotifier 测试"""

import io

from domain.account.entities.account import Account
from domain.mail.value_objects.poll_result import NewMessage
from domain.notification.events.notification_events import (
    AccountDisabledEvent,
    AccountErrorEvent,
    AccountLoggedOutEvent,
    ConfigErrorEvent,
    NewMailEvent,
)
from infrastructure.notifiers.stdout_notifier import StdoutNotifier

ACCOUNT = Account("alice@example.com", "Null")


class TestStdoutNotifier:
    """标准输出通知测试"""

    def test_new_mail(self):
        """测试新邮件输出格式"""
        stream = io.StringIO()
        event = NewMailEvent(
            account=ACCOUNT,
            messages=(NewMessage("1", sender="Bob", subject="Lunch?"), NewMessage("2")),
        )

        StdoutNotifier(stream).deliver(event)

        assert stream.getvalue().splitlines() == [
            "Account alice@example.com (Null) received 2 new email(s)",
            "    Sender=Bob Subject=Lunch?",
            "    Sender= Subject=",
        ]

    def test_logged_out(self):
        lines = StdoutNotifier.format(AccountLoggedOutEvent(account=ACCOUNT, reason="expired"))

        assert lines == ["Account alice@example.com Logged out or Session Expired"]

    def test_error(self):
        lines = StdoutNotifier.format(AccountErrorEvent(account=ACCOUNT, error="bad password"))

        assert lines == ["Account alice@example.com ran into an error: bad password"]

    def test_disabled(self):
        lines = StdoutNotifier.format(AccountDisabledEvent(account=ACCOUNT, reason="closed"))

        assert lines == ["Account alice@example.com was disabled: closed"]

    def test_config_error(self):
        stream = io.StringIO()

        StdoutNotifier(stream).deliver(ConfigErrorEvent(error="No notifiers specified"))

        assert stream.getvalue() == "Configuration error: No notifiers specified\n"
