"""HttpPushNotifier 测试"""

from typing import List
from unittest.mock import MagicMock

import httpx
import pytest

from domain.account.entities.account import Account
from domain.common.exceptions import SinkDeliveryError
from domain.mail.value_objects.poll_result import NewMessage
from domain.notification.events.notification_events import (
    AccountLoggedOutEvent,
    ConfigErrorEvent,
    NewMailEvent,
)
from infrastructure.notifiers import http_push_notifier
from infrastructure.notifiers.http_push_notifier import NtfyNotifier

ACCOUNT = Account("alice@example.com", "Null")
URL = "https://ntfy.example.com/mail"


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    """记录重试等待而不真正等待"""
    calls: List[float] = []
    monkeypatch.setattr(http_push_notifier.time, "sleep", calls.append)
    return calls


@pytest.fixture
def post(monkeypatch) -> MagicMock:
    mock = MagicMock(return_value=httpx.Response(200))
    monkeypatch.setattr(http_push_notifier.httpx, "post", mock)
    return mock


class TestHttpPushNotifier:
    """HTTP 推送测试"""

    def test_new_mail_sends_title_header_and_body(self, post, sleeps):
        """测试新邮件推送格式"""
        notifier = NtfyNotifier("phone", URL, auth_token="secret")
        event = NewMailEvent(
            account=ACCOUNT,
            messages=(NewMessage("1", sender="Bob", subject="Lunch?"),),
        )

        notifier.deliver(event)

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args == (URL,)
        assert kwargs["content"] == b"**Bob**: Lunch?\n"
        assert kwargs["headers"] == {
            "X-UnifiedPush": "1",
            "Authorization": "Bearer secret",
            "X-Title": "alice@example.com has 1 new message(s)",
        }
        assert sleeps == []

    def test_message_without_body_uses_title_as_content(self, post, sleeps):
        notifier = NtfyNotifier("phone", URL)

        notifier.deliver(AccountLoggedOutEvent(account=ACCOUNT))

        kwargs = post.call_args.kwargs
        assert kwargs["content"] == b"alice@example.com logged out or session expired"
        assert kwargs["headers"] == {"X-UnifiedPush": "1"}

    def test_error_is_tagged(self, post, sleeps):
        """测试错误类消息带标签"""
        NtfyNotifier("phone", URL).deliver(ConfigErrorEvent(error="bad config"))

        headers = post.call_args.kwargs["headers"]
        assert headers["X-Tags"] == "exclamation"
        assert headers["X-Title"] == "Server Config Error"

    def test_retries_then_succeeds(self, post, sleeps):
        """测试失败后重试"""
        post.side_effect = [
            httpx.ConnectError("refused"),
            httpx.Response(503, text="busy"),
            httpx.Response(200),
        ]

        NtfyNotifier("phone", URL).deliver(ConfigErrorEvent(error="bad config"))

        assert post.call_count == 3
        assert sleeps == [1, 5]

    def test_gives_up_after_all_retries(self, post, sleeps):
        """测试重试耗尽后抛出 SinkDeliveryError"""
        post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(SinkDeliveryError) as exc_info:
            NtfyNotifier("phone", URL).deliver(ConfigErrorEvent(error="bad config"))

        assert post.call_count == 4
        assert sleeps == [1, 5, 15]
        assert "Giving up after 4 attempts" in exc_info.value.message
