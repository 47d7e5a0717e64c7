"""HTTP 推送通知渠道（ntfy / UnifiedPush）"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from domain.common.exceptions import SinkDeliveryError
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


@dataclass(frozen=True)
class PushMessage:
    """
    一条推送消息

    Attributes:
        title: 标题（没有正文时作为消息体发送）
        body: 正文
        is_error: 是否为错误类消息
    """

    title: str
    body: Optional[str] = None
    is_error: bool = False


class HttpPushNotifier(NotifierSink):
    """
    HTTP 推送通知渠道

    向推送服务器 POST 纯文本消息，支持固定间隔重试：
    - 有正文时标题放在 X-Title 头中，否则标题作为消息体
    - 错误类消息带 X-Tags: exclamation
    - 配置了令牌时带 Authorization: Bearer 头

    Attributes:
        RETRY_INTERVALS: 重试间隔列表（秒）
        TIMEOUT: 请求超时时间（秒）
    """

    RETRY_INTERVALS: List[int] = [1, 5, 15]  # 重试间隔：1秒, 5秒, 15秒
    TIMEOUT: httpx.Timeout = httpx.Timeout(120.0, connect=60.0)

    def __init__(
        self,
        name: str,
        url: str,
        auth_token: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化推送渠道

        Args:
            name: 渠道名称（日志中使用）
            url: 推送地址
            auth_token: 可选的访问令牌
            logger: 日志记录器（可选）
        """
        self.name = name
        self._url = url
        self._auth_token = auth_token
        self._logger = logger or logging.getLogger(__name__)

    @property
    def url(self) -> str:
        return self._url

    def deliver(self, event: NotificationEvent) -> None:
        message = self.render(event)
        if message is None:
            return

        headers = self._headers(message)
        content = message.body if message.body is not None else message.title
        last_error = ""

        # 首次尝试 + 3 次重试 = 总共 4 次
        for attempt in range(len(self.RETRY_INTERVALS) + 1):
            try:
                response = httpx.post(
                    self._url,
                    content=content.encode("utf-8"),
                    headers=headers,
                    timeout=self.TIMEOUT,
                )
                if 200 <= response.status_code < 300:
                    self._logger.debug(
                        f"Notification posted to {self.name} (attempt {attempt + 1})"
                    )
                    return
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
            except httpx.TimeoutException:
                last_error = "Request timeout"
            except httpx.RequestError as e:
                last_error = f"Transport error: {e}"

            self._logger.warning(
                f"Failed to post notification to {self.name}: {last_error} "
                f"(attempt {attempt + 1})"
            )
            if attempt < len(self.RETRY_INTERVALS):
                time.sleep(self.RETRY_INTERVALS[attempt])

        raise SinkDeliveryError(
            self.name,
            f"Giving up after {len(self.RETRY_INTERVALS) + 1} attempts: {last_error}",
        )

    def _headers(self, message: PushMessage) -> Dict[str, str]:
        headers = {"X-UnifiedPush": "1"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        if message.body is not None:
            headers["X-Title"] = message.title
        if message.is_error:
            headers["X-Tags"] = "exclamation"
        return headers

    @staticmethod
    def render(event: NotificationEvent) -> Optional[PushMessage]:
        """
        把事件转换为推送消息

        Returns:
            PushMessage，不需要推送的事件返回 None
        """
        email = event.account.email if event.account else "<unknown>"

        if isinstance(event, NewMailEvent):
            body = "".join(
                f"**{message.sender or ''}**: {message.subject or ''}\n"
                for message in event.messages
            )
            return PushMessage(title=f"{email} has {event.count} new message(s)", body=body)
        if isinstance(event, AccountLoggedOutEvent):
            return PushMessage(title=f"{email} logged out or session expired")
        if isinstance(event, AccountErrorEvent):
            return PushMessage(title=f"{email} encountered an error", body=event.error, is_error=True)
        if isinstance(event, AccountDegradedEvent):
            return PushMessage(
                title=f"{email} is failing to poll",
                body=f"{event.consecutive_failures} consecutive failures: {event.reason}",
                is_error=True,
            )
        if isinstance(event, AccountDisabledEvent):
            return PushMessage(title=f"{email} was disabled", body=event.reason, is_error=True)
        if isinstance(event, ConfigErrorEvent):
            return PushMessage(title="Server Config Error", body=event.error, is_error=True)
        return None


class NtfyNotifier(HttpPushNotifier):
    """ntfy 服务器推送渠道"""


class UnifiedPushNotifier(HttpPushNotifier):
    """UnifiedPush 分发器推送渠道（使用 ntfy 作为分发器测试）"""
