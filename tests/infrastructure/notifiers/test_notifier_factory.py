"""通知渠道工厂测试"""

import pytest

from domain.common.exceptions import ConfigurationError
from infrastructure.config.settings import NotifierSettings
from infrastructure.notifiers.factory import new_notifier, new_notifiers
from infrastructure.notifiers.http_push_notifier import NtfyNotifier, UnifiedPushNotifier
from infrastructure.notifiers.stdout_notifier import StdoutNotifier


class TestNotifierFactory:
    """通知渠道工厂测试"""

    def test_creates_each_kind(self):
        notifiers = new_notifiers(
            [
                NotifierSettings(kind="stdout"),
                NotifierSettings(kind="ntfy", name="phone", url="https://ntfy.sh/a"),
                NotifierSettings(kind="unified_push", url="https://push.example.com/b"),
            ]
        )

        assert isinstance(notifiers[0], StdoutNotifier)
        assert isinstance(notifiers[1], NtfyNotifier)
        assert notifiers[1].name == "phone"
        assert isinstance(notifiers[2], UnifiedPushNotifier)
        assert notifiers[2].name == "unified_push"

    def test_no_notifiers(self):
        """测试没有配置任何通知渠道"""
        with pytest.raises(ConfigurationError) as exc_info:
            new_notifiers([])

        assert exc_info.value.message == "No notifiers specified"

    def test_missing_url(self):
        config = NotifierSettings.model_construct(kind="ntfy", name=None, url=None, auth_token=None)

        with pytest.raises(ConfigurationError):
            new_notifier(config)
