"""通知渠道工厂"""

import logging
from typing import List, Optional, Sequence

from domain.common.exceptions import ConfigurationError
from domain.notification.services.notifier_sink import NotifierSink
from infrastructure.config.settings import NotifierSettings
from infrastructure.notifiers.http_push_notifier import NtfyNotifier, UnifiedPushNotifier
from infrastructure.notifiers.stdout_notifier import StdoutNotifier


def new_notifier(config: NotifierSettings, logger: Optional[logging.Logger] = None) -> NotifierSink:
    """
    根据配置创建通知渠道

    Raises:
        ConfigurationError: 未知的渠道类型或缺少地址
    """
    if config.kind == "stdout":
        return StdoutNotifier()

    if not config.url:
        raise ConfigurationError(f"Notifier '{config.display_name}' requires a url")

    if config.kind == "ntfy":
        return NtfyNotifier(config.display_name, config.url, config.auth_token, logger=logger)
    if config.kind == "unified_push":
        return UnifiedPushNotifier(config.display_name, config.url, config.auth_token, logger=logger)

    raise ConfigurationError(f"Unknown notifier kind '{config.kind}'")


def new_notifiers(
    configs: Sequence[NotifierSettings],
    logger: Optional[logging.Logger] = None,
) -> List[NotifierSink]:
    """根据配置创建所有通知渠道（至少一个）"""
    if not configs:
        raise ConfigurationError("No notifiers specified")
    return [new_notifier(config, logger=logger) for config in configs]
