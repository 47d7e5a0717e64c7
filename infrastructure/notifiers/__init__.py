"""
通知渠道基础设施模块
"""

from .factory import new_notifier, new_notifiers
from .http_push_notifier import HttpPushNotifier, NtfyNotifier, UnifiedPushNotifier
from .stdout_notifier import StdoutNotifier

__all__ = [
    "new_notifier",
    "new_notifiers",
    "HttpPushNotifier",
    "NtfyNotifier",
    "UnifiedPushNotifier",
    "StdoutNotifier",
]
