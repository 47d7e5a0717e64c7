"""通知应用服务"""

from application.notification.services.notifier_bus import NotifierBus

__all__ = ["NotifierBus"]
