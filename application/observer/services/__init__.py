"""Observer 应用服务"""

from application.observer.services.interval_clock import IntervalClock
from application.observer.services.observer import Observer, ReloadResult

__all__ = ["IntervalClock", "Observer", "ReloadResult"]
