"""领域事件基类"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class DomainEvent:
    """
    领域事件基类

    事件一经创建不可修改，可在多个订阅者之间只读共享。

    Attributes:
        occurred_at: 事件发生时间（UTC）
    """

    occurred_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), kw_only=True
    )

    @property
    def event_type(self) -> str:
        """事件类型名称"""
        return type(self).__name__
