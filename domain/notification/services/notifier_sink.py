"""通知渠道接口"""

from abc import ABC, abstractmethod

from domain.notification.events.notification_events import NotificationEvent


class NotifierSink(ABC):
    """
    通知渠道接口

    每个渠道（标准输出、推送网关等）自行负责连接和格式化，
    是独立的故障域：投递失败只影响自己。

    deliver() 是同步方法，NotifierBus 在工作线程中调用它，
    并保证同一渠道内事件按发布顺序投递。
    """

    name: str = "sink"

    @abstractmethod
    def deliver(self, event: NotificationEvent) -> None:
        """
        投递一个通知事件

        实现不得修改事件。

        Args:
            event: 通知事件

        Raises:
            SinkDeliveryError: 投递失败（超时、I/O 错误等）
        """
        raise NotImplementedError
