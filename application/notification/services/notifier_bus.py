"""通知总线 - 事件扇出到所有通知渠道"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from domain.common.exceptions import SinkDeliveryError
from domain.notification.events.notification_events import NotificationEvent
from domain.notification.services.notifier_sink import NotifierSink


class NotifierBus:
    """
    通知总线

    每个通知渠道拥有独立的有界队列和投递任务：
    - publish() 不阻塞，发布者永远不会等待慢速渠道
    - 同一渠道内按发布顺序投递
    - 渠道投递失败只记录日志，不影响其他渠道，也不回传给发布者
    - 渠道队列满时丢弃该渠道的新事件并记录警告

    deliver() 是同步调用，在线程中执行以免阻塞事件循环。
    """

    DEFAULT_QUEUE_SIZE: int = 20

    def __init__(
        self,
        sinks: Sequence[NotifierSink],
        queue_size: int = DEFAULT_QUEUE_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化通知总线

        Args:
            sinks: 通知渠道列表
            queue_size: 每个渠道的队列容量
            logger: 可选的日志记录器
        """
        self._sinks: List[NotifierSink] = list(sinks)
        self._queue_size = queue_size
        self._logger = logger or logging.getLogger(__name__)

        self._queues: Dict[int, "asyncio.Queue[NotificationEvent]"] = {}
        self._workers: List[asyncio.Task] = []
        self._running = False

    @property
    def sinks(self) -> List[NotifierSink]:
        return list(self._sinks)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """为每个渠道启动投递任务"""
        if self._running:
            self._logger.warning("Notifier bus already running")
            return

        self._running = True
        for index, sink in enumerate(self._sinks):
            queue: "asyncio.Queue[NotificationEvent]" = asyncio.Queue(maxsize=self._queue_size)
            self._queues[index] = queue
            self._workers.append(
                asyncio.create_task(self._deliver_loop(sink, queue), name=f"sink-{sink.name}")
            )
        self._logger.info(f"Notifier bus started with {len(self._sinks)} sink(s)")

    def publish(self, event: NotificationEvent) -> None:
        """
        发布事件（不阻塞）

        Args:
            event: 通知事件（所有渠道只读共享）
        """
        if not self._running:
            self._logger.warning(
                f"Notifier bus not running, dropping {event.event_type}"
            )
            return

        for index, sink in enumerate(self._sinks):
            try:
                self._queues[index].put_nowait(event)
            except asyncio.QueueFull:
                self._logger.warning(
                    f"Sink '{sink.name}' queue is full, dropping {event.event_type}"
                )

    async def join(self) -> None:
        """等待所有已发布事件投递完成"""
        await asyncio.gather(*(queue.join() for queue in self._queues.values()))

    async def stop(self, timeout: float = 5.0) -> None:
        """
        停止总线

        先在超时内尽量投递完队列中的事件，然后取消投递任务。

        Args:
            timeout: 等待队列排空的最长时间（秒）
        """
        if not self._running:
            return

        self._running = False
        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warning(
                f"Notifier bus stopped with undelivered events after {timeout}s"
            )

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        self._queues.clear()
        self._logger.info("Notifier bus stopped")

    async def _deliver_loop(
        self, sink: NotifierSink, queue: "asyncio.Queue[NotificationEvent]"
    ) -> None:
        while True:
            event = await queue.get()
            try:
                await asyncio.to_thread(sink.deliver, event)
            except SinkDeliveryError as e:
                self._logger.error(f"Notification delivery failed: {e.message}")
            except Exception as e:
                self._logger.exception(
                    f"Unexpected error in sink '{sink.name}' delivering {event.event_type}: {e}"
                )
            finally:
                queue.task_done()
