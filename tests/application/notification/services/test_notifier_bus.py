"""NotifierBus 单元测试"""

import asyncio
import threading
from typing import List

import pytest

from application.notification.services.notifier_bus import NotifierBus
from domain.common.exceptions import SinkDeliveryError
from domain.notification.events.notification_events import (
    AccountLoggedOutEvent,
    NewMailEvent,
    NotificationEvent,
)
from domain.notification.services.notifier_sink import NotifierSink


class CollectingSink(NotifierSink):
    """记录收到的事件"""

    def __init__(self, name: str = "collecting"):
        self.name = name
        self.events: List[NotificationEvent] = []

    def deliver(self, event: NotificationEvent) -> None:
        self.events.append(event)


class FailingSink(NotifierSink):
    """每次投递都失败"""

    def __init__(self, error: Exception):
        self.name = "failing"
        self.error = error
        self.attempts = 0

    def deliver(self, event: NotificationEvent) -> None:
        self.attempts += 1
        raise self.error


class BlockingSink(NotifierSink):
    """阻塞到 gate 被设置"""

    name = "blocking"

    def __init__(self):
        self.gate = threading.Event()
        self.events: List[NotificationEvent] = []

    def deliver(self, event: NotificationEvent) -> None:
        self.gate.wait(timeout=5)
        self.events.append(event)


class TestNotifierBusDelivery:
    """投递测试"""

    @pytest.mark.asyncio
    async def test_every_sink_receives_same_event(self, account):
        """测试所有渠道收到同一个事件实例"""
        first, second = CollectingSink("first"), CollectingSink("second")
        bus = NotifierBus([first, second])
        await bus.start()
        event = AccountLoggedOutEvent(account=account, reason="expired")

        bus.publish(event)
        await bus.join()

        assert first.events == [event]
        assert second.events[0] is event
        await bus.stop()

    @pytest.mark.asyncio
    async def test_events_are_delivered_in_publish_order(self, account):
        """测试同一渠道内按发布顺序投递"""
        sink = CollectingSink()
        bus = NotifierBus([sink])
        await bus.start()
        events = [AccountLoggedOutEvent(account=account, reason=str(i)) for i in range(10)]

        for event in events:
            bus.publish(event)
        await bus.join()

        assert sink.events == events
        await bus.stop()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [SinkDeliveryError("failing", "HTTP 500"), RuntimeError("unexpected")],
    )
    async def test_failing_sink_does_not_affect_others(self, account, error):
        """测试渠道失败不影响其他渠道和后续事件"""
        failing = FailingSink(error)
        healthy = CollectingSink()
        bus = NotifierBus([failing, healthy])
        await bus.start()

        bus.publish(NewMailEvent(account=account))
        bus.publish(NewMailEvent(account=account))
        await bus.join()

        assert failing.attempts == 2
        assert len(healthy.events) == 2
        await bus.stop()

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_slow_sink(self, account):
        """测试发布不会等待慢速渠道"""
        slow = BlockingSink()
        fast = CollectingSink()
        bus = NotifierBus([slow, fast])
        await bus.start()

        bus.publish(NewMailEvent(account=account))
        await asyncio.sleep(0.05)

        assert len(fast.events) == 1
        assert slow.events == []

        slow.gate.set()
        await bus.join()
        assert len(slow.events) == 1
        await bus.stop()

    @pytest.mark.asyncio
    async def test_full_queue_drops_event_for_that_sink_only(self, account):
        """测试渠道队列满时只丢弃该渠道的事件"""
        slow = BlockingSink()
        fast = CollectingSink()
        bus = NotifierBus([slow, fast], queue_size=2)
        await bus.start()

        bus.publish(NewMailEvent(account=account))
        await asyncio.sleep(0.05)  # 第一个事件已被慢速渠道取走
        for _ in range(4):
            bus.publish(NewMailEvent(account=account))
            await asyncio.sleep(0.05)  # 快速渠道及时取走
        slow.gate.set()
        await bus.join()

        assert len(fast.events) == 5
        assert len(slow.events) == 3
        await bus.stop()


class TestNotifierBusLifecycle:
    """生命周期测试"""

    @pytest.mark.asyncio
    async def test_publish_before_start_is_dropped(self, account):
        """测试启动前发布的事件被丢弃"""
        sink = CollectingSink()
        bus = NotifierBus([sink])

        bus.publish(NewMailEvent(account=account))
        await bus.start()
        await bus.join()

        assert sink.events == []
        await bus.stop()

    @pytest.mark.asyncio
    async def test_stop_drains_pending_events(self, account):
        """测试停止前投递完队列中的事件"""
        sink = CollectingSink()
        bus = NotifierBus([sink])
        await bus.start()

        for _ in range(3):
            bus.publish(NewMailEvent(account=account))
        await bus.stop()

        assert len(sink.events) == 3
        assert not bus.is_running

    @pytest.mark.asyncio
    async def test_stop_when_not_running_does_nothing(self):
        """测试未运行时停止不会出错"""
        bus = NotifierBus([CollectingSink()])

        await bus.stop()

        assert not bus.is_running
