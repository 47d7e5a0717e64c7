"""共享轮询时钟"""

import asyncio
import logging
from typing import Optional

from domain.common.exceptions import ConfigurationError


class IntervalClock:
    """
    所有账号共享的间隔时钟

    每隔 interval 秒产生一次 tick。等待者通过 next_tick() 拿到下一次 tick
    的 Event，在自己忙碌期间错过的 tick 不会累积。

    修改 interval 会从修改时刻重新计时。
    """

    def __init__(self, interval: float, logger: Optional[logging.Logger] = None):
        if interval <= 0:
            raise ConfigurationError(f"Interval must be positive, got {interval}")
        self._interval = float(interval)
        self._logger = logger or logging.getLogger(__name__)
        self._generation = 0
        self._next_tick = asyncio.Event()
        self._rescheduled = asyncio.Event()

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        if value <= 0:
            raise ConfigurationError(f"Interval must be positive, got {value}")
        if value == self._interval:
            return
        self._logger.info(f"Poll interval changed: {self._interval}s -> {value}s")
        self._interval = float(value)
        self._rescheduled.set()

    @property
    def generation(self) -> int:
        """已产生的 tick 数"""
        return self._generation

    def next_tick(self) -> asyncio.Event:
        """获取下一次 tick 时被设置的 Event"""
        return self._next_tick

    async def run(self) -> None:
        """时钟主循环（直到被取消）"""
        while True:
            try:
                await asyncio.wait_for(self._rescheduled.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                self._fire()
            else:
                self._rescheduled.clear()

    def _fire(self) -> None:
        self._generation += 1
        fired, self._next_tick = self._next_tick, asyncio.Event()
        fired.set()
        self._logger.debug(f"Clock tick #{self._generation}")
